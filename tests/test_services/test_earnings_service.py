"""Tests for the provider earnings ledger."""

from __future__ import annotations

from decimal import Decimal

import pytest

from winnipeg_connect.services.earnings_service import EarningsService


class TestEarningsLedger:
    @pytest.mark.asyncio
    async def test_new_provider_has_zero_balances(self, market, session) -> None:
        provider = await market.provider()
        balance = await EarningsService(session).get_balance(provider.id)
        assert balance.to_dict() == {"total": "0.00", "pending": "0.00", "available": "0.00"}

    @pytest.mark.asyncio
    async def test_each_movement_is_booked_once(self, market, session) -> None:
        seeker, provider, _, payment = await market.held_payment()
        earnings = EarningsService(session)

        # Already booked by confirm_payment.
        assert await earnings.record_hold(payment) is False
        assert await earnings.record_release(payment) is True
        assert await earnings.record_release(payment) is False

        balance = await earnings.get_balance(provider.id)
        assert balance.available == Decimal("427.50")
        assert balance.pending == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_balances_across_payments(self, market, session) -> None:
        seeker, provider, _, payment = await market.held_payment("900.00")
        await market.payments.approve_release(payment.id, seeker)
        await market.payments.approve_release(payment.id, provider)

        # A second job for the same provider, still held.
        other_seeker = await market.seeker()
        job = await market.job(other_seeker)
        quote = await market.quote(provider, job, "200.00")
        await market.quotes.accept_quote(quote.id, other_seeker)
        held, _ = await market.payments.create_payment_intent(other_seeker, quote.id)
        await market.payments.confirm_payment(other_seeker, held.gateway_intent_id)

        balance = await EarningsService(session).get_balance(provider.id)
        # 100.00 deposit - 5.00 platform fee
        assert balance.pending == Decimal("95.00")
        assert balance.available == Decimal("427.50")
        assert balance.total == Decimal("427.50")
