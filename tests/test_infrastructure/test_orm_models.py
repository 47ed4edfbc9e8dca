"""Tests for ORM model helpers and database constraints."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from winnipeg_connect.infrastructure.database.orm_models import Job, Payment, Quote


def _payment(**overrides) -> Payment:
    fields = {
        "subtotal": Decimal("450.00"),
        "platform_fee": Decimal("22.50"),
        "processor_fee": Decimal("14.00"),
        "total": Decimal("486.50"),
        "status": "captured",
        "escrow_status": "held",
        "requires_both_approval": True,
        "seeker_approval": False,
        "provider_confirmation": False,
        "approvals": [],
    }
    fields.update(overrides)
    return Payment(**fields)


class TestPaymentPredicates:
    def test_net_amount(self) -> None:
        assert _payment().net_amount == Decimal("427.50")

    def test_release_needs_both_approvals(self) -> None:
        assert _payment(seeker_approval=True).can_be_released is False
        assert _payment(seeker_approval=True, provider_confirmation=True).can_be_released

    def test_single_approval_mode(self) -> None:
        assert _payment(requires_both_approval=False).can_be_released is True

    def test_release_requires_held_funds(self) -> None:
        payment = _payment(
            escrow_status="released", seeker_approval=True, provider_confirmation=True
        )
        assert payment.can_be_released is False

    @pytest.mark.parametrize(
        ("status", "escrow_status", "expected"),
        [
            ("captured", "held", True),
            ("authorized", "held", True),
            ("released", "released", False),
            ("disputed", "held", False),
            ("pending", None, False),
        ],
    )
    def test_can_be_refunded(self, status: str, escrow_status: str | None, expected: bool) -> None:
        assert _payment(status=status, escrow_status=escrow_status).can_be_refunded() is expected

    def test_auto_release_readiness(self) -> None:
        now = datetime.now(UTC)
        payment = _payment(hold_until=now + timedelta(days=7))
        assert payment.is_ready_for_auto_release(now) is False
        assert payment.is_ready_for_auto_release(now + timedelta(days=7)) is True
        assert _payment(hold_until=None).is_ready_for_auto_release(now) is False

    def test_party_membership(self) -> None:
        payer, payee = uuid.uuid4(), uuid.uuid4()
        payment = _payment(payer_id=payer, payee_id=payee)
        assert payment.is_party(payer) and payment.is_party(payee)
        assert not payment.is_party(uuid.uuid4())


class TestQuoteAndJobHelpers:
    def test_quote_validity_window(self) -> None:
        now = datetime.now(UTC)
        quote = Quote(status="pending", expires_at=now + timedelta(hours=1))
        assert quote.is_valid(now) is True
        assert quote.effective_status(now) == "pending"
        assert quote.effective_status(now + timedelta(hours=2)) == "expired"

    def test_terminal_quote_keeps_status(self) -> None:
        past = datetime.now(UTC) - timedelta(days=1)
        assert Quote(status="rejected", expires_at=past).effective_status() == "rejected"

    def test_open_for_quotes(self) -> None:
        assert Job(status="open", selected_provider_id=None).is_open_for_quotes()
        assert not Job(status="open", selected_provider_id=uuid.uuid4()).is_open_for_quotes()
        assert not Job(status="cancelled", selected_provider_id=None).is_open_for_quotes()


class TestConstraints:
    @pytest.mark.asyncio
    async def test_one_active_payment_per_quote_and_type(self, market, session) -> None:
        seeker, _, _, quote = await market.accepted()
        payment, _ = await market.payments.create_payment_intent(seeker, quote.id)

        duplicate = Payment(
            job_id=payment.job_id,
            quote_id=payment.quote_id,
            payer_id=payment.payer_id,
            payee_id=payment.payee_id,
            subtotal=payment.subtotal,
            platform_fee=payment.platform_fee,
            processor_fee=payment.processor_fee,
            total=payment.total,
            payment_type=payment.payment_type,
            payment_method="card",
            currency="CAD",
            status="pending",
        )
        with pytest.raises(IntegrityError):
            async with session.begin_nested():
                session.add(duplicate)

    @pytest.mark.asyncio
    async def test_datetimes_load_as_utc(self, market, session) -> None:
        seeker = await market.seeker()
        job = await market.job(seeker)
        await session.refresh(job)
        assert job.created_at.tzinfo is not None
