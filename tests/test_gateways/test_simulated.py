"""Tests for the in-process SimulatedGateway."""

from __future__ import annotations

import pytest

from winnipeg_connect.domain.exceptions import PaymentGatewayError
from winnipeg_connect.domain.gateway_protocol import PaymentGateway
from winnipeg_connect.gateways.simulated import SimulatedGateway


class TestSimulatedGateway:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(SimulatedGateway(), PaymentGateway)

    @pytest.mark.asyncio
    async def test_create_intent_is_capturable(self) -> None:
        gw = SimulatedGateway()
        intent = await gw.create_intent(48650, "CAD", {"quoteId": "q1"})
        assert intent.intent_id.startswith("pi_sim_")
        assert intent.status == "requires_capture"
        assert intent.currency == "cad"
        assert intent.client_secret.startswith(intent.intent_id)
        assert intent.metadata == {"quoteId": "q1"}

    @pytest.mark.asyncio
    async def test_without_auto_authorize(self) -> None:
        gw = SimulatedGateway(auto_authorize=False)
        intent = await gw.create_intent(1000, "cad", {})
        assert intent.status == "requires_payment_method"
        with pytest.raises(PaymentGatewayError, match="cannot be captured"):
            await gw.capture(intent.intent_id)

    @pytest.mark.asyncio
    async def test_capture_then_refund(self) -> None:
        gw = SimulatedGateway()
        intent = await gw.create_intent(1000, "cad", {})
        captured = await gw.capture(intent.intent_id)
        assert captured.status == "succeeded"
        assert (await gw.retrieve(intent.intent_id)).status == "succeeded"

        refund_id = await gw.refund(intent.intent_id, 400)
        assert refund_id.startswith("re_sim_")
        assert gw.refunded_amount(intent.intent_id) == 400

    @pytest.mark.asyncio
    async def test_refund_cannot_exceed_amount(self) -> None:
        gw = SimulatedGateway()
        intent = await gw.create_intent(1000, "cad", {})
        await gw.capture(intent.intent_id)
        await gw.refund(intent.intent_id, 600)
        with pytest.raises(PaymentGatewayError, match="exceeds"):
            await gw.refund(intent.intent_id, 600)

    @pytest.mark.asyncio
    async def test_refund_uncaptured_cancels_authorization(self) -> None:
        gw = SimulatedGateway()
        intent = await gw.create_intent(1000, "cad", {})
        await gw.refund(intent.intent_id, 1000)
        assert (await gw.retrieve(intent.intent_id)).status == "canceled"

    @pytest.mark.asyncio
    async def test_fail_next_is_one_shot(self) -> None:
        gw = SimulatedGateway()
        intent = await gw.create_intent(1000, "cad", {})
        gw.fail_next("capture")
        with pytest.raises(PaymentGatewayError):
            await gw.capture(intent.intent_id)
        assert (await gw.capture(intent.intent_id)).status == "succeeded"

    @pytest.mark.asyncio
    async def test_unknown_intent(self) -> None:
        with pytest.raises(PaymentGatewayError, match="No such payment intent"):
            await SimulatedGateway().retrieve("pi_missing")

    @pytest.mark.asyncio
    async def test_repeated_keys_return_the_first_result(self) -> None:
        gw = SimulatedGateway()
        first = await gw.create_intent(1000, "cad", {}, idempotency_key="intent:q1:deposit:0")
        again = await gw.create_intent(1000, "cad", {}, idempotency_key="intent:q1:deposit:0")
        other = await gw.create_intent(1000, "cad", {}, idempotency_key="intent:q1:deposit:1")
        assert again.intent_id == first.intent_id
        assert other.intent_id != first.intent_id

        await gw.capture(first.intent_id)
        refund_id = await gw.refund(first.intent_id, 400, idempotency_key="refund:p1:400")
        assert await gw.refund(first.intent_id, 400, idempotency_key="refund:p1:400") == refund_id
        assert gw.refunded_amount(first.intent_id) == 400
