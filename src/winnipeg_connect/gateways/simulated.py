"""In-process payment gateway for development, dry runs and tests.

Behaves like a manual-capture card processor without any network calls:
intents live in a dict, and a freshly created intent is immediately
capturable unless ``auto_authorize`` is off. Tests can steer it with
``set_status`` and ``fail_next``. Idempotency keys are honoured like a real
processor: a repeated key returns what the first call produced.
"""

from __future__ import annotations

import uuid
from dataclasses import replace

from winnipeg_connect.domain.exceptions import PaymentGatewayError
from winnipeg_connect.domain.gateway_protocol import (
    INTENT_CANCELED,
    INTENT_REQUIRES_CAPTURE,
    INTENT_REQUIRES_PAYMENT_METHOD,
    INTENT_SUCCEEDED,
    GatewayIntent,
)
from winnipeg_connect.logging_config import get_logger

logger = get_logger(__name__)


class SimulatedGateway:
    """Instant in-memory gateway.

    Args:
        auto_authorize: If True (default), new intents start in
            ``requires_capture``, as if the payer had already confirmed the card.
    """

    def __init__(self, auto_authorize: bool = True) -> None:
        self._auto_authorize = auto_authorize
        self._intents: dict[str, GatewayIntent] = {}
        self._refunds: dict[str, tuple[str, int]] = {}
        self._failures: set[str] = set()
        self._keyed: dict[str, str] = {}

    @classmethod
    def from_settings(cls, settings) -> SimulatedGateway:  # noqa: ANN001
        return cls()

    # --- Test hooks ---

    def set_status(self, intent_id: str, status: str) -> None:
        """Force an intent into ``status`` (e.g. the payer abandoned the card form)."""
        self._intents[intent_id] = replace(self._get(intent_id), status=status)

    def fail_next(self, operation: str) -> None:
        """Make the next call to ``operation`` (create_intent, capture, ...) fail."""
        self._failures.add(operation)

    def refunded_amount(self, intent_id: str) -> int:
        return sum(amount for iid, amount in self._refunds.values() if iid == intent_id)

    # --- PaymentGateway protocol ---

    async def create_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: dict,
        idempotency_key: str | None = None,
    ) -> GatewayIntent:
        self._maybe_fail("create_intent")
        if idempotency_key in self._keyed:
            return self._get(self._keyed[idempotency_key])
        intent_id = f"pi_sim_{uuid.uuid4().hex[:24]}"
        intent = GatewayIntent(
            intent_id=intent_id,
            status=(
                INTENT_REQUIRES_CAPTURE if self._auto_authorize else INTENT_REQUIRES_PAYMENT_METHOD
            ),
            amount_minor=amount_minor,
            currency=currency.lower(),
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:16]}",
            metadata=dict(metadata),
        )
        self._intents[intent_id] = intent
        if idempotency_key:
            self._keyed[idempotency_key] = intent_id
        logger.info("gateway.simulated.intent_created", intent_id=intent_id, amount=amount_minor)
        return intent

    async def retrieve(self, intent_id: str) -> GatewayIntent:
        self._maybe_fail("retrieve")
        return self._get(intent_id)

    async def capture(self, intent_id: str) -> GatewayIntent:
        self._maybe_fail("capture")
        intent = self._get(intent_id)
        if intent.status != INTENT_REQUIRES_CAPTURE:
            raise PaymentGatewayError(
                f"Intent {intent_id} cannot be captured from status {intent.status}",
                intent_id=intent_id,
            )
        captured = replace(intent, status=INTENT_SUCCEEDED)
        self._intents[intent_id] = captured
        logger.info("gateway.simulated.captured", intent_id=intent_id)
        return captured

    async def refund(
        self, intent_id: str, amount_minor: int, idempotency_key: str | None = None
    ) -> str:
        self._maybe_fail("refund")
        if idempotency_key in self._keyed:
            return self._keyed[idempotency_key]
        intent = self._get(intent_id)
        if intent.status == INTENT_REQUIRES_CAPTURE:
            # Refunding an uncaptured authorization releases the hold.
            self._intents[intent_id] = replace(intent, status=INTENT_CANCELED)
        elif intent.status != INTENT_SUCCEEDED:
            raise PaymentGatewayError(
                f"Intent {intent_id} cannot be refunded from status {intent.status}",
                intent_id=intent_id,
            )
        if self.refunded_amount(intent_id) + amount_minor > intent.amount_minor:
            raise PaymentGatewayError(
                f"Refund exceeds captured amount for {intent_id}", intent_id=intent_id
            )
        refund_id = f"re_sim_{uuid.uuid4().hex[:24]}"
        self._refunds[refund_id] = (intent_id, amount_minor)
        if idempotency_key:
            self._keyed[idempotency_key] = refund_id
        logger.info("gateway.simulated.refunded", intent_id=intent_id, amount=amount_minor)
        return refund_id

    # --- Internals ---

    def _get(self, intent_id: str) -> GatewayIntent:
        intent = self._intents.get(intent_id)
        if intent is None:
            raise PaymentGatewayError(f"No such payment intent: {intent_id}", intent_id=intent_id)
        return intent

    def _maybe_fail(self, operation: str) -> None:
        if operation in self._failures:
            self._failures.discard(operation)
            raise PaymentGatewayError(f"Simulated gateway failure during {operation}")
