"""Payment Gateway Protocol.

Defines the interface every payment gateway adapter must implement. This is
a Protocol (structural subtyping), so adapters don't need to inherit from a
base class, they just need to match the shape.

All amounts cross this boundary in minor currency units (cents). The domain
layer has ZERO imports from Stripe or any other processor SDK.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

# Gateway intent statuses the escrow service acts on. Adapters normalize
# their processor's vocabulary onto these values.
INTENT_REQUIRES_PAYMENT_METHOD = "requires_payment_method"
INTENT_REQUIRES_CONFIRMATION = "requires_confirmation"
INTENT_PROCESSING = "processing"
INTENT_REQUIRES_CAPTURE = "requires_capture"
INTENT_SUCCEEDED = "succeeded"
INTENT_CANCELED = "canceled"


@dataclass(frozen=True)
class GatewayIntent:
    """A payment intent as reported by the gateway.

    Attributes:
        intent_id: The gateway's identifier; the idempotency key for confirm.
        status: One of the INTENT_* values above.
        amount_minor: Authorized amount in minor units.
        currency: ISO currency code, lower-case.
        client_secret: Secret handed to the payer's browser to confirm the card.
        metadata: Marketplace ids attached for traceability.
    """

    intent_id: str
    status: str
    amount_minor: int
    currency: str
    client_secret: str | None = None
    metadata: dict = field(default_factory=dict)


@runtime_checkable
class PaymentGateway(Protocol):
    """Protocol that all payment gateway adapters must satisfy.

    Concrete implementations:
        - gateways/stripe_gateway.py  (Stripe manual-capture PaymentIntents)
        - gateways/simulated.py       (SimulatedGateway, in-process)
    """

    async def create_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: dict,
        idempotency_key: str | None = None,
    ) -> GatewayIntent:
        """Create a manual-capture intent for ``amount_minor``.

        A repeated ``idempotency_key`` returns the intent the first call
        created instead of opening a second one.
        """
        ...

    async def retrieve(self, intent_id: str) -> GatewayIntent:
        """Fetch the current state of an intent."""
        ...

    async def capture(self, intent_id: str) -> GatewayIntent:
        """Capture an authorized intent, moving the funds into escrow."""
        ...

    async def refund(
        self, intent_id: str, amount_minor: int, idempotency_key: str | None = None
    ) -> str:
        """Refund ``amount_minor`` of a captured intent. Returns the refund id.

        A repeated ``idempotency_key`` returns the first refund's id.
        """
        ...
