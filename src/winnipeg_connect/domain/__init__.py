"""Domain layer: pure business logic with zero framework dependencies."""

from winnipeg_connect.domain.enums import (
    EscrowStatus,
    JobStatus,
    PaymentStatus,
    PaymentType,
    QuoteStatus,
)
from winnipeg_connect.domain.exceptions import (
    InvalidStateTransitionError,
    MarketplaceError,
    StateConflictError,
)
from winnipeg_connect.domain.fees import PaymentAmounts, calculate_amounts
from winnipeg_connect.domain.gateway_protocol import GatewayIntent, PaymentGateway
from winnipeg_connect.domain.state_machine import (
    JobStateMachine,
    PaymentStateMachine,
    QuoteStateMachine,
    fire_transition,
)

__all__ = [
    "EscrowStatus",
    "JobStatus",
    "PaymentStatus",
    "PaymentType",
    "QuoteStatus",
    "InvalidStateTransitionError",
    "MarketplaceError",
    "StateConflictError",
    "PaymentAmounts",
    "calculate_amounts",
    "GatewayIntent",
    "PaymentGateway",
    "JobStateMachine",
    "PaymentStateMachine",
    "QuoteStateMachine",
    "fire_transition",
]
