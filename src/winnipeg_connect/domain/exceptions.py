"""Domain exceptions for the Winnipeg Connect marketplace.

These exceptions are framework-agnostic and represent business rule violations.
They are caught and translated to HTTP responses by the API layer's middleware,
which maps each category (not found, authorization, state conflict, validation,
external dependency) to its own status code.
"""


class MarketplaceError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "MARKETPLACE_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Validation Errors ---


class DomainValidationError(MarketplaceError):
    """Raised when input is well-formed but violates a business rule."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="VALIDATION_ERROR")


# --- Not Found ---


class ResourceNotFoundError(MarketplaceError):
    """Base for lookups by id that found nothing."""

    def __init__(self, resource: str, resource_id: str) -> None:
        super().__init__(
            message=f"{resource} not found: {resource_id}",
            code=f"{resource.upper()}_NOT_FOUND",
        )
        self.resource_id = resource_id


class JobNotFoundError(ResourceNotFoundError):
    def __init__(self, job_id: str) -> None:
        super().__init__("Job", job_id)


class QuoteNotFoundError(ResourceNotFoundError):
    def __init__(self, quote_id: str) -> None:
        super().__init__("Quote", quote_id)


class PaymentNotFoundError(ResourceNotFoundError):
    def __init__(self, payment_id: str) -> None:
        super().__init__("Payment", payment_id)


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__("User", user_id)


class ReviewNotFoundError(ResourceNotFoundError):
    def __init__(self, review_id: str) -> None:
        super().__init__("Review", review_id)


# --- Authentication / Authorization ---


class AuthenticationError(MarketplaceError):
    """Raised when the caller identity is missing or unknown."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message=message, code="AUTHENTICATION_REQUIRED")


class NotAuthorizedError(MarketplaceError):
    """Raised when the caller may not act on a resource.

    The message is deliberately generic so that it never reveals anything
    about resources the caller does not own.
    """

    def __init__(self, action: str = "perform this action") -> None:
        super().__init__(message=f"Not authorized to {action}", code="NOT_AUTHORIZED")


# --- State Conflict Errors ---


class StateConflictError(MarketplaceError):
    """Base for transitions rejected because of the current state.

    Callers should re-fetch the resource; retrying the same request will
    fail again.
    """


class InvalidStateTransitionError(StateConflictError):
    """Raised when an attempted state transition is not allowed.

    Example: open -> completed (a quote must be accepted first).
    """

    def __init__(
        self,
        current_state: str,
        attempted: str,
        entity: str = "job",
        allowed: list[str] | None = None,
    ) -> None:
        message = f"Cannot change {entity} status from {current_state} via {attempted}"
        if allowed is not None:
            message += f" (allowed: {', '.join(allowed) or 'none'})"
        super().__init__(message=message, code="INVALID_STATE_TRANSITION")
        self.current_state = current_state
        self.attempted = attempted
        self.entity = entity
        self.allowed = allowed


class ConcurrentModificationError(StateConflictError):
    """Raised when a compare-and-set update lost a race."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(
            message=f"{entity} {entity_id} was modified concurrently; re-fetch and retry",
            code="CONCURRENT_MODIFICATION",
        )


class JobClosedError(StateConflictError):
    def __init__(self, job_id: str) -> None:
        super().__init__(
            message=f"Job is no longer accepting quotes: {job_id}",
            code="JOB_CLOSED",
        )


class JobNotEditableError(StateConflictError):
    def __init__(self, job_id: str, status: str) -> None:
        super().__init__(
            message=f"Job {job_id} can only be edited while open (status: {status})",
            code="JOB_NOT_EDITABLE",
        )


class UnsettledEscrowError(StateConflictError):
    """Raised when completing a job whose held funds have no approvals."""

    def __init__(self, job_id: str) -> None:
        super().__init__(
            message=f"Job {job_id} has funds held in escrow with no release approvals",
            code="UNSETTLED_ESCROW",
        )


class AlreadyQuotedError(StateConflictError):
    def __init__(self, job_id: str) -> None:
        super().__init__(
            message=f"You have already submitted a quote for job {job_id}",
            code="ALREADY_QUOTED",
        )


class QuoteNotPendingError(StateConflictError):
    def __init__(self, quote_id: str, status: str) -> None:
        super().__init__(
            message=f"Quote {quote_id} is no longer pending (status: {status})",
            code="QUOTE_NOT_PENDING",
        )


class QuoteExpiredError(StateConflictError):
    def __init__(self, quote_id: str) -> None:
        super().__init__(message=f"Quote has expired: {quote_id}", code="QUOTE_EXPIRED")


class QuoteNotAcceptedError(StateConflictError):
    def __init__(self, quote_id: str) -> None:
        super().__init__(
            message=f"Quote must be accepted before payment: {quote_id}",
            code="QUOTE_NOT_ACCEPTED",
        )


class PaymentAlreadyExistsError(StateConflictError):
    def __init__(self, quote_id: str, payment_type: str) -> None:
        super().__init__(
            message=f"An active {payment_type} payment already exists for quote {quote_id}",
            code="PAYMENT_ALREADY_EXISTS",
        )


class PaymentNotReadyError(StateConflictError):
    """Raised when the gateway has not yet authorized a capturable charge."""

    def __init__(self, intent_id: str, gateway_status: str) -> None:
        super().__init__(
            message=f"Payment intent {intent_id} not ready for capture ({gateway_status})",
            code="PAYMENT_NOT_READY",
        )


class PaymentNotHeldError(StateConflictError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(
            message=f"Payment is not held in escrow: {payment_id}",
            code="PAYMENT_NOT_HELD",
        )


class AlreadyApprovedError(StateConflictError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(
            message=f"You have already approved payment {payment_id}",
            code="ALREADY_APPROVED",
        )


class ReleaseConditionsNotMetError(StateConflictError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(
            message=f"Payment {payment_id} cannot be released yet - missing approvals",
            code="RELEASE_CONDITIONS_NOT_MET",
        )


class CannotRefundError(StateConflictError):
    def __init__(self, payment_id: str, status: str) -> None:
        super().__init__(
            message=f"Payment {payment_id} cannot be refunded (status: {status})",
            code="CANNOT_REFUND",
        )


class AlreadyDisputedError(StateConflictError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(
            message=f"Payment is already disputed: {payment_id}",
            code="ALREADY_DISPUTED",
        )


class PaymentNotDisputedError(StateConflictError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(
            message=f"Payment has no open dispute: {payment_id}",
            code="PAYMENT_NOT_DISPUTED",
        )


class JobNotReviewableError(StateConflictError):
    def __init__(self, job_id: str, status: str) -> None:
        super().__init__(
            message=f"Job {job_id} must be completed before reviewing (status: {status})",
            code="JOB_NOT_REVIEWABLE",
        )


class AlreadyReviewedError(StateConflictError):
    def __init__(self, job_id: str) -> None:
        super().__init__(
            message=f"You have already reviewed job {job_id}",
            code="ALREADY_REVIEWED",
        )


# --- External Dependency Errors ---


class PaymentGatewayError(MarketplaceError):
    """Raised when the payment gateway rejects or fails a call."""

    def __init__(self, message: str, intent_id: str | None = None) -> None:
        super().__init__(message=message, code="PAYMENT_GATEWAY_ERROR")
        self.intent_id = intent_id


# --- Idempotency Errors ---


class DuplicateOperationError(StateConflictError):
    """Raised when an idempotency key is reused for a different request."""

    def __init__(self, idempotency_key: str) -> None:
        super().__init__(
            message=f"Idempotency key reused for a different request: {idempotency_key}",
            code="DUPLICATE_OPERATION",
        )
