"""Pydantic API schemas."""

from winnipeg_connect.schemas.common import (
    AuditEventResponse,
    ErrorResponse,
    HealthResponse,
    Pagination,
)
from winnipeg_connect.schemas.jobs import (
    CreateJobRequest,
    JobListResponse,
    JobResponse,
    UpdateJobRequest,
    UpdateJobStatusRequest,
)
from winnipeg_connect.schemas.payments import (
    ApproveReleaseRequest,
    ApproveReleaseResponse,
    ConfirmPaymentRequest,
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
    DisputePaymentRequest,
    PaymentListResponse,
    PaymentResponse,
    PaymentStatsResponse,
    RefundPaymentRequest,
    ResolveDisputeRequest,
)
from winnipeg_connect.schemas.quotes import (
    CreateQuoteRequest,
    QuoteListResponse,
    QuoteResponse,
    QuoteStatsResponse,
    RejectQuoteRequest,
    UpdateQuoteRequest,
)
from winnipeg_connect.schemas.reviews import (
    CreateReviewRequest,
    ReviewResponse,
    UserReviewsResponse,
)
from winnipeg_connect.schemas.users import CreateUserRequest, EarningsResponse, UserResponse

__all__ = [
    "AuditEventResponse",
    "ErrorResponse",
    "HealthResponse",
    "Pagination",
    "CreateJobRequest",
    "JobListResponse",
    "JobResponse",
    "UpdateJobRequest",
    "UpdateJobStatusRequest",
    "ApproveReleaseRequest",
    "ApproveReleaseResponse",
    "ConfirmPaymentRequest",
    "CreatePaymentIntentRequest",
    "CreatePaymentIntentResponse",
    "DisputePaymentRequest",
    "PaymentListResponse",
    "PaymentResponse",
    "PaymentStatsResponse",
    "RefundPaymentRequest",
    "ResolveDisputeRequest",
    "CreateQuoteRequest",
    "QuoteListResponse",
    "QuoteResponse",
    "QuoteStatsResponse",
    "RejectQuoteRequest",
    "UpdateQuoteRequest",
    "CreateReviewRequest",
    "ReviewResponse",
    "UserReviewsResponse",
    "CreateUserRequest",
    "EarningsResponse",
    "UserResponse",
]
