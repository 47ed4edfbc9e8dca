"""Database infrastructure: engine, ORM models and repositories."""

from winnipeg_connect.infrastructure.database.engine import (
    close_db,
    get_async_session,
    init_db,
)
from winnipeg_connect.infrastructure.database.orm_models import (
    AuditEvent,
    Base,
    EarningsEntry,
    Job,
    Message,
    Payment,
    PaymentApproval,
    Quote,
    Review,
    User,
)
from winnipeg_connect.infrastructure.database.repositories import (
    ApprovalRepository,
    EarningsRepository,
    EventRepository,
    JobRepository,
    MessageRepository,
    PaymentRepository,
    QuoteRepository,
    ReviewRepository,
    UserRepository,
)

__all__ = [
    "AuditEvent",
    "Base",
    "EarningsEntry",
    "Job",
    "Message",
    "Payment",
    "PaymentApproval",
    "Quote",
    "Review",
    "User",
    "ApprovalRepository",
    "EarningsRepository",
    "EventRepository",
    "JobRepository",
    "MessageRepository",
    "PaymentRepository",
    "QuoteRepository",
    "ReviewRepository",
    "UserRepository",
    "get_async_session",
    "init_db",
    "close_db",
]
