"""Application services: use case orchestration."""

from winnipeg_connect.services.earnings_service import EarningsService
from winnipeg_connect.services.job_service import JobService
from winnipeg_connect.services.notification_service import NotificationService
from winnipeg_connect.services.payment_service import PaymentService
from winnipeg_connect.services.quote_service import QuoteService
from winnipeg_connect.services.review_service import ReviewService
from winnipeg_connect.services.user_service import UserService

__all__ = [
    "EarningsService",
    "JobService",
    "NotificationService",
    "PaymentService",
    "QuoteService",
    "ReviewService",
    "UserService",
]
