"""Domain enumerations for the Winnipeg Connect marketplace.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class UserRole(enum.StrEnum):
    SEEKER = "seeker"
    PROVIDER = "provider"


class JobStatus(enum.StrEnum):
    """Lifecycle states of a job.

    Transitions are enforced by JobStateMachine (domain/state_machine.py).
    """

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


class QuoteStatus(enum.StrEnum):
    """Lifecycle states of a quote. Everything except PENDING is terminal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    EXPIRED = "expired"


class PaymentStatus(enum.StrEnum):
    """Gateway-facing status of a payment."""

    PENDING = "pending"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    RELEASED = "released"
    REFUNDED = "refunded"
    FAILED = "failed"
    DISPUTED = "disputed"


class EscrowStatus(enum.StrEnum):
    """Custody of captured funds, tracked independently of PaymentStatus.

    A payment has no escrow status until the gateway capture succeeds.
    """

    HELD = "held"
    RELEASED = "released"
    REFUNDED = "refunded"
    DISPUTED = "disputed"


class PaymentType(enum.StrEnum):
    DEPOSIT = "deposit"
    MILESTONE = "milestone"
    FINAL = "final"
    FULL = "full"


class PaymentMethod(enum.StrEnum):
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    OTHER = "other"


class ApproverType(enum.StrEnum):
    """Which release condition an approval satisfies."""

    SEEKER = "seeker"
    PROVIDER = "provider"


class ReleaseReason(enum.StrEnum):
    JOB_COMPLETED = "job_completed"
    MUTUAL_AGREEMENT = "mutual_agreement"
    AUTO_RELEASE = "auto_release"
    ADMIN_RELEASE = "admin_release"


class DisputeStatus(enum.StrEnum):
    OPEN = "open"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    CLOSED = "closed"


class BudgetType(enum.StrEnum):
    FIXED = "fixed"
    HOURLY = "hourly"
    RANGE = "range"


class PriceType(enum.StrEnum):
    FIXED = "fixed"
    HOURLY = "hourly"


class JobPriority(enum.StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class SystemMessageType(enum.StrEnum):
    """System chat messages emitted on state transitions."""

    QUOTE_SENT = "quote_sent"
    QUOTE_ACCEPTED = "quote_accepted"
    QUOTE_REJECTED = "quote_rejected"
    JOB_COMPLETED = "job_completed"
    PAYMENT_RELEASED = "payment_released"


class LedgerEntryKind(enum.StrEnum):
    """Kinds of earnings ledger entries. One entry of each kind per payment."""

    ESCROW_HELD = "escrow_held"
    ESCROW_RELEASED = "escrow_released"
    ESCROW_REFUNDED = "escrow_refunded"


class ReviewTag(enum.StrEnum):
    """Quick-feedback tags a reviewer may attach."""

    PROFESSIONAL = "professional"
    PUNCTUAL = "punctual"
    QUALITY_WORK = "quality_work"
    FAIR_PRICING = "fair_pricing"
    GOOD_COMMUNICATION = "good_communication"
    CLEAN_WORKSPACE = "clean_workspace"
    EXCEEDED_EXPECTATIONS = "exceeded_expectations"
    PROBLEM_SOLVER = "problem_solver"
    RELIABLE = "reliable"
    SKILLED = "skilled"
    FRIENDLY = "friendly"
    LATE = "late"
    POOR_COMMUNICATION = "poor_communication"
    OVERPRICED = "overpriced"
    MESSY = "messy"
    UNPROFESSIONAL = "unprofessional"
    RUSHED_WORK = "rushed_work"
    UNRELIABLE = "unreliable"


class EntityType(enum.StrEnum):
    JOB = "job"
    QUOTE = "quote"
    PAYMENT = "payment"


class EventType(enum.StrEnum):
    """Types of audit events recorded in the audit_events table.

    Every status change MUST produce exactly one event.
    """

    # Jobs
    JOB_CREATED = "JOB_CREATED"
    JOB_STATUS_CHANGED = "JOB_STATUS_CHANGED"
    JOB_DELETED = "JOB_DELETED"

    # Quotes
    QUOTE_SUBMITTED = "QUOTE_SUBMITTED"
    QUOTE_ACCEPTED = "QUOTE_ACCEPTED"
    QUOTE_REJECTED = "QUOTE_REJECTED"
    QUOTE_WITHDRAWN = "QUOTE_WITHDRAWN"
    QUOTE_EXPIRED = "QUOTE_EXPIRED"

    # Payments
    PAYMENT_CREATED = "PAYMENT_CREATED"
    PAYMENT_AUTHORIZED = "PAYMENT_AUTHORIZED"
    PAYMENT_CAPTURED = "PAYMENT_CAPTURED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    RELEASE_APPROVED = "RELEASE_APPROVED"
    PAYMENT_RELEASED = "PAYMENT_RELEASED"
    PAYMENT_REFUNDED = "PAYMENT_REFUNDED"
    DISPUTE_RAISED = "DISPUTE_RAISED"
    DISPUTE_RESOLVED = "DISPUTE_RESOLVED"
