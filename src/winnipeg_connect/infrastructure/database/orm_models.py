"""SQLAlchemy 2.0 ORM models for the Winnipeg Connect marketplace.

Tables:
    1. users             : The user directory (seekers, providers, admins).
    2. jobs              : Units of work posted by seekers.
    3. quotes            : Priced proposals from providers against a job.
    4. payments          : Escrow units, one per (accepted quote, phase).
    5. payment_approvals : Release approvals, at most one per user per payment.
    6. earnings_entries  : Append-only provider earnings ledger.
    7. messages          : System chat messages emitted on transitions.
    8. audit_events      : Append-only log of every status change.
    9. reviews           : Post-completion reviews; the source of user ratings.

Design decisions:
    - UUIDs as primary keys.
    - Numeric(12, 2) for money (no floating point rounding errors).
    - JSON columns (JSONB on PostgreSQL) for nested documents such as budget,
      location, warranty or payment terms.
    - CHECK constraints on status columns mirror the domain enums.
    - Partial unique indexes enforce "one active quote per (job, provider)"
      and "one active payment per (quote, payment type)" in the database.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal  # noqa: TC003 - needed at runtime by SQLAlchemy Mapped[]

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    and_,
    event,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from winnipeg_connect.domain.enums import (
    ApproverType,
    EscrowStatus,
    PaymentStatus,
    QuoteStatus,
)

Json = JSON().with_variant(JSONB(), "postgresql")
Money = Numeric(12, 2)


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp that always loads as an aware UTC datetime.

    SQLite drops tzinfo on the way back; PostgreSQL keeps it.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):  # noqa: ANN001, ANN201
        if value is not None and value.tzinfo is not None:
            return value.astimezone(UTC)
        return value

    def process_result_value(self, value, dialect):  # noqa: ANN001, ANN201
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


def utcnow() -> datetime:
    return datetime.now(UTC)


def _status_check(column: str, values: list[str], name: str) -> CheckConstraint:
    quoted = ", ".join(f"'{v}'" for v in values)
    return CheckConstraint(f"{column} IN ({quoted})", name=name)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# Helper: auto-set updated_at on flush
# ---------------------------------------------------------------------------
def _set_updated_at(mapper, connection, target):  # noqa: ANN001
    """SQLAlchemy event listener that updates `updated_at` before flush."""
    if hasattr(target, "updated_at"):
        target.updated_at = utcnow()


# ---------------------------------------------------------------------------
# 1. users
# ---------------------------------------------------------------------------
class User(Base):
    """A marketplace participant."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String(80), nullable=False)
    last_name: Mapped[str] = mapped_column(String(80), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rating_average: Mapped[Decimal] = mapped_column(
        Numeric(3, 2), nullable=False, default=Decimal("0"), comment="Recomputed from reviews"
    )
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (_status_check("role", ["seeker", "provider"], "ck_user_valid_role"),)

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role}>"


# ---------------------------------------------------------------------------
# 2. jobs
# ---------------------------------------------------------------------------
class Job(Base):
    """A unit of work posted by a seeker."""

    __tablename__ = "jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    posted_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, comment="Seeker who owns the job"
    )

    # --- Details ---
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(80), nullable=False)
    subcategories: Mapped[list] = mapped_column(Json, nullable=False, default=list)
    budget: Mapped[dict] = mapped_column(
        Json,
        nullable=False,
        comment='e.g. {"type": "fixed", "amount": "1000.00"} or {"type": "range", ...}',
    )
    timeline: Mapped[dict | None] = mapped_column(Json, nullable=True, default=None)
    location: Mapped[dict | None] = mapped_column(Json, nullable=True, default=None)
    requirements: Mapped[dict | None] = mapped_column(Json, nullable=True, default=None)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    is_urgent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    response_time: Mapped[str] = mapped_column(String(20), nullable=False, default="flexible")
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # --- Status & matching (guarded by JobStateMachine) ---
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open")
    selected_provider_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True, default=None
    )
    selected_quote_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, nullable=True, default=None, comment="Accepted quote (quotes.id)"
    )
    completion_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # --- Relationships ---
    # Withdrawn quotes leave the job's collection.
    quotes: Mapped[list[Quote]] = relationship(
        "Quote",
        primaryjoin=lambda: and_(
            Job.id == Quote.job_id, Quote.status != QuoteStatus.WITHDRAWN.value
        ),
        order_by=lambda: Quote.created_at.asc(),
        viewonly=True,
        lazy="selectin",
    )

    __table_args__ = (
        _status_check(
            "status",
            ["open", "in_progress", "completed", "cancelled", "disputed"],
            "ck_job_valid_status",
        ),
        _status_check("priority", ["low", "medium", "high", "urgent"], "ck_job_valid_priority"),
        Index("idx_job_status", "status"),
        Index("idx_job_posted_by", "posted_by_id"),
        Index("idx_job_category", "category"),
        Index("idx_job_created_at", "created_at"),
    )

    def is_open_for_quotes(self) -> bool:
        return self.status == "open" and self.selected_provider_id is None

    def __repr__(self) -> str:
        return f"<Job id={self.id} status={self.status}>"


# ---------------------------------------------------------------------------
# 3. quotes
# ---------------------------------------------------------------------------
class Quote(Base):
    """A provider's priced, time-bound proposal against a job."""

    __tablename__ = "quotes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    provider_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    seeker_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    # --- Price ---
    price_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    price_type: Mapped[str] = mapped_column(String(10), nullable=False)
    price_breakdown: Mapped[list] = mapped_column(Json, nullable=False, default=list)

    # --- Proposal ---
    estimated_duration: Mapped[dict | None] = mapped_column(Json, nullable=True)
    start_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    completion_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    includes_supplies: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    supply_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    warranty: Mapped[dict | None] = mapped_column(Json, nullable=True)
    availability: Mapped[dict | None] = mapped_column(Json, nullable=True)
    terms: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_terms: Mapped[dict | None] = mapped_column(Json, nullable=True)

    # --- Status (guarded by QuoteStateMachine) ---
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    viewed_by_seeker: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    viewed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        _status_check(
            "status",
            ["pending", "accepted", "rejected", "withdrawn", "expired"],
            "ck_quote_valid_status",
        ),
        _status_check("price_type", ["fixed", "hourly"], "ck_quote_valid_price_type"),
        CheckConstraint("price_amount >= 0", name="ck_quote_non_negative_price"),
        Index(
            "uq_quote_active_per_provider",
            "job_id",
            "provider_id",
            unique=True,
            postgresql_where=text("status IN ('pending', 'accepted')"),
            sqlite_where=text("status IN ('pending', 'accepted')"),
        ),
        Index("idx_quote_job", "job_id"),
        Index("idx_quote_provider", "provider_id"),
        Index("idx_quote_seeker", "seeker_id"),
        Index("idx_quote_status", "status"),
        Index("idx_quote_expires_at", "expires_at"),
    )

    def is_valid(self, now: datetime | None = None) -> bool:
        """A quote can be acted on only while pending and unexpired."""
        now = now or utcnow()
        return self.status == QuoteStatus.PENDING.value and now < self.expires_at

    def effective_status(self, now: datetime | None = None) -> str:
        """Status as listings should present it: stale pending quotes read as expired."""
        if self.status == QuoteStatus.PENDING.value and not self.is_valid(now):
            return QuoteStatus.EXPIRED.value
        return self.status

    def calculate_total(self) -> Decimal:
        if not self.price_breakdown:
            return self.price_amount
        total = Decimal("0")
        for item in self.price_breakdown:
            total += Decimal(str(item.get("cost", 0)))
        return total

    def __repr__(self) -> str:
        return f"<Quote id={self.id} job={self.job_id} status={self.status}>"


# ---------------------------------------------------------------------------
# 4. payments
# ---------------------------------------------------------------------------
class Payment(Base):
    """One escrow funds-movement unit tied to an accepted quote."""

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("jobs.id"), nullable=False)
    quote_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("quotes.id"), nullable=False)
    payer_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    payee_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)

    # --- Amounts (computed once at creation) ---
    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False)
    platform_fee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    processor_fee: Mapped[Decimal] = mapped_column(Money, nullable=False)
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)

    payment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="CAD")
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False, default="card")
    milestone: Mapped[dict | None] = mapped_column(Json, nullable=True)

    # --- Status (guarded by PaymentStateMachine) ---
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    escrow_status: Mapped[str | None] = mapped_column(
        String(20), nullable=True, default=None, comment="Unset until the capture succeeds"
    )

    # --- Gateway references ---
    gateway_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    gateway_refund_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # --- Release conditions ---
    hold_until: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True, comment="Advisory auto-release date"
    )
    requires_both_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    seeker_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    provider_confirmation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # --- Release / refund ---
    released_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    released_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    release_reason: Mapped[str | None] = mapped_column(String(20), nullable=True)
    refunded_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    refund_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    refund_amount: Mapped[Decimal | None] = mapped_column(Money, nullable=True)

    # --- Dispute ---
    is_disputed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    disputed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    disputed_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    dispute_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    dispute_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    dispute_resolution: Mapped[str | None] = mapped_column(Text, nullable=True)
    dispute_resolved_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    dispute_resolved_by: Mapped[str | None] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # --- Relationships ---
    approvals: Mapped[list[PaymentApproval]] = relationship(
        "PaymentApproval",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentApproval.approved_at.asc()",
        lazy="selectin",
    )

    __table_args__ = (
        _status_check(
            "status",
            ["pending", "authorized", "captured", "released", "refunded", "failed", "disputed"],
            "ck_payment_valid_status",
        ),
        CheckConstraint(
            "escrow_status IS NULL OR escrow_status IN "
            "('held', 'released', 'refunded', 'disputed')",
            name="ck_payment_valid_escrow_status",
        ),
        _status_check(
            "payment_type", ["deposit", "milestone", "final", "full"], "ck_payment_valid_type"
        ),
        CheckConstraint("subtotal > 0", name="ck_payment_positive_subtotal"),
        Index(
            "uq_payment_active_per_quote_type",
            "quote_id",
            "payment_type",
            unique=True,
            postgresql_where=text("status IN ('pending', 'authorized', 'captured')"),
            sqlite_where=text("status IN ('pending', 'authorized', 'captured')"),
        ),
        Index("idx_payment_job", "job_id"),
        Index("idx_payment_payer", "payer_id"),
        Index("idx_payment_payee", "payee_id"),
        Index("idx_payment_status", "status"),
        Index("idx_payment_escrow_status", "escrow_status"),
        Index("idx_payment_hold_until", "hold_until"),
    )

    @property
    def net_amount(self) -> Decimal:
        return self.subtotal - self.platform_fee

    @property
    def can_be_released(self) -> bool:
        """The release predicate."""
        if self.escrow_status != EscrowStatus.HELD.value:
            return False
        if not self.requires_both_approval:
            return True
        return self.seeker_approval and self.provider_confirmation

    def can_be_refunded(self) -> bool:
        return (
            self.status in (PaymentStatus.AUTHORIZED.value, PaymentStatus.CAPTURED.value)
            and self.escrow_status == EscrowStatus.HELD.value
        )

    def is_ready_for_auto_release(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return (
            self.escrow_status == EscrowStatus.HELD.value
            and self.hold_until is not None
            and now >= self.hold_until
        )

    def has_approval_from(self, user_id: uuid.UUID) -> bool:
        return any(a.user_id == user_id for a in self.approvals)

    def is_party(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.payer_id, self.payee_id)

    def __repr__(self) -> str:
        return (
            f"<Payment id={self.id} status={self.status} "
            f"escrow={self.escrow_status} total={self.total}>"
        )


# ---------------------------------------------------------------------------
# 5. payment_approvals
# ---------------------------------------------------------------------------
class PaymentApproval(Base):
    """A party's approval to release held funds."""

    __tablename__ = "payment_approvals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    payment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    user_type: Mapped[str] = mapped_column(String(10), nullable=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    approved_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    payment: Mapped[Payment] = relationship("Payment", back_populates="approvals")

    __table_args__ = (
        UniqueConstraint("payment_id", "user_id", name="uq_approval_payment_user"),
        _status_check(
            "user_type", [t.value for t in ApproverType], "ck_approval_valid_user_type"
        ),
    )

    def __repr__(self) -> str:
        return f"<PaymentApproval payment={self.payment_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# 6. earnings_entries (append-only ledger)
# ---------------------------------------------------------------------------
class EarningsEntry(Base):
    """One movement in a provider's earnings.

    Balances are never stored; they are recomputed from these rows. The
    (payment, kind) key makes every credit idempotent under retries.
    """

    __tablename__ = "earnings_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    payment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("payments.id"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("payment_id", "kind", name="uq_earnings_payment_kind"),
        Index("idx_earnings_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<EarningsEntry user={self.user_id} {self.kind} {self.amount}>"


# ---------------------------------------------------------------------------
# 7. messages
# ---------------------------------------------------------------------------
class Message(Base):
    """A chat message. Only system messages are written by this service."""

    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    chat_id: Mapped[str] = mapped_column(String(120), nullable=False)
    sender_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    receiver_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    job_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[str] = mapped_column(String(20), nullable=False, default="text")
    system_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    system_data: Mapped[dict | None] = mapped_column(Json, nullable=True)
    is_delivered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delivered_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_message_chat", "chat_id", "created_at"),
        Index("idx_message_job", "job_id"),
    )

    def __repr__(self) -> str:
        return f"<Message chat={self.chat_id} type={self.system_type or self.message_type}>"


# ---------------------------------------------------------------------------
# 8. audit_events (Append-Only Audit Log)
# ---------------------------------------------------------------------------
class AuditEvent(Base):
    """Immutable record of a status change on a job, quote or payment.

    This table is APPEND-ONLY. No UPDATE or DELETE operations are permitted
    at the application level.
    """

    __tablename__ = "audit_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_type: Mapped[str] = mapped_column(String(10), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    old_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    new_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    actor: Mapped[str] = mapped_column(
        String(64), nullable=False, default="SYSTEM", comment="User id or SYSTEM"
    )
    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata", Json, nullable=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditEvent {self.entity_type}:{self.entity_id} {self.event_type} "
            f"{self.old_status}->{self.new_status}>"
        )


# ---------------------------------------------------------------------------
# 9. reviews
# ---------------------------------------------------------------------------
class Review(Base):
    """One party's review of the other after a job completes.

    ``users.rating_average`` and ``users.rating_count`` are derived from this
    table and are recomputed from it after every insert.
    """

    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    reviewer_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    reviewee_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    reviewer_type: Mapped[str] = mapped_column(String(20), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str | None] = mapped_column(String(100), nullable=True)
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    would_recommend: Mapped[bool] = mapped_column(Boolean, nullable=False)
    would_hire_again: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    tags: Mapped[list] = mapped_column(Json, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("job_id", "reviewer_id", name="uq_review_job_reviewer"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating_range"),
        _status_check("reviewer_type", ["seeker", "provider"], "ck_review_valid_reviewer_type"),
        Index("idx_review_reviewee", "reviewee_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Review job={self.job_id} reviewee={self.reviewee_id} rating={self.rating}>"


# ---------------------------------------------------------------------------
# Register the auto-update listener for updated_at
# ---------------------------------------------------------------------------
for _model in (Job, Quote, Payment):
    event.listen(_model, "before_update", _set_updated_at)
