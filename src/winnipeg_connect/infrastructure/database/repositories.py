"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).

Status changes go through ``compare_and_set_status``: a single
``UPDATE ... WHERE status = <expected>`` whose row count tells the caller
whether it won. Concurrent requests racing on the same row therefore
serialize on the database, not on a read-then-write in Python.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError

from winnipeg_connect.domain.enums import (
    EscrowStatus,
    LedgerEntryKind,
    PaymentStatus,
    QuoteStatus,
    UserRole,
)
from winnipeg_connect.infrastructure.database.orm_models import (
    AuditEvent,
    EarningsEntry,
    Job,
    Message,
    Payment,
    PaymentApproval,
    Quote,
    Review,
    User,
    utcnow,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from winnipeg_connect.domain.enums import EntityType, EventType

ACTIVE_PAYMENT_STATUSES = (
    PaymentStatus.PENDING.value,
    PaymentStatus.AUTHORIZED.value,
    PaymentStatus.CAPTURED.value,
)


async def _paginate(session: AsyncSession, stmt, page: int, limit: int) -> tuple[list, int]:
    """Run ``stmt`` for one page and count the unpaged result set."""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await session.execute(count_stmt)).scalar_one()
    result = await session.execute(stmt.offset((page - 1) * limit).limit(limit))
    return list(result.scalars().all()), total


class UserRepository:
    """Data access for the user directory."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, user: User) -> User:
        self._session.add(user)
        await self._session.flush()
        return user

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        return await self._session.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        result = await self._session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()


class JobRepository:
    """Data access for jobs."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, job: Job) -> Job:
        """Insert a new job."""
        self._session.add(job)
        await self._session.flush()
        return job

    async def get_by_id(self, job_id: uuid.UUID) -> Job | None:
        """Fetch a job by its UUID."""
        result = await self._session.execute(select(Job).where(Job.id == job_id))
        return result.scalar_one_or_none()

    async def list_open(
        self,
        page: int,
        limit: int,
        category: str | None = None,
        priority: str | None = None,
        search: str | None = None,
        sort: str = "newest",
    ) -> tuple[list[Job], int]:
        """Open jobs for browsing, newest first unless ``sort`` says otherwise."""
        stmt = select(Job).where(Job.status == "open")
        if category:
            stmt = stmt.where(Job.category == category)
        if priority:
            stmt = stmt.where(Job.priority == priority)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    Job.title.ilike(pattern),
                    Job.description.ilike(pattern),
                    Job.category.ilike(pattern),
                )
            )
        order = {
            "oldest": (Job.created_at.asc(),),
            "views": (Job.views.desc(), Job.created_at.desc()),
            "urgent": (Job.is_urgent.desc(), Job.created_at.desc()),
        }.get(sort, (Job.created_at.desc(),))
        return await _paginate(self._session, stmt.order_by(*order), page, limit)

    async def list_by_owner(
        self, owner_id: uuid.UUID, page: int, limit: int, status: str | None = None
    ) -> tuple[list[Job], int]:
        stmt = select(Job).where(Job.posted_by_id == owner_id)
        if status:
            stmt = stmt.where(Job.status == status)
        return await _paginate(self._session, stmt.order_by(Job.created_at.desc()), page, limit)

    async def compare_and_set_status(
        self, job_id: uuid.UUID, expected: str, new_status: str, **values: Any
    ) -> bool:
        """Move a job from ``expected`` to ``new_status`` if nobody beat us to it.

        Extra column values (selected provider, completion date) are written in
        the same statement. Returns False when zero rows matched.
        """
        result = await self._session.execute(
            update(Job)
            .where(Job.id == job_id, Job.status == expected)
            .values(status=new_status, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def increment_views(self, job: Job) -> Job:
        job.views += 1
        await self._session.flush()
        return job

    async def delete(self, job: Job) -> None:
        """Hard-delete a job together with all of its quotes."""
        await self._session.execute(delete(Quote).where(Quote.job_id == job.id))
        await self._session.delete(job)
        await self._session.flush()


class QuoteRepository:
    """Data access for quotes."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, quote: Quote) -> Quote:
        """Insert a quote inside a savepoint.

        The active-quote index raises IntegrityError on a duplicate; the
        savepoint keeps the surrounding transaction usable.
        """
        async with self._session.begin_nested():
            self._session.add(quote)
        return quote

    async def get_by_id(self, quote_id: uuid.UUID) -> Quote | None:
        result = await self._session.execute(select(Quote).where(Quote.id == quote_id))
        return result.scalar_one_or_none()

    async def get_active_for_provider(
        self, job_id: uuid.UUID, provider_id: uuid.UUID
    ) -> Quote | None:
        result = await self._session.execute(
            select(Quote).where(
                Quote.job_id == job_id,
                Quote.provider_id == provider_id,
                Quote.status.in_([QuoteStatus.PENDING.value, QuoteStatus.ACCEPTED.value]),
            )
        )
        return result.scalar_one_or_none()

    async def list_by_job(self, job_id: uuid.UUID) -> list[Quote]:
        """Quotes in the job's collection (withdrawn ones excluded), oldest first."""
        result = await self._session.execute(
            select(Quote)
            .where(Quote.job_id == job_id, Quote.status != QuoteStatus.WITHDRAWN.value)
            .order_by(Quote.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_by_provider(
        self, provider_id: uuid.UUID, page: int, limit: int, status: str | None = None
    ) -> tuple[list[Quote], int]:
        stmt = select(Quote).where(Quote.provider_id == provider_id)
        if status:
            stmt = stmt.where(Quote.status == status)
        return await _paginate(
            self._session, stmt.order_by(Quote.created_at.desc()), page, limit
        )

    async def compare_and_set_status(
        self, quote_id: uuid.UUID, expected: str, new_status: str, **values: Any
    ) -> bool:
        """Move a quote out of ``expected``. Returns False if it already left it."""
        result = await self._session.execute(
            update(Quote)
            .where(Quote.id == quote_id, Quote.status == expected)
            .values(status=new_status, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def reject_pending_siblings(
        self, job_id: uuid.UUID, accepted_quote_id: uuid.UUID, now: datetime
    ) -> list[uuid.UUID]:
        """Reject every other pending quote on the job in one statement.

        Withdrawn, expired and already-rejected quotes keep their status.
        Returns the ids of the quotes that were rejected.
        """
        sibling_filter = (
            Quote.job_id == job_id,
            Quote.id != accepted_quote_id,
            Quote.status == QuoteStatus.PENDING.value,
        )
        ids = list(
            (await self._session.execute(select(Quote.id).where(*sibling_filter))).scalars()
        )
        if ids:
            await self._session.execute(
                update(Quote)
                .where(Quote.id.in_(ids), Quote.status == QuoteStatus.PENDING.value)
                .values(status=QuoteStatus.REJECTED.value, responded_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
        return ids

    async def list_stale_pending(self, now: datetime) -> list[Quote]:
        """Pending quotes whose validity window has closed."""
        result = await self._session.execute(
            select(Quote).where(
                Quote.status == QuoteStatus.PENDING.value, Quote.expires_at <= now
            )
        )
        return list(result.scalars().all())

    async def count(self, *criteria) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(Quote).where(*criteria)
        )
        return result.scalar_one()

    async def average_price(self, *criteria) -> Decimal | None:
        """Mean ``price_amount`` over the matching quotes, None when there are none."""
        result = await self._session.execute(select(func.avg(Quote.price_amount)).where(*criteria))
        average = result.scalar_one()
        return None if average is None else Decimal(str(average))

    async def mark_viewed(self, quotes: list[Quote], now: datetime) -> None:
        changed = False
        for quote in quotes:
            if not quote.viewed_by_seeker:
                quote.viewed_by_seeker = True
                quote.viewed_at = now
                changed = True
        if changed:
            await self._session.flush()


class PaymentRepository:
    """Data access for escrow payments."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, payment: Payment) -> Payment:
        """Insert a payment inside a savepoint (see QuoteRepository.create)."""
        async with self._session.begin_nested():
            self._session.add(payment)
        return payment

    async def get_by_id(self, payment_id: uuid.UUID) -> Payment | None:
        result = await self._session.execute(select(Payment).where(Payment.id == payment_id))
        return result.scalar_one_or_none()

    async def get_for_update(self, payment_id: uuid.UUID) -> Payment | None:
        """Fetch a payment under a row lock, overwriting any copy already in the session.

        A second writer on the same payment waits for the first to commit and
        then reads its approvals and status. SQLite has no FOR UPDATE, but the
        reload still replaces stale identity-map state.
        """
        result = await self._session.execute(
            select(Payment)
            .where(Payment.id == payment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_intent_id(self, intent_id: str) -> Payment | None:
        result = await self._session.execute(
            select(Payment).where(Payment.gateway_intent_id == intent_id)
        )
        return result.scalar_one_or_none()

    async def get_active_for_quote(self, quote_id: uuid.UUID, payment_type: str) -> Payment | None:
        result = await self._session.execute(
            select(Payment).where(
                Payment.quote_id == quote_id,
                Payment.payment_type == payment_type,
                Payment.status.in_(ACTIVE_PAYMENT_STATUSES),
            )
        )
        return result.scalar_one_or_none()

    async def list_for_user(
        self,
        user: User,
        page: int,
        limit: int,
        status: str | None = None,
        escrow_status: str | None = None,
    ) -> tuple[list[Payment], int]:
        """Payments where the user is the payer (seekers) or payee (providers)."""
        party_column = Payment.payer_id if user.role == UserRole.SEEKER else Payment.payee_id
        stmt = select(Payment).where(party_column == user.id)
        if status:
            stmt = stmt.where(Payment.status == status)
        if escrow_status:
            stmt = stmt.where(Payment.escrow_status == escrow_status)
        return await _paginate(
            self._session, stmt.order_by(Payment.created_at.desc()), page, limit
        )

    async def list_held_for_job(self, job_id: uuid.UUID) -> list[Payment]:
        result = await self._session.execute(
            select(Payment).where(
                Payment.job_id == job_id, Payment.escrow_status == EscrowStatus.HELD.value
            )
        )
        return list(result.scalars().all())

    async def compare_and_set_status(
        self, payment_id: uuid.UUID, expected: str, new_status: str, **values: Any
    ) -> bool:
        """Move a payment out of ``expected``. Returns False if it already left it."""
        result = await self._session.execute(
            update(Payment)
            .where(Payment.id == payment_id, Payment.status == expected)
            .values(status=new_status, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def sum_amount(self, column, *criteria) -> Decimal:
        result = await self._session.execute(
            select(func.coalesce(func.sum(column), 0)).where(*criteria)
        )
        return Decimal(str(result.scalar_one()))

    async def count(self, *criteria) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(Payment).where(*criteria)
        )
        return result.scalar_one()


class ApprovalRepository:
    """Data access for payment release approvals."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self, payment_id: uuid.UUID, user_id: uuid.UUID, user_type: str, notes: str = ""
    ) -> PaymentApproval | None:
        """Insert an approval inside a savepoint.

        Returns None when the (payment, user) pair already exists; the outer
        transaction stays usable either way.
        """
        approval = PaymentApproval(
            payment_id=payment_id, user_id=user_id, user_type=user_type, notes=notes
        )
        try:
            async with self._session.begin_nested():
                self._session.add(approval)
        except IntegrityError:
            return None
        return approval


class EarningsRepository:
    """Data access for the append-only provider earnings ledger."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self, user_id: uuid.UUID, payment_id: uuid.UUID, kind: LedgerEntryKind, amount: Decimal
    ) -> EarningsEntry | None:
        """Append one entry. Returns None if this (payment, kind) was already booked."""
        entry = EarningsEntry(
            user_id=user_id, payment_id=payment_id, kind=kind.value, amount=amount
        )
        try:
            async with self._session.begin_nested():
                self._session.add(entry)
        except IntegrityError:
            return None
        return entry

    async def totals_by_kind(self, user_id: uuid.UUID) -> dict[str, Decimal]:
        result = await self._session.execute(
            select(EarningsEntry.kind, func.coalesce(func.sum(EarningsEntry.amount), 0))
            .where(EarningsEntry.user_id == user_id)
            .group_by(EarningsEntry.kind)
        )
        return {kind: Decimal(str(total)) for kind, total in result.all()}


class MessageRepository:
    """Data access for chat messages."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: Message) -> Message:
        """Insert a message inside a savepoint (see QuoteRepository.create)."""
        async with self._session.begin_nested():
            self._session.add(message)
        return message


class ReviewRepository:
    """Data access for reviews and the ratings derived from them."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, review: Review) -> Review | None:
        """Insert a review. Returns None if the reviewer already reviewed this job."""
        try:
            async with self._session.begin_nested():
                self._session.add(review)
        except IntegrityError:
            return None
        return review

    async def get_by_id(self, review_id: uuid.UUID) -> Review | None:
        return await self._session.get(Review, review_id)

    async def list_for_reviewee(
        self,
        user_id: uuid.UUID,
        page: int,
        limit: int,
        rating: int | None = None,
        reviewer_type: str | None = None,
    ) -> tuple[list[Review], int]:
        stmt = select(Review).where(Review.reviewee_id == user_id)
        if rating is not None:
            stmt = stmt.where(Review.rating == rating)
        if reviewer_type:
            stmt = stmt.where(Review.reviewer_type == reviewer_type)
        return await _paginate(
            self._session, stmt.order_by(Review.created_at.desc()), page, limit
        )

    async def rating_summary(self, user_id: uuid.UUID) -> tuple[Decimal | None, int]:
        """(average rating, review count) over every review the user received."""
        result = await self._session.execute(
            select(func.avg(Review.rating), func.count(Review.id)).where(
                Review.reviewee_id == user_id
            )
        )
        average, count = result.one()
        return (Decimal(str(average)) if average is not None else None), count

    async def rating_distribution(self, user_id: uuid.UUID) -> dict[int, int]:
        result = await self._session.execute(
            select(Review.rating, func.count(Review.id))
            .where(Review.reviewee_id == user_id)
            .group_by(Review.rating)
        )
        return {rating: count for rating, count in result.all()}


class EventRepository:
    """Data access for the append-only audit event log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        entity_type: EntityType,
        entity_id: uuid.UUID,
        event_type: EventType,
        old_status: str | None,
        new_status: str | None,
        actor: str = "SYSTEM",
        metadata: dict | None = None,
    ) -> AuditEvent:
        """Append a new audit event. This is the ONLY write operation allowed."""
        evt = AuditEvent(
            entity_type=entity_type.value,
            entity_id=entity_id,
            event_type=event_type.value,
            old_status=old_status,
            new_status=new_status,
            actor=actor,
            metadata_json=metadata,
        )
        self._session.add(evt)
        await self._session.flush()
        return evt

    async def get_by_entity(
        self, entity_type: EntityType, entity_id: uuid.UUID
    ) -> list[AuditEvent]:
        """Fetch all events for an entity in chronological order."""
        result = await self._session.execute(
            select(AuditEvent)
            .where(AuditEvent.entity_type == entity_type.value, AuditEvent.entity_id == entity_id)
            .order_by(AuditEvent.created_at.asc())
        )
        return list(result.scalars().all())
