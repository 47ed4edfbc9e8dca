"""Quote Service: submission, acceptance, rejection, withdrawal and expiry.

Acceptance is the one place where a job leaves the open state into
in_progress. It runs as three statements in the caller's transaction:

    1. UPDATE jobs   SET status='in_progress', selected_* WHERE status='open'
    2. UPDATE quotes SET status='accepted' WHERE id=:quote AND status='pending'
    3. UPDATE quotes SET status='rejected' WHERE job=:job AND status='pending'

Step 1 is the exclusivity gate: of two concurrent acceptances on the same
job only one changes a row; the other gets JobClosedError and its
transaction rolls back.

Expiry is lazy: ``Quote.is_valid()`` is checked at accept / update time and
listings report the effective status. ``expire_stale_quotes`` persists
expiry and is meant for an external scheduler.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import IntegrityError

from winnipeg_connect.config import Settings, get_settings
from winnipeg_connect.domain.enums import (
    EntityType,
    EventType,
    JobStatus,
    QuoteStatus,
    SystemMessageType,
    UserRole,
)
from winnipeg_connect.domain.exceptions import (
    AlreadyQuotedError,
    ConcurrentModificationError,
    JobClosedError,
    JobNotFoundError,
    NotAuthorizedError,
    QuoteExpiredError,
    QuoteNotFoundError,
    QuoteNotPendingError,
)
from winnipeg_connect.domain.fees import round_money
from winnipeg_connect.domain.state_machine import (
    JobStateMachine,
    QuoteStateMachine,
    fire_transition,
)
from winnipeg_connect.infrastructure.database.orm_models import Quote
from winnipeg_connect.infrastructure.database.repositories import (
    EventRepository,
    JobRepository,
    QuoteRepository,
)
from winnipeg_connect.logging_config import get_logger
from winnipeg_connect.services.base import TransitionService
from winnipeg_connect.services.notification_service import NotificationService

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from winnipeg_connect.infrastructure.database.orm_models import Job, User

logger = get_logger(__name__)

# Fields a provider may change on a pending quote.
EDITABLE_QUOTE_FIELDS = frozenset(
    {
        "price_amount",
        "price_type",
        "price_breakdown",
        "estimated_duration",
        "start_date",
        "completion_date",
        "message",
        "includes_supplies",
        "supply_details",
        "warranty",
        "availability",
        "terms",
        "payment_terms",
    }
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class QuoteService(TransitionService):
    """Manages quotes and the quote/job exclusivity rules."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        super().__init__(session)
        self._settings = settings or get_settings()
        self._quote_repo = QuoteRepository(session)
        self._job_repo = JobRepository(session)
        self._event_repo = EventRepository(session)
        self._notifications = NotificationService(session)

    # ------------------------------------------------------------------
    # Submission & editing
    # ------------------------------------------------------------------

    async def submit_quote(
        self, provider: User, job_id: uuid.UUID, fields: dict[str, Any]
    ) -> Quote:
        """Submit a quote against an open job. Providers only.

        Raises:
            JobClosedError: If the job is not open for quotes.
            AlreadyQuotedError: If this provider already has a pending or
                accepted quote on the job (pre-check and unique index).
        """
        if provider.role != UserRole.PROVIDER:
            raise NotAuthorizedError("submit quotes")

        job = await self._get_job_or_raise(job_id)
        if not job.is_open_for_quotes():
            raise JobClosedError(str(job.id))
        if await self._quote_repo.get_active_for_provider(job.id, provider.id) is not None:
            raise AlreadyQuotedError(str(job.id))

        fields = dict(fields)
        expires_at = fields.pop("expires_at", None) or _utcnow() + timedelta(
            days=self._settings.quote_validity_days
        )
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        quote = Quote(
            job_id=job.id,
            provider_id=provider.id,
            seeker_id=job.posted_by_id,
            status=QuoteStatus.PENDING.value,
            expires_at=expires_at,
            **{k: v for k, v in fields.items() if k in EDITABLE_QUOTE_FIELDS},
        )
        try:
            quote = await self._quote_repo.create(quote)
        except IntegrityError as err:
            raise AlreadyQuotedError(str(job.id)) from err

        await self._event_repo.record(
            entity_type=EntityType.QUOTE,
            entity_id=quote.id,
            event_type=EventType.QUOTE_SUBMITTED,
            old_status=None,
            new_status=QuoteStatus.PENDING.value,
            actor=str(provider.id),
            metadata={"job_id": str(job.id), "amount": str(quote.price_amount)},
        )
        await self._notifications.emit_system_message(
            sender_id=provider.id,
            receiver_id=job.posted_by_id,
            system_type=SystemMessageType.QUOTE_SENT,
            job_id=job.id,
            data={"quote_id": str(quote.id), "amount": str(quote.price_amount)},
        )

        logger.info(
            "quote.submitted",
            quote_id=str(quote.id),
            job_id=str(job.id),
            provider=str(provider.id),
            amount=str(quote.price_amount),
        )
        return quote

    async def update_quote(
        self, quote_id: uuid.UUID, provider: User, changes: dict[str, Any]
    ) -> Quote:
        """Edit one's own quote while it is pending and unexpired."""
        quote = await self._get_quote_or_raise(quote_id)
        if quote.provider_id != provider.id:
            raise NotAuthorizedError("update this quote")
        self._ensure_actionable(quote)

        for field, value in changes.items():
            if field in EDITABLE_QUOTE_FIELDS:
                setattr(quote, field, value)
        await self._session.flush()

        logger.info("quote.updated", quote_id=str(quote.id), fields=sorted(changes))
        return quote

    # ------------------------------------------------------------------
    # Acceptance / rejection / withdrawal
    # ------------------------------------------------------------------

    async def accept_quote(
        self, quote_id: uuid.UUID, seeker: User, now: datetime | None = None
    ) -> Quote:
        """Accept a quote, select its provider and reject the job's other pending quotes.

        Raises:
            NotAuthorizedError: If the caller does not own the job.
            QuoteNotPendingError / QuoteExpiredError: If the quote can't be accepted.
            JobClosedError: If the job is not open, including losing a race
                against a concurrent acceptance.
        """
        now = now or _utcnow()
        quote = await self._get_quote_or_raise(quote_id)
        job = await self._get_job_or_raise(quote.job_id)
        if job.posted_by_id != seeker.id:
            raise NotAuthorizedError("accept this quote")

        self._ensure_actionable(quote, now)
        if job.status != JobStatus.OPEN:
            raise JobClosedError(str(job.id))

        # Validate both transitions before touching any row.
        new_job_status = fire_transition(JobStateMachine, job.status, "assign_provider")
        new_quote_status = fire_transition(
            QuoteStateMachine, quote.status, "accept", entity="quote"
        )

        won = await self._job_repo.compare_and_set_status(
            job.id,
            JobStatus.OPEN.value,
            new_job_status,
            selected_provider_id=quote.provider_id,
            selected_quote_id=quote.id,
        )
        if not won:
            raise JobClosedError(str(job.id))

        won = await self._quote_repo.compare_and_set_status(
            quote.id, QuoteStatus.PENDING.value, new_quote_status, responded_at=now
        )
        if not won:
            raise ConcurrentModificationError("quote", str(quote.id))

        rejected_ids = await self._quote_repo.reject_pending_siblings(job.id, quote.id, now)

        await self._session.refresh(job)
        await self._session.refresh(quote)

        actor = str(seeker.id)
        await self._event_repo.record(
            entity_type=EntityType.QUOTE,
            entity_id=quote.id,
            event_type=EventType.QUOTE_ACCEPTED,
            old_status=QuoteStatus.PENDING.value,
            new_status=quote.status,
            actor=actor,
        )
        await self._event_repo.record(
            entity_type=EntityType.JOB,
            entity_id=job.id,
            event_type=EventType.JOB_STATUS_CHANGED,
            old_status=JobStatus.OPEN.value,
            new_status=job.status,
            actor=actor,
            metadata={"via": "quote_accepted", "quote_id": str(quote.id)},
        )
        for rejected_id in rejected_ids:
            await self._event_repo.record(
                entity_type=EntityType.QUOTE,
                entity_id=rejected_id,
                event_type=EventType.QUOTE_REJECTED,
                old_status=QuoteStatus.PENDING.value,
                new_status=QuoteStatus.REJECTED.value,
                actor="SYSTEM",
                metadata={"reason": "another quote was accepted", "accepted": str(quote.id)},
            )

        await self._notifications.emit_system_message(
            sender_id=seeker.id,
            receiver_id=quote.provider_id,
            system_type=SystemMessageType.QUOTE_ACCEPTED,
            job_id=job.id,
            data={"quote_id": str(quote.id), "amount": str(quote.price_amount)},
        )

        logger.info(
            "quote.accepted",
            quote_id=str(quote.id),
            job_id=str(job.id),
            siblings_rejected=len(rejected_ids),
        )
        return quote

    async def reject_quote(
        self, quote_id: uuid.UUID, seeker: User, reason: str | None = None
    ) -> Quote:
        """Reject one pending quote; siblings are unaffected."""
        quote = await self._get_quote_or_raise(quote_id)
        job = await self._get_job_or_raise(quote.job_id)
        if job.posted_by_id != seeker.id:
            raise NotAuthorizedError("reject this quote")
        if quote.status != QuoteStatus.PENDING:
            raise QuoteNotPendingError(str(quote.id), quote.status)

        old_status, new_status = await self._transition(
            self._quote_repo,
            quote,
            QuoteStateMachine,
            "reject",
            "quote",
            responded_at=_utcnow(),
            rejection_reason=reason,
        )
        await self._event_repo.record(
            entity_type=EntityType.QUOTE,
            entity_id=quote.id,
            event_type=EventType.QUOTE_REJECTED,
            old_status=old_status,
            new_status=new_status,
            actor=str(seeker.id),
            metadata={"reason": reason} if reason else None,
        )
        await self._notifications.emit_system_message(
            sender_id=seeker.id,
            receiver_id=quote.provider_id,
            system_type=SystemMessageType.QUOTE_REJECTED,
            job_id=job.id,
            data={"quote_id": str(quote.id), "reason": reason},
        )

        logger.info("quote.rejected", quote_id=str(quote.id), job_id=str(job.id))
        return quote

    async def withdraw_quote(self, quote_id: uuid.UUID, provider: User) -> Quote:
        """Withdraw one's own pending quote; it leaves the job's quote collection."""
        quote = await self._get_quote_or_raise(quote_id)
        if quote.provider_id != provider.id:
            raise NotAuthorizedError("withdraw this quote")
        if quote.status != QuoteStatus.PENDING:
            raise QuoteNotPendingError(str(quote.id), quote.status)

        old_status, new_status = await self._transition(
            self._quote_repo, quote, QuoteStateMachine, "withdraw", "quote",
            responded_at=_utcnow(),
        )
        await self._event_repo.record(
            entity_type=EntityType.QUOTE,
            entity_id=quote.id,
            event_type=EventType.QUOTE_WITHDRAWN,
            old_status=old_status,
            new_status=new_status,
            actor=str(provider.id),
        )

        logger.info("quote.withdrawn", quote_id=str(quote.id), job_id=str(quote.job_id))
        return quote

    # ------------------------------------------------------------------
    # Expiry sweep
    # ------------------------------------------------------------------

    async def expire_stale_quotes(self, now: datetime | None = None) -> int:
        """Persist pending -> expired for every quote past its validity window.

        Returns the number of quotes expired. Quotes that changed status
        between the scan and the update are skipped.
        """
        now = now or _utcnow()
        expired = 0
        for quote in await self._quote_repo.list_stale_pending(now):
            new_status = fire_transition(QuoteStateMachine, quote.status, "expire", "quote")
            if not await self._quote_repo.compare_and_set_status(
                quote.id, QuoteStatus.PENDING.value, new_status
            ):
                continue
            await self._event_repo.record(
                entity_type=EntityType.QUOTE,
                entity_id=quote.id,
                event_type=EventType.QUOTE_EXPIRED,
                old_status=QuoteStatus.PENDING.value,
                new_status=new_status,
                actor="SYSTEM",
                metadata={"expires_at": quote.expires_at.isoformat()},
            )
            expired += 1

        if expired:
            logger.info("quote.expiry_sweep", expired=expired)
        return expired

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_quote(self, quote_id: uuid.UUID, user: User) -> Quote:
        """Fetch a quote for one of its two parties; a seeker view marks it viewed."""
        quote = await self._get_quote_or_raise(quote_id)
        if user.id not in (quote.provider_id, quote.seeker_id):
            raise NotAuthorizedError("view this quote")
        if user.id == quote.seeker_id:
            await self._quote_repo.mark_viewed([quote], _utcnow())
        return quote

    async def list_job_quotes(self, job_id: uuid.UUID, user: User) -> list[Quote]:
        """The job's quote collection, for its owner. Marks the quotes viewed."""
        job = await self._get_job_or_raise(job_id)
        if job.posted_by_id != user.id:
            raise NotAuthorizedError("view quotes for this job")
        quotes = await self._quote_repo.list_by_job(job.id)
        await self._quote_repo.mark_viewed(quotes, _utcnow())
        return quotes

    async def list_my_quotes(
        self, provider: User, page: int, limit: int, status: str | None = None
    ) -> tuple[list[Quote], int]:
        return await self._quote_repo.list_by_provider(provider.id, page, limit, status=status)

    async def get_provider_stats(self, provider: User, now: datetime | None = None) -> dict:
        """Quote counts, acceptance rate and average price for a provider.

        Counts use the stored status. The acceptance rate is accepted over
        decided (accepted + rejected) quotes, as a percentage to one decimal;
        it is 0.0 until a quote has been decided.
        """
        if provider.role != UserRole.PROVIDER:
            raise NotAuthorizedError("view quote statistics")
        now = now or _utcnow()
        repo = self._quote_repo
        mine = Quote.provider_id == provider.id

        accepted = await repo.count(mine, Quote.status == QuoteStatus.ACCEPTED.value)
        rejected = await repo.count(mine, Quote.status == QuoteStatus.REJECTED.value)
        decided = accepted + rejected
        average = await repo.average_price(mine)
        return {
            "total_quotes": await repo.count(mine),
            "pending_quotes": await repo.count(mine, Quote.status == QuoteStatus.PENDING.value),
            "accepted_quotes": accepted,
            "rejected_quotes": rejected,
            "quotes_last_30_days": await repo.count(
                mine, Quote.created_at >= now - timedelta(days=30)
            ),
            "acceptance_rate": round(accepted / decided * 100, 1) if decided else 0.0,
            "average_quote_value": round_money(average or Decimal("0")),
        }

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_quote_or_raise(self, quote_id: uuid.UUID) -> Quote:
        quote = await self._quote_repo.get_by_id(quote_id)
        if quote is None:
            raise QuoteNotFoundError(str(quote_id))
        return quote

    async def _get_job_or_raise(self, job_id: uuid.UUID) -> Job:
        job = await self._job_repo.get_by_id(job_id)
        if job is None:
            raise JobNotFoundError(str(job_id))
        return job

    @staticmethod
    def _ensure_actionable(quote: Quote, now: datetime | None = None) -> None:
        if quote.status != QuoteStatus.PENDING:
            raise QuoteNotPendingError(str(quote.id), quote.status)
        if not quote.is_valid(now):
            raise QuoteExpiredError(str(quote.id))
