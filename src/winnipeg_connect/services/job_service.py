"""Job Service: posting, browsing, editing and status changes for jobs.

Coordinates between:
    - JobStateMachine (transition guard)
    - JobRepository / PaymentRepository (data access)
    - EventRepository (audit trail)
    - NotificationService (system chat messages)

Quote acceptance, the only way into in_progress, lives in QuoteService.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from winnipeg_connect.domain.enums import (
    EntityType,
    EventType,
    JobStatus,
    SystemMessageType,
    UserRole,
)
from winnipeg_connect.domain.exceptions import (
    InvalidStateTransitionError,
    JobNotEditableError,
    JobNotFoundError,
    NotAuthorizedError,
    UnsettledEscrowError,
)
from winnipeg_connect.domain.state_machine import JOB_STATUS_EVENTS, JobStateMachine
from winnipeg_connect.infrastructure.database.orm_models import Job
from winnipeg_connect.infrastructure.database.repositories import (
    EventRepository,
    JobRepository,
    PaymentRepository,
)
from winnipeg_connect.logging_config import get_logger
from winnipeg_connect.services.base import TransitionService
from winnipeg_connect.services.notification_service import NotificationService

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from winnipeg_connect.infrastructure.database.orm_models import User

logger = get_logger(__name__)

# Fields a seeker may change while the job is open.
EDITABLE_JOB_FIELDS = frozenset(
    {
        "title",
        "description",
        "category",
        "subcategories",
        "budget",
        "timeline",
        "location",
        "requirements",
        "priority",
        "is_urgent",
        "response_time",
    }
)


class JobService(TransitionService):
    """Manages the job lifecycle outside of quote acceptance."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self._job_repo = JobRepository(session)
        self._payment_repo = PaymentRepository(session)
        self._event_repo = EventRepository(session)
        self._notifications = NotificationService(session)

    # ------------------------------------------------------------------
    # Posting & editing
    # ------------------------------------------------------------------

    async def create_job(self, owner: User, fields: dict[str, Any]) -> Job:
        """Post a new job in the open state. Seekers only."""
        if owner.role != UserRole.SEEKER:
            raise NotAuthorizedError("post jobs")

        job = Job(
            posted_by_id=owner.id,
            status=JobStatus.OPEN.value,
            **{k: v for k, v in fields.items() if k in EDITABLE_JOB_FIELDS},
        )
        job = await self._job_repo.create(job)

        await self._event_repo.record(
            entity_type=EntityType.JOB,
            entity_id=job.id,
            event_type=EventType.JOB_CREATED,
            old_status=None,
            new_status=JobStatus.OPEN.value,
            actor=str(owner.id),
            metadata={"title": job.title, "category": job.category},
        )

        logger.info("job.created", job_id=str(job.id), owner=str(owner.id))
        return job

    async def update_job(self, job_id: uuid.UUID, user: User, changes: dict[str, Any]) -> Job:
        """Edit an open job. Ownership and status fields are never updatable."""
        job = await self._get_job_or_raise(job_id)
        self._ensure_owner(job, user, "update this job")
        if job.status != JobStatus.OPEN:
            raise JobNotEditableError(str(job.id), job.status)

        for field, value in changes.items():
            if field in EDITABLE_JOB_FIELDS:
                setattr(job, field, value)
        await self._session.flush()

        logger.info("job.updated", job_id=str(job.id), fields=sorted(changes))
        return job

    async def delete_job(self, job_id: uuid.UUID, user: User) -> Job | None:
        """Delete a job.

        A job that ever had a provider selected is soft-cancelled through the
        state machine and returned; otherwise it is hard-deleted together with
        its quotes and None is returned.
        """
        job = await self._get_job_or_raise(job_id)
        self._ensure_owner(job, user, "delete this job")

        if job.selected_provider_id is not None:
            old_status, new_status = await self._transition(
                self._job_repo, job, JobStateMachine, "cancel", "job"
            )
            await self._record_status_change(job, old_status, new_status, user, "deleted")
            logger.info("job.soft_cancelled", job_id=str(job.id))
            return job

        await self._event_repo.record(
            entity_type=EntityType.JOB,
            entity_id=job.id,
            event_type=EventType.JOB_DELETED,
            old_status=job.status,
            new_status=None,
            actor=str(user.id),
        )
        await self._job_repo.delete(job)
        logger.info("job.deleted", job_id=str(job_id))
        return None

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    async def change_status(self, job_id: uuid.UUID, user: User, target: JobStatus) -> Job:
        """Move a job to ``target`` through the status endpoint.

        Raises:
            InvalidStateTransitionError: For in_progress (quote acceptance only)
                or any transition the job state machine forbids.
            NotAuthorizedError: If the caller is neither the owner nor the
                selected provider, or a non-owner tries to cancel.
            UnsettledEscrowError: When completing with held, unapproved funds.
        """
        job = await self._get_job_or_raise(job_id)

        is_owner = job.posted_by_id == user.id
        is_provider = job.selected_provider_id is not None and job.selected_provider_id == user.id
        if not (is_owner or is_provider):
            raise NotAuthorizedError("update this job")

        event_name = JOB_STATUS_EVENTS.get(target)
        if event_name is None:
            raise InvalidStateTransitionError(job.status, f"set {target.value}", entity="job")
        if event_name == "cancel" and not is_owner:
            raise NotAuthorizedError("cancel this job")

        values: dict[str, Any] = {}
        if target == JobStatus.COMPLETED:
            await self._ensure_escrow_settled(job)
            values["completion_date"] = datetime.now(UTC)

        old_status, new_status = await self._transition(
            self._job_repo, job, JobStateMachine, event_name, "job", **values
        )
        await self._record_status_change(job, old_status, new_status, user)

        if target == JobStatus.COMPLETED and job.selected_provider_id is not None:
            receiver = job.selected_provider_id if is_owner else job.posted_by_id
            await self._notifications.emit_system_message(
                sender_id=user.id,
                receiver_id=receiver,
                system_type=SystemMessageType.JOB_COMPLETED,
                job_id=job.id,
                data={"job_id": str(job.id)},
            )

        logger.info(
            "job.status_changed",
            job_id=str(job.id),
            old_status=old_status,
            new_status=new_status,
            by=str(user.id),
        )
        return job

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_job(self, job_id: uuid.UUID, viewer: User | None = None) -> Job:
        """Fetch a job; a view by anyone but the owner bumps its view counter."""
        job = await self._get_job_or_raise(job_id)
        if viewer is not None and viewer.id != job.posted_by_id:
            await self._job_repo.increment_views(job)
        return job

    async def list_open_jobs(
        self,
        page: int,
        limit: int,
        category: str | None = None,
        priority: str | None = None,
        search: str | None = None,
        sort: str = "newest",
    ) -> tuple[list[Job], int]:
        return await self._job_repo.list_open(
            page, limit, category=category, priority=priority, search=search, sort=sort
        )

    async def list_my_jobs(
        self, owner: User, page: int, limit: int, status: str | None = None
    ) -> tuple[list[Job], int]:
        return await self._job_repo.list_by_owner(owner.id, page, limit, status=status)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_job_or_raise(self, job_id: uuid.UUID) -> Job:
        job = await self._job_repo.get_by_id(job_id)
        if job is None:
            raise JobNotFoundError(str(job_id))
        return job

    @staticmethod
    def _ensure_owner(job: Job, user: User, action: str) -> None:
        if job.posted_by_id != user.id:
            raise NotAuthorizedError(action)

    async def _ensure_escrow_settled(self, job: Job) -> None:
        """A job can't complete while funds sit in escrow with nobody's approval."""
        for payment in await self._payment_repo.list_held_for_job(job.id):
            if not payment.approvals:
                raise UnsettledEscrowError(str(job.id))

    async def _record_status_change(
        self, job: Job, old_status: str, new_status: str, user: User, via: str = "status"
    ) -> None:
        await self._event_repo.record(
            entity_type=EntityType.JOB,
            entity_id=job.id,
            event_type=EventType.JOB_STATUS_CHANGED,
            old_status=old_status,
            new_status=new_status,
            actor=str(user.id),
            metadata={"via": via},
        )
