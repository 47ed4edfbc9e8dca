"""Tests for JobService: posting, editing, deletion and status changes."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from winnipeg_connect.domain.enums import EventType, JobStatus, QuoteStatus
from winnipeg_connect.domain.exceptions import (
    InvalidStateTransitionError,
    JobNotEditableError,
    JobNotFoundError,
    NotAuthorizedError,
    UnsettledEscrowError,
)
from winnipeg_connect.infrastructure.database.orm_models import AuditEvent, Message, Quote


class TestCreateAndEdit:
    @pytest.mark.asyncio
    async def test_create_job(self, market) -> None:
        seeker = await market.seeker()
        job = await market.job(seeker)

        assert job.status == JobStatus.OPEN
        assert job.posted_by_id == seeker.id
        assert job.views == 0
        assert job.selected_provider_id is None
        assert job.budget == {"type": "fixed", "amount": "1000.00"}

    @pytest.mark.asyncio
    async def test_providers_cannot_post(self, market) -> None:
        with pytest.raises(NotAuthorizedError):
            await market.job(await market.provider())

    @pytest.mark.asyncio
    async def test_status_fields_are_not_editable(self, market) -> None:
        seeker = await market.seeker()
        job = await market.job(seeker)

        updated = await market.jobs.update_job(
            job.id, seeker, {"title": "Bathroom renovation", "status": "completed"}
        )
        assert updated.title == "Bathroom renovation"
        assert updated.status == JobStatus.OPEN

    @pytest.mark.asyncio
    async def test_only_open_jobs_are_editable(self, market) -> None:
        seeker, _, job, _ = await market.accepted()
        with pytest.raises(JobNotEditableError):
            await market.jobs.update_job(job.id, seeker, {"title": "Too late"})

    @pytest.mark.asyncio
    async def test_only_owner_edits(self, market) -> None:
        job = await market.job(await market.seeker())
        with pytest.raises(NotAuthorizedError):
            await market.jobs.update_job(job.id, await market.seeker(), {"title": "Mine now"})


class TestViews:
    @pytest.mark.asyncio
    async def test_owner_views_are_not_counted(self, market) -> None:
        seeker = await market.seeker()
        job = await market.job(seeker)

        await market.jobs.get_job(job.id, viewer=seeker)
        await market.jobs.get_job(job.id, viewer=await market.provider())
        job = await market.jobs.get_job(job.id)

        assert job.views == 1

    @pytest.mark.asyncio
    async def test_unknown_job(self, market) -> None:
        import uuid

        with pytest.raises(JobNotFoundError):
            await market.jobs.get_job(uuid.uuid4())


class TestChangeStatus:
    @pytest.mark.asyncio
    async def test_in_progress_only_via_acceptance(self, market) -> None:
        seeker = await market.seeker()
        job = await market.job(seeker)
        with pytest.raises(InvalidStateTransitionError):
            await market.jobs.change_status(job.id, seeker, JobStatus.IN_PROGRESS)

    @pytest.mark.asyncio
    async def test_open_job_cannot_complete(self, market) -> None:
        seeker = await market.seeker()
        job = await market.job(seeker)
        with pytest.raises(InvalidStateTransitionError):
            await market.jobs.change_status(job.id, seeker, JobStatus.COMPLETED)

    @pytest.mark.asyncio
    async def test_complete_without_payments(self, market, session) -> None:
        seeker, provider, job, _ = await market.accepted()

        completed = await market.jobs.change_status(job.id, provider, JobStatus.COMPLETED)

        assert completed.status == JobStatus.COMPLETED
        assert completed.completion_date is not None
        message = (
            await session.execute(select(Message).where(Message.system_type == "job_completed"))
        ).scalar_one()
        assert message.sender_id == provider.id
        assert message.receiver_id == seeker.id

    @pytest.mark.asyncio
    async def test_complete_with_unapproved_escrow(self, market) -> None:
        seeker, _, job, _ = await market.held_payment()
        with pytest.raises(UnsettledEscrowError):
            await market.jobs.change_status(job.id, seeker, JobStatus.COMPLETED)

    @pytest.mark.asyncio
    async def test_complete_after_one_approval(self, market) -> None:
        seeker, _, job, payment = await market.held_payment()
        await market.payments.approve_release(payment.id, seeker)

        completed = await market.jobs.change_status(job.id, seeker, JobStatus.COMPLETED)
        assert completed.status == JobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_dispute_then_complete(self, market) -> None:
        seeker, provider, job, _ = await market.accepted()
        await market.jobs.change_status(job.id, provider, JobStatus.DISPUTED)
        job = await market.jobs.change_status(job.id, seeker, JobStatus.COMPLETED)
        assert job.status == JobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_provider_cannot_cancel(self, market) -> None:
        _, provider, job, _ = await market.accepted()
        await market.jobs.change_status(job.id, provider, JobStatus.DISPUTED)
        with pytest.raises(NotAuthorizedError):
            await market.jobs.change_status(job.id, provider, JobStatus.CANCELLED)

    @pytest.mark.asyncio
    async def test_outsider_cannot_change_status(self, market) -> None:
        _, _, job, _ = await market.accepted()
        with pytest.raises(NotAuthorizedError):
            await market.jobs.change_status(job.id, await market.provider(), JobStatus.DISPUTED)

    @pytest.mark.asyncio
    async def test_status_change_is_audited(self, market, session) -> None:
        seeker = await market.seeker()
        job = await market.job(seeker)
        await market.jobs.change_status(job.id, seeker, JobStatus.CANCELLED)

        events = (
            await session.execute(
                select(AuditEvent)
                .where(AuditEvent.entity_id == job.id)
                .order_by(AuditEvent.created_at)
            )
        ).scalars().all()
        assert [e.event_type for e in events] == [
            EventType.JOB_CREATED,
            EventType.JOB_STATUS_CHANGED,
        ]
        assert events[-1].old_status == "open"
        assert events[-1].new_status == "cancelled"


class TestDelete:
    @pytest.mark.asyncio
    async def test_hard_delete_unmatched_job(self, market, session) -> None:
        seeker = await market.seeker()
        job = await market.job(seeker)
        job_id = job.id
        await market.quote(await market.provider(), job)

        assert await market.jobs.delete_job(job_id, seeker) is None

        with pytest.raises(JobNotFoundError):
            await market.jobs.get_job(job_id)
        remaining = (
            await session.execute(select(Quote).where(Quote.job_id == job_id))
        ).scalars().all()
        assert remaining == []

    @pytest.mark.asyncio
    async def test_hard_delete_removes_quotes_of_every_status(self, market, session) -> None:
        seeker = await market.seeker()
        job = await market.job(seeker)
        job_id = job.id
        rejected = await market.quote(await market.provider(), job)
        withdrawn_by = await market.provider()
        withdrawn = await market.quote(withdrawn_by, job)
        await market.quote(await market.provider(), job)
        await market.quotes.reject_quote(rejected.id, seeker)
        await market.quotes.withdraw_quote(withdrawn.id, withdrawn_by)

        assert await market.jobs.delete_job(job_id, seeker) is None

        remaining = (
            await session.execute(select(Quote).where(Quote.job_id == job_id))
        ).scalars().all()
        assert remaining == []
        deleted = (
            await session.execute(
                select(AuditEvent).where(
                    AuditEvent.entity_id == job_id,
                    AuditEvent.event_type == EventType.JOB_DELETED,
                )
            )
        ).scalar_one()
        assert deleted.old_status == JobStatus.OPEN
        assert deleted.new_status is None

    @pytest.mark.asyncio
    async def test_matched_disputed_job_is_soft_cancelled(self, market, session) -> None:
        seeker, provider, job, quote = await market.accepted()
        await market.jobs.change_status(job.id, seeker, JobStatus.DISPUTED)

        cancelled = await market.jobs.delete_job(job.id, seeker)

        assert cancelled is not None
        assert cancelled.status == JobStatus.CANCELLED
        assert cancelled.selected_provider_id == provider.id
        await session.refresh(quote)
        assert quote.status == QuoteStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_in_progress_job_cannot_be_deleted(self, market) -> None:
        seeker, _, job, _ = await market.accepted()
        with pytest.raises(InvalidStateTransitionError):
            await market.jobs.delete_job(job.id, seeker)

    @pytest.mark.asyncio
    async def test_only_owner_deletes(self, market) -> None:
        job = await market.job(await market.seeker())
        with pytest.raises(NotAuthorizedError):
            await market.jobs.delete_job(job.id, await market.seeker())


class TestListing:
    @pytest.mark.asyncio
    async def test_browse_only_open_jobs(self, market) -> None:
        seeker = await market.seeker()
        open_job = await market.job(seeker, title="Fence repair", category="carpentry")
        await market.accepted()

        jobs, total = await market.jobs.list_open_jobs(1, 10)
        assert total == 1
        assert jobs[0].id == open_job.id

    @pytest.mark.asyncio
    async def test_filters(self, market) -> None:
        seeker = await market.seeker()
        await market.job(seeker, title="Fence repair", category="carpentry")
        await market.job(seeker, title="Snow removal", category="yard", priority="urgent")

        jobs, total = await market.jobs.list_open_jobs(1, 10, category="yard")
        assert [j.title for j in jobs] == ["Snow removal"]

        jobs, total = await market.jobs.list_open_jobs(1, 10, search="fence")
        assert [j.title for j in jobs] == ["Fence repair"]

        jobs, total = await market.jobs.list_open_jobs(1, 10, priority="urgent")
        assert total == 1

    @pytest.mark.asyncio
    async def test_pagination(self, market) -> None:
        seeker = await market.seeker()
        for i in range(3):
            await market.job(seeker, title=f"Job {i}")

        page, total = await market.jobs.list_my_jobs(seeker, 2, 2)
        assert total == 3
        assert len(page) == 1
