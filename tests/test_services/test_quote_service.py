"""Tests for QuoteService: submission, acceptance exclusivity and expiry."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from winnipeg_connect.domain.enums import EventType, JobStatus, QuoteStatus
from winnipeg_connect.domain.exceptions import (
    AlreadyQuotedError,
    JobClosedError,
    NotAuthorizedError,
    QuoteExpiredError,
    QuoteNotPendingError,
)
from winnipeg_connect.infrastructure.database.orm_models import AuditEvent, Message
from winnipeg_connect.infrastructure.database.repositories import QuoteRepository


class TestSubmitQuote:
    @pytest.mark.asyncio
    async def test_submit_defaults(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)

        quote = await market.quote(provider, job)

        assert quote.status == QuoteStatus.PENDING
        assert quote.seeker_id == seeker.id
        assert quote.price_amount == Decimal("900.00")
        validity = quote.expires_at - datetime.now(UTC)
        assert timedelta(days=6) < validity <= timedelta(days=7)

    @pytest.mark.asyncio
    async def test_submit_emits_event_and_message(self, market, session) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        quote = await market.quote(provider, job)

        events = (
            await session.execute(select(AuditEvent).where(AuditEvent.entity_id == quote.id))
        ).scalars().all()
        assert [e.event_type for e in events] == [EventType.QUOTE_SUBMITTED]

        messages = (
            await session.execute(select(Message).where(Message.job_id == job.id))
        ).scalars().all()
        assert [m.system_type for m in messages] == ["quote_sent"]
        assert messages[0].receiver_id == seeker.id

    @pytest.mark.asyncio
    async def test_seekers_cannot_quote(self, market) -> None:
        seeker = await market.seeker()
        job = await market.job(seeker)
        with pytest.raises(NotAuthorizedError):
            await market.quote(await market.seeker(), job)

    @pytest.mark.asyncio
    async def test_one_active_quote_per_provider(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        await market.quote(provider, job)

        with pytest.raises(AlreadyQuotedError):
            await market.quote(provider, job, "850.00")

    @pytest.mark.asyncio
    async def test_unique_index_backs_the_precheck(self, market, session, monkeypatch) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        await market.quote(provider, job)

        async def _miss(self, job_id, provider_id):
            return None

        monkeypatch.setattr(QuoteRepository, "get_active_for_provider", _miss)
        with pytest.raises(AlreadyQuotedError):
            await market.quote(provider, job, "850.00")

        # The savepoint kept the transaction usable.
        await market.quote(await market.provider(), job)

    @pytest.mark.asyncio
    async def test_resubmit_after_withdraw(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        first = await market.quote(provider, job)
        await market.quotes.withdraw_quote(first.id, provider)

        second = await market.quote(provider, job, "800.00")
        assert second.status == QuoteStatus.PENDING

    @pytest.mark.asyncio
    async def test_closed_job_rejects_quotes(self, market) -> None:
        _, _, job, _ = await market.accepted()
        with pytest.raises(JobClosedError):
            await market.quote(await market.provider(), job)


class TestAcceptQuote:
    @pytest.mark.asyncio
    async def test_accept_selects_provider_and_rejects_siblings(self, market, session) -> None:
        seeker = await market.seeker()
        winner, loser = await market.provider(), await market.provider()
        job = await market.job(seeker)
        chosen = await market.quote(winner, job, "900.00")
        other = await market.quote(loser, job, "950.00")

        accepted = await market.quotes.accept_quote(chosen.id, seeker)
        await session.refresh(job)
        await session.refresh(other)

        assert accepted.status == QuoteStatus.ACCEPTED
        assert accepted.responded_at is not None
        assert job.status == JobStatus.IN_PROGRESS
        assert job.selected_provider_id == winner.id
        assert job.selected_quote_id == chosen.id
        assert other.status == QuoteStatus.REJECTED

        events = (
            await session.execute(
                select(AuditEvent).where(AuditEvent.entity_id == other.id)
            )
        ).scalars().all()
        assert events[-1].event_type == EventType.QUOTE_REJECTED
        assert events[-1].actor == "SYSTEM"

    @pytest.mark.asyncio
    async def test_withdrawn_sibling_stays_withdrawn(self, market, session) -> None:
        seeker = await market.seeker()
        p1, p2 = await market.provider(), await market.provider()
        job = await market.job(seeker)
        chosen = await market.quote(p1, job)
        withdrawn = await market.quote(p2, job)
        await market.quotes.withdraw_quote(withdrawn.id, p2)

        await market.quotes.accept_quote(chosen.id, seeker)
        await session.refresh(withdrawn)
        assert withdrawn.status == QuoteStatus.WITHDRAWN

    @pytest.mark.asyncio
    async def test_second_acceptance_loses(self, market, session) -> None:
        seeker = await market.seeker()
        p1, p2 = await market.provider(), await market.provider()
        job = await market.job(seeker)
        q1 = await market.quote(p1, job)
        q2 = await market.quote(p2, job)

        await market.quotes.accept_quote(q1.id, seeker)
        await session.refresh(q2)
        with pytest.raises((QuoteNotPendingError, JobClosedError)):
            await market.quotes.accept_quote(q2.id, seeker)

    @pytest.mark.asyncio
    async def test_only_job_owner_accepts(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        quote = await market.quote(provider, job)

        with pytest.raises(NotAuthorizedError):
            await market.quotes.accept_quote(quote.id, await market.seeker())

    @pytest.mark.asyncio
    async def test_expired_quote_cannot_be_accepted(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        quote = await market.expired_quote(provider, job)

        with pytest.raises(QuoteExpiredError):
            await market.quotes.accept_quote(quote.id, seeker)

    @pytest.mark.asyncio
    async def test_acceptance_is_checked_at_the_given_time(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        quote = await market.quote(provider, job)

        later = datetime.now(UTC) + timedelta(days=8)
        with pytest.raises(QuoteExpiredError):
            await market.quotes.accept_quote(quote.id, seeker, now=later)


class TestRejectAndWithdraw:
    @pytest.mark.asyncio
    async def test_reject_leaves_job_open(self, market, session) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        quote = await market.quote(provider, job)

        rejected = await market.quotes.reject_quote(quote.id, seeker, "Too expensive")
        await session.refresh(job)

        assert rejected.status == QuoteStatus.REJECTED
        assert rejected.rejection_reason == "Too expensive"
        assert job.status == JobStatus.OPEN

    @pytest.mark.asyncio
    async def test_reject_twice(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        quote = await market.quote(provider, job)
        await market.quotes.reject_quote(quote.id, seeker)

        with pytest.raises(QuoteNotPendingError):
            await market.quotes.reject_quote(quote.id, seeker)

    @pytest.mark.asyncio
    async def test_withdrawn_quote_leaves_job_collection(self, market) -> None:
        seeker = await market.seeker()
        p1, p2 = await market.provider(), await market.provider()
        job = await market.job(seeker)
        kept = await market.quote(p1, job)
        gone = await market.quote(p2, job)
        await market.quotes.withdraw_quote(gone.id, p2)

        quotes = await market.quotes.list_job_quotes(job.id, seeker)
        assert [q.id for q in quotes] == [kept.id]
        assert quotes[0].viewed_by_seeker is True

    @pytest.mark.asyncio
    async def test_only_author_withdraws(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        quote = await market.quote(provider, job)

        with pytest.raises(NotAuthorizedError):
            await market.quotes.withdraw_quote(quote.id, await market.provider())

    @pytest.mark.asyncio
    async def test_accepted_quote_cannot_be_withdrawn(self, market) -> None:
        _, provider, _, quote = await market.accepted()
        with pytest.raises(QuoteNotPendingError):
            await market.quotes.withdraw_quote(quote.id, provider)


class TestUpdateQuote:
    @pytest.mark.asyncio
    async def test_update_pending_quote(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        quote = await market.quote(provider, job)

        updated = await market.quotes.update_quote(
            quote.id, provider, {"price_amount": Decimal("875.00"), "status": "accepted"}
        )
        assert updated.price_amount == Decimal("875.00")
        assert updated.status == QuoteStatus.PENDING

    @pytest.mark.asyncio
    async def test_update_expired_quote(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        quote = await market.expired_quote(provider, job)

        with pytest.raises(QuoteExpiredError):
            await market.quotes.update_quote(quote.id, provider, {"message": "new"})


class TestExpiry:
    @pytest.mark.asyncio
    async def test_stale_pending_reads_as_expired(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        quote = await market.expired_quote(provider, job)

        assert quote.status == QuoteStatus.PENDING
        assert quote.effective_status() == QuoteStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_sweep_persists_expiry(self, market, session) -> None:
        seeker = await market.seeker()
        p1, p2 = await market.provider(), await market.provider()
        job = await market.job(seeker)
        stale = await market.expired_quote(p1, job)
        fresh = await market.quote(p2, job)

        assert await market.quotes.expire_stale_quotes() == 1
        await session.refresh(stale)
        await session.refresh(fresh)
        assert stale.status == QuoteStatus.EXPIRED
        assert fresh.status == QuoteStatus.PENDING

        assert await market.quotes.expire_stale_quotes() == 0

    @pytest.mark.asyncio
    async def test_expired_provider_can_quote_again(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        await market.expired_quote(provider, job)
        await market.quotes.expire_stale_quotes()

        again = await market.quote(provider, job)
        assert again.status == QuoteStatus.PENDING


class TestCalculateTotal:
    @pytest.mark.asyncio
    async def test_breakdown_sums_costs(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        quote = await market.quote(
            provider,
            job,
            price_breakdown=[
                {"item": "Labour", "cost": "600.00"},
                {"item": "Materials", "cost": "325.50"},
            ],
        )
        assert quote.calculate_total() == Decimal("925.50")

    @pytest.mark.asyncio
    async def test_no_breakdown_uses_price(self, market) -> None:
        seeker = await market.seeker()
        provider = await market.provider()
        job = await market.job(seeker)
        quote = await market.quote(provider, job, "450.00")
        assert quote.calculate_total() == Decimal("450.00")


class TestProviderStats:
    @pytest.mark.asyncio
    async def test_counts_rate_and_average(self, market) -> None:
        provider = await market.provider()
        won_owner, lost_owner, open_owner = (
            await market.seeker(),
            await market.seeker(),
            await market.seeker(),
        )
        won = await market.quote(provider, await market.job(won_owner), "900.00")
        lost = await market.quote(provider, await market.job(lost_owner), "600.00")
        await market.quote(provider, await market.job(open_owner), "300.00")
        await market.quotes.accept_quote(won.id, won_owner)
        await market.quotes.reject_quote(lost.id, lost_owner)

        stats = await market.quotes.get_provider_stats(provider)

        assert stats == {
            "total_quotes": 3,
            "pending_quotes": 1,
            "accepted_quotes": 1,
            "rejected_quotes": 1,
            "quotes_last_30_days": 3,
            "acceptance_rate": 50.0,
            "average_quote_value": Decimal("600.00"),
        }

    @pytest.mark.asyncio
    async def test_other_providers_are_not_counted(self, market) -> None:
        seeker = await market.seeker()
        job = await market.job(seeker)
        mine = await market.provider()
        await market.quote(mine, job, "400.00")
        await market.quote(await market.provider(), job, "800.00")

        stats = await market.quotes.get_provider_stats(mine)

        assert stats["total_quotes"] == 1
        assert stats["average_quote_value"] == Decimal("400.00")

    @pytest.mark.asyncio
    async def test_no_quotes_reports_zeroes(self, market) -> None:
        stats = await market.quotes.get_provider_stats(await market.provider())

        assert stats["total_quotes"] == 0
        assert stats["acceptance_rate"] == 0.0
        assert stats["average_quote_value"] == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_rate_ignores_undecided_quotes(self, market) -> None:
        provider = await market.provider()
        owner = await market.seeker()
        quote = await market.quote(provider, await market.job(owner))
        await market.quote(provider, await market.job(await market.seeker()))
        await market.quotes.accept_quote(quote.id, owner)

        stats = await market.quotes.get_provider_stats(provider)

        assert stats["acceptance_rate"] == 100.0

    @pytest.mark.asyncio
    async def test_recent_window_is_thirty_days(self, market) -> None:
        provider = await market.provider()
        await market.quote(provider, await market.job(await market.seeker()))

        later = datetime.now(UTC) + timedelta(days=31)
        stats = await market.quotes.get_provider_stats(provider, now=later)

        assert stats["total_quotes"] == 1
        assert stats["quotes_last_30_days"] == 0

    @pytest.mark.asyncio
    async def test_seekers_have_no_quote_stats(self, market) -> None:
        with pytest.raises(NotAuthorizedError):
            await market.quotes.get_provider_stats(await market.seeker())
