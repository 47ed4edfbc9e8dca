"""Tests for ReviewService: who may review, once, and rating recomputation."""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import delete

from winnipeg_connect.domain.enums import JobStatus
from winnipeg_connect.domain.exceptions import (
    AlreadyReviewedError,
    DomainValidationError,
    JobNotFoundError,
    JobNotReviewableError,
    NotAuthorizedError,
    ReviewNotFoundError,
)
from winnipeg_connect.infrastructure.database.orm_models import Review
from winnipeg_connect.services.review_service import ReviewService


def review_fields(reviewee, rating: int = 5, **overrides) -> dict:
    fields = {
        "reviewee_id": reviewee.id,
        "rating": rating,
        "comment": "Showed up on time and left the kitchen spotless.",
        "would_recommend": True,
        "tags": ["punctual", "clean_workspace"],
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def reviews(session) -> ReviewService:
    return ReviewService(session)


async def completed_job(market):
    seeker, provider, job, _ = await market.accepted()
    await market.jobs.change_status(job.id, seeker, JobStatus.COMPLETED)
    return seeker, provider, job


class TestCreateReview:
    @pytest.mark.asyncio
    async def test_owner_reviews_provider(self, market, reviews) -> None:
        seeker, provider, job = await completed_job(market)

        review = await reviews.create_review(seeker, job.id, review_fields(provider, 4))

        assert review.reviewer_type == "seeker"
        assert review.reviewee_id == provider.id
        assert provider.rating_average == Decimal("4.00")
        assert provider.rating_count == 1

    @pytest.mark.asyncio
    async def test_both_parties_review_each_other(self, market, reviews) -> None:
        seeker, provider, job = await completed_job(market)

        await reviews.create_review(seeker, job.id, review_fields(provider, 5))
        back = await reviews.create_review(provider, job.id, review_fields(seeker, 3))

        assert back.reviewer_type == "provider"
        assert seeker.rating_average == Decimal("3.00")
        assert provider.rating_count == 1

    @pytest.mark.asyncio
    async def test_job_must_be_completed(self, market, reviews) -> None:
        seeker, provider, job, _ = await market.accepted()

        with pytest.raises(JobNotReviewableError):
            await reviews.create_review(seeker, job.id, review_fields(provider))

    @pytest.mark.asyncio
    async def test_outsiders_cannot_review(self, market, reviews) -> None:
        _, provider, job = await completed_job(market)

        with pytest.raises(NotAuthorizedError):
            await reviews.create_review(await market.seeker(), job.id, review_fields(provider))

    @pytest.mark.asyncio
    async def test_reviewee_must_be_the_other_party(self, market, reviews) -> None:
        seeker, _, job = await completed_job(market)

        with pytest.raises(DomainValidationError):
            await reviews.create_review(seeker, job.id, review_fields(seeker))

    @pytest.mark.asyncio
    async def test_second_review_of_the_same_job(self, market, reviews) -> None:
        seeker, provider, job = await completed_job(market)
        await reviews.create_review(seeker, job.id, review_fields(provider, 5))

        with pytest.raises(AlreadyReviewedError):
            await reviews.create_review(seeker, job.id, review_fields(provider, 1))
        assert provider.rating_average == Decimal("5.00")
        assert provider.rating_count == 1

    @pytest.mark.asyncio
    async def test_unknown_job(self, market, reviews) -> None:
        seeker = await market.seeker()
        with pytest.raises(JobNotFoundError):
            await reviews.create_review(seeker, uuid.uuid4(), review_fields(seeker))


class TestRatingRecomputation:
    @pytest.mark.asyncio
    async def test_average_over_all_reviews(self, market, reviews) -> None:
        seeker, provider, job = await completed_job(market)
        await reviews.create_review(seeker, job.id, review_fields(provider, 5))

        # A second completed job for the same provider.
        other_seeker = await market.seeker()
        other_job = await market.job(other_seeker)
        quote = await market.quote(provider, other_job)
        await market.quotes.accept_quote(quote.id, other_seeker)
        await market.jobs.change_status(other_job.id, other_seeker, JobStatus.COMPLETED)
        await reviews.create_review(other_seeker, other_job.id, review_fields(provider, 4))

        assert provider.rating_count == 2
        assert provider.rating_average == Decimal("4.50")

    @pytest.mark.asyncio
    async def test_recompute_is_repeatable(self, market, reviews) -> None:
        seeker, provider, job = await completed_job(market)
        await reviews.create_review(seeker, job.id, review_fields(provider, 4))

        await reviews.recompute_rating(provider.id)
        again = await reviews.recompute_rating(provider.id)

        assert again.rating_average == Decimal("4.00")
        assert again.rating_count == 1

    @pytest.mark.asyncio
    async def test_recompute_follows_the_table(self, market, reviews, session) -> None:
        seeker, provider, job = await completed_job(market)
        await reviews.create_review(seeker, job.id, review_fields(provider, 2))

        await session.execute(delete(Review).where(Review.reviewee_id == provider.id))
        user = await reviews.recompute_rating(provider.id)

        assert user.rating_average == Decimal("0.00")
        assert user.rating_count == 0


class TestReads:
    @pytest.mark.asyncio
    async def test_list_with_stats(self, market, reviews) -> None:
        seeker, provider, job = await completed_job(market)
        await reviews.create_review(seeker, job.id, review_fields(provider, 5))

        listed, total, stats = await reviews.list_user_reviews(provider.id, 1, 10)

        assert total == 1
        assert listed[0].tags == ["punctual", "clean_workspace"]
        assert stats["rating_count"] == 1
        assert stats["rating_distribution"] == {5: 1, 4: 0, 3: 0, 2: 0, 1: 0}

    @pytest.mark.asyncio
    async def test_list_filters_by_rating(self, market, reviews) -> None:
        seeker, provider, job = await completed_job(market)
        await reviews.create_review(seeker, job.id, review_fields(provider, 5))

        listed, total, _ = await reviews.list_user_reviews(provider.id, 1, 10, rating=3)

        assert (listed, total) == ([], 0)

    @pytest.mark.asyncio
    async def test_unknown_review(self, reviews) -> None:
        with pytest.raises(ReviewNotFoundError):
            await reviews.get_review(uuid.uuid4())
