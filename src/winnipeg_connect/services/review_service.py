"""Reviews and the user ratings derived from them.

Once a job is completed each party may review the other exactly once. A
user's ``rating_average`` / ``rating_count`` are never adjusted in place:
after every new review they are recomputed from the reviews table, so the
stored values always equal an aggregate over the rows that produced them.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from winnipeg_connect.domain.enums import JobStatus
from winnipeg_connect.domain.exceptions import (
    AlreadyReviewedError,
    DomainValidationError,
    JobNotFoundError,
    JobNotReviewableError,
    NotAuthorizedError,
    ReviewNotFoundError,
    UserNotFoundError,
)
from winnipeg_connect.infrastructure.database.orm_models import Review
from winnipeg_connect.infrastructure.database.repositories import (
    JobRepository,
    ReviewRepository,
    UserRepository,
)
from winnipeg_connect.logging_config import get_logger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from winnipeg_connect.infrastructure.database.orm_models import User

logger = get_logger(__name__)

RATING_STEP = Decimal("0.01")


class ReviewService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._review_repo = ReviewRepository(session)
        self._job_repo = JobRepository(session)
        self._user_repo = UserRepository(session)

    async def create_review(
        self, reviewer: User, job_id: uuid.UUID, fields: dict[str, Any]
    ) -> Review:
        """Record ``reviewer``'s review of the other party to a completed job.

        Raises:
            JobNotFoundError: no such job.
            NotAuthorizedError: the reviewer is neither the owner nor the
                selected provider.
            JobNotReviewableError: the job is not completed.
            DomainValidationError: the reviewee is not the other party.
            AlreadyReviewedError: the reviewer already reviewed this job.
        """
        job = await self._job_repo.get_by_id(job_id)
        if job is None:
            raise JobNotFoundError(str(job_id))
        parties = {job.posted_by_id, job.selected_provider_id} - {None}
        if reviewer.id not in parties:
            raise NotAuthorizedError("review this job")
        if job.status != JobStatus.COMPLETED:
            raise JobNotReviewableError(str(job_id), job.status)

        counterpart = (
            job.selected_provider_id if reviewer.id == job.posted_by_id else job.posted_by_id
        )
        if fields["reviewee_id"] != counterpart:
            raise DomainValidationError("A review must be about the other party to the job")

        review = await self._review_repo.create(
            Review(job_id=job.id, reviewer_id=reviewer.id, reviewer_type=reviewer.role, **fields)
        )
        if review is None:
            raise AlreadyReviewedError(str(job_id))

        reviewee = await self.recompute_rating(counterpart)
        logger.info(
            "review.created",
            review_id=str(review.id),
            job_id=str(job.id),
            reviewee_id=str(counterpart),
            rating=review.rating,
            rating_average=str(reviewee.rating_average),
        )
        return review

    async def recompute_rating(self, user_id: uuid.UUID) -> User:
        """Rewrite the user's rating from their reviews. Safe to call repeatedly."""
        user = await self._user_repo.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        average, count = await self._review_repo.rating_summary(user_id)
        user.rating_average = (average or Decimal("0")).quantize(RATING_STEP, ROUND_HALF_UP)
        user.rating_count = count
        await self._session.flush()
        return user

    async def list_user_reviews(
        self,
        user_id: uuid.UUID,
        page: int,
        limit: int,
        rating: int | None = None,
        reviewer_type: str | None = None,
    ) -> tuple[list[Review], int, dict]:
        """A page of reviews the user received, plus their rating statistics."""
        user = await self._user_repo.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        reviews, total = await self._review_repo.list_for_reviewee(
            user_id, page, limit, rating=rating, reviewer_type=reviewer_type
        )
        distribution = await self._review_repo.rating_distribution(user_id)
        stats = {
            "average_rating": user.rating_average,
            "rating_count": user.rating_count,
            "rating_distribution": {star: distribution.get(star, 0) for star in range(5, 0, -1)},
        }
        return reviews, total, stats

    async def get_review(self, review_id: uuid.UUID) -> Review:
        review = await self._review_repo.get_by_id(review_id)
        if review is None:
            raise ReviewNotFoundError(str(review_id))
        return review
