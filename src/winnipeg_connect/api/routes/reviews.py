"""Review REST API routes.

Routes:
    POST   /api/v1/reviews                Review the other party to a completed job
    GET    /api/v1/reviews/user/{user_id} Reviews a user received, with rating stats
    GET    /api/v1/reviews/{id}           A single review
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from winnipeg_connect.api.deps import get_current_user, get_db_session, get_pagination
from winnipeg_connect.domain.enums import UserRole
from winnipeg_connect.infrastructure.database.orm_models import User
from winnipeg_connect.schemas.common import ERROR_RESPONSES, Pagination
from winnipeg_connect.schemas.reviews import (
    CreateReviewRequest,
    ReviewResponse,
    ReviewStats,
    UserReviewsResponse,
)
from winnipeg_connect.services.review_service import ReviewService

router = APIRouter(prefix="/api/v1/reviews", tags=["Reviews"], responses=ERROR_RESPONSES)


@router.post("", response_model=ReviewResponse, status_code=201, summary="Create a review")
async def create_review(
    request: CreateReviewRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    review = await ReviewService(session).create_review(
        user, request.job_id, request.to_fields()
    )
    return ReviewResponse.model_validate(review)


@router.get(
    "/user/{user_id}",
    response_model=UserReviewsResponse,
    summary="List a user's reviews",
    description="Newest first. Stats cover every review the user received.",
)
async def list_user_reviews(
    user_id: uuid.UUID,
    pagination: tuple[int, int] = Depends(get_pagination),
    rating: int | None = Query(default=None, ge=1, le=5),
    reviewer_type: UserRole | None = Query(default=None),
    session: AsyncSession = Depends(get_db_session),
) -> UserReviewsResponse:
    page, limit = pagination
    reviews, total, stats = await ReviewService(session).list_user_reviews(
        user_id,
        page,
        limit,
        rating=rating,
        reviewer_type=reviewer_type.value if reviewer_type else None,
    )
    return UserReviewsResponse(
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
        stats=ReviewStats(**stats),
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{review_id}", response_model=ReviewResponse, summary="Get a review")
async def get_review(
    review_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    review = await ReviewService(session).get_review(review_id)
    return ReviewResponse.model_validate(review)
