"""Pydantic schemas for reviews."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from winnipeg_connect.domain.enums import ReviewTag
from winnipeg_connect.schemas.common import Pagination


class CreateReviewRequest(BaseModel):
    """Request body for reviewing the other party to a completed job."""

    job_id: uuid.UUID
    reviewee_id: uuid.UUID
    rating: int = Field(..., ge=1, le=5)
    title: str | None = Field(default=None, max_length=100)
    comment: str = Field(..., min_length=1, max_length=1000)
    would_recommend: bool
    would_hire_again: bool | None = None
    tags: list[ReviewTag] = Field(default_factory=list, max_length=10)

    def to_fields(self) -> dict:
        fields = self.model_dump(mode="json", exclude={"job_id"})
        fields["reviewee_id"] = self.reviewee_id
        fields["comment"] = fields["comment"].strip()
        if fields["title"] is not None:
            fields["title"] = fields["title"].strip()
        return fields


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    job_id: uuid.UUID
    reviewer_id: uuid.UUID
    reviewee_id: uuid.UUID
    reviewer_type: str
    rating: int
    title: str | None
    comment: str
    would_recommend: bool
    would_hire_again: bool | None
    tags: list[str]
    created_at: datetime


class ReviewStats(BaseModel):
    average_rating: Decimal
    rating_count: int
    rating_distribution: dict[int, int]


class UserReviewsResponse(BaseModel):
    reviews: list[ReviewResponse]
    stats: ReviewStats
    pagination: Pagination

