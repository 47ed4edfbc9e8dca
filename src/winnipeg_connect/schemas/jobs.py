"""Pydantic schemas for the Jobs API."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from winnipeg_connect.domain.enums import BudgetType, JobPriority, JobStatus
from winnipeg_connect.schemas.common import Pagination, PartialUpdate

ResponseTime = Literal["asap", "within_24h", "within_week", "flexible"]

# ---------------------------------------------------------------------------
# Nested documents
# ---------------------------------------------------------------------------


class BudgetRange(BaseModel):
    min: Decimal = Field(..., ge=0)
    max: Decimal = Field(..., gt=0)

    @model_validator(mode="after")
    def check_order(self) -> BudgetRange:
        if self.min > self.max:
            raise ValueError("budget range min must not exceed max")
        return self


class Budget(BaseModel):
    """Exactly one of amount / hourly_rate / range, matching ``type``."""

    type: BudgetType
    amount: Decimal | None = Field(default=None, gt=0)
    hourly_rate: Decimal | None = Field(default=None, gt=0)
    range: BudgetRange | None = None

    @model_validator(mode="after")
    def check_type_fields(self) -> Budget:
        required = {
            BudgetType.FIXED: ("amount", self.amount),
            BudgetType.HOURLY: ("hourly_rate", self.hourly_rate),
            BudgetType.RANGE: ("range", self.range),
        }[self.type]
        if required[1] is None:
            raise ValueError(f"{self.type.value} budget requires '{required[0]}'")
        return self


class Timeline(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    estimated_duration: str | None = Field(default=None, max_length=100)
    is_flexible: bool = True


class Location(BaseModel):
    street: str | None = Field(default=None, max_length=200)
    city: str = "Winnipeg"
    province: str = "Manitoba"
    postal_code: str | None = Field(default=None, max_length=10)
    suburb: str | None = None
    is_remote: bool = False


class Requirements(BaseModel):
    insurance_required: bool = False
    license_required: bool = False
    background_check: bool = False
    minimum_rating: int | None = Field(default=None, ge=1, le=5)


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateJobRequest(BaseModel):
    """Request body for posting a job."""

    title: str = Field(..., min_length=1, max_length=100, examples=["Kitchen renovation"])
    description: str = Field(..., min_length=1, max_length=2000)
    category: str = Field(..., min_length=1, max_length=80, examples=["renovation"])
    subcategories: list[str] = Field(default_factory=list)
    budget: Budget
    timeline: Timeline | None = None
    location: Location = Field(default_factory=Location)
    requirements: Requirements | None = None
    priority: JobPriority = JobPriority.MEDIUM
    is_urgent: bool = False
    response_time: ResponseTime = "flexible"

    def to_fields(self) -> dict:
        return self.model_dump(mode="json")


class UpdateJobRequest(PartialUpdate):
    """Partial update of an open job. Only the fields sent are changed."""

    not_nullable: ClassVar[frozenset[str]] = frozenset(
        {
            "title",
            "description",
            "category",
            "subcategories",
            "budget",
            "priority",
            "is_urgent",
            "response_time",
        }
    )

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    category: str | None = Field(default=None, min_length=1, max_length=80)
    subcategories: list[str] | None = None
    budget: Budget | None = None
    timeline: Timeline | None = None
    location: Location | None = None
    requirements: Requirements | None = None
    priority: JobPriority | None = None
    is_urgent: bool | None = None
    response_time: ResponseTime | None = None

    def to_fields(self) -> dict:
        return self.model_dump(mode="json", exclude_unset=True)


class UpdateJobStatusRequest(BaseModel):
    status: JobStatus


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class JobResponse(BaseModel):
    """Response schema for a job."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    posted_by_id: uuid.UUID
    title: str
    description: str
    category: str
    subcategories: list[str]
    budget: dict
    timeline: dict | None
    location: dict | None
    requirements: dict | None
    priority: str
    is_urgent: bool
    response_time: str
    views: int
    status: str
    selected_provider_id: uuid.UUID | None
    selected_quote_id: uuid.UUID | None
    completion_date: datetime | None
    created_at: datetime
    updated_at: datetime


class JobListResponse(BaseModel):
    jobs: list[JobResponse]
    pagination: Pagination
