"""Pydantic schemas for the Quotes API."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

from winnipeg_connect.domain.enums import PriceType
from winnipeg_connect.infrastructure.database.orm_models import Quote
from winnipeg_connect.schemas.common import Pagination, PartialUpdate

# Quote columns stored as JSON documents.
_JSON_FIELDS = frozenset(
    {"price_breakdown", "estimated_duration", "warranty", "availability", "payment_terms"}
)

# ---------------------------------------------------------------------------
# Nested documents
# ---------------------------------------------------------------------------


class PriceItem(BaseModel):
    item: str = Field(..., min_length=1, max_length=200)
    cost: Decimal = Field(..., ge=0)
    description: str | None = None


class EstimatedDuration(BaseModel):
    value: int = Field(..., gt=0)
    unit: Literal["hours", "days", "weeks", "months"]


class Warranty(BaseModel):
    offered: bool = False
    duration: str | None = None
    details: str | None = None


class Availability(BaseModel):
    immediate: bool = False
    start_date: date | None = None
    notes: str | None = None


class Milestone(BaseModel):
    title: str
    percentage: int = Field(..., ge=1, le=100)
    description: str | None = None


class PaymentTerms(BaseModel):
    deposit_required: bool = False
    deposit_percentage: int | None = Field(default=None, ge=0, le=100)
    deposit_amount: Decimal | None = Field(default=None, ge=0)
    milestones: list[Milestone] = Field(default_factory=list)


class _QuoteFields(BaseModel):
    def to_fields(self, exclude_unset: bool = False) -> dict:
        """Scalars keep their Python types; nested documents become JSON-ready dicts."""
        plain = self.model_dump(exclude={"job_id"}, exclude_unset=exclude_unset)
        as_json = self.model_dump(mode="json", exclude={"job_id"}, exclude_unset=exclude_unset)
        return {k: as_json[k] if k in _JSON_FIELDS else v for k, v in plain.items()}


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateQuoteRequest(_QuoteFields):
    """Request body for a provider quoting a job."""

    job_id: uuid.UUID
    price_amount: Decimal = Field(..., gt=0, decimal_places=2, examples=["900.00"])
    price_type: PriceType = PriceType.FIXED
    price_breakdown: list[PriceItem] = Field(default_factory=list)
    estimated_duration: EstimatedDuration | None = None
    start_date: datetime | None = None
    completion_date: datetime | None = None
    message: str = Field(..., min_length=1, max_length=1000)
    includes_supplies: bool = False
    supply_details: str | None = Field(default=None, max_length=1000)
    warranty: Warranty | None = None
    availability: Availability | None = None
    terms: str | None = Field(default=None, max_length=2000)
    payment_terms: PaymentTerms | None = None
    expires_at: datetime | None = Field(
        default=None, description="Defaults to the configured validity window"
    )


class UpdateQuoteRequest(_QuoteFields, PartialUpdate):
    """Partial update of a pending quote."""

    not_nullable: ClassVar[frozenset[str]] = frozenset(
        {"price_amount", "price_type", "price_breakdown", "message", "includes_supplies"}
    )

    price_amount: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    price_type: PriceType | None = None
    price_breakdown: list[PriceItem] | None = None
    estimated_duration: EstimatedDuration | None = None
    start_date: datetime | None = None
    completion_date: datetime | None = None
    message: str | None = Field(default=None, min_length=1, max_length=1000)
    includes_supplies: bool | None = None
    supply_details: str | None = Field(default=None, max_length=1000)
    warranty: Warranty | None = None
    availability: Availability | None = None
    terms: str | None = Field(default=None, max_length=2000)
    payment_terms: PaymentTerms | None = None


class RejectQuoteRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class QuoteResponse(BaseModel):
    """Response schema for a quote. ``status`` is the effective status."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    job_id: uuid.UUID
    provider_id: uuid.UUID
    seeker_id: uuid.UUID
    price_amount: Decimal
    price_type: str
    price_breakdown: list[dict]
    total: Decimal
    estimated_duration: dict | None
    start_date: datetime | None
    completion_date: datetime | None
    message: str
    includes_supplies: bool
    supply_details: str | None
    warranty: dict | None
    availability: dict | None
    terms: str | None
    payment_terms: dict | None
    status: str
    rejection_reason: str | None
    viewed_by_seeker: bool
    viewed_at: datetime | None
    responded_at: datetime | None
    expires_at: datetime
    created_at: datetime

    @classmethod
    def from_model(cls, quote: Quote, now: datetime | None = None) -> QuoteResponse:
        data = {name: getattr(quote, name) for name in cls.model_fields if name != "total"}
        data["status"] = quote.effective_status(now)
        data["total"] = quote.calculate_total()
        return cls.model_validate(data)


class QuoteListResponse(BaseModel):
    quotes: list[QuoteResponse]
    pagination: Pagination | None = None


class QuoteStats(BaseModel):
    total_quotes: int
    pending_quotes: int
    accepted_quotes: int
    rejected_quotes: int
    quotes_last_30_days: int
    acceptance_rate: float
    average_quote_value: Decimal


class QuoteStatsResponse(BaseModel):
    stats: QuoteStats
