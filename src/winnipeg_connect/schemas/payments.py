"""Pydantic schemas for the Payments API."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from winnipeg_connect.domain.enums import PaymentMethod, PaymentType
from winnipeg_connect.schemas.common import Pagination
from winnipeg_connect.schemas.quotes import Milestone

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreatePaymentIntentRequest(BaseModel):
    """Request body for opening an escrow payment against an accepted quote."""

    quote_id: uuid.UUID
    payment_type: PaymentType = PaymentType.DEPOSIT
    payment_method: PaymentMethod = PaymentMethod.CARD
    milestone: Milestone | None = None


class ConfirmPaymentRequest(BaseModel):
    payment_intent_id: str = Field(..., min_length=1, max_length=255)


class ApproveReleaseRequest(BaseModel):
    notes: str = Field(default="", max_length=500)


class RefundPaymentRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)
    amount: Decimal | None = Field(
        default=None, gt=0, decimal_places=2, description="Defaults to the full total"
    )


class DisputePaymentRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class ResolveDisputeRequest(BaseModel):
    """Admin decision that returns a disputed payment to held escrow."""

    resolution: str = Field(..., min_length=1, max_length=1000)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class ApprovalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    user_type: str
    notes: str
    approved_at: datetime


class PaymentResponse(BaseModel):
    """Response schema for an escrow payment."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    job_id: uuid.UUID
    quote_id: uuid.UUID
    payer_id: uuid.UUID
    payee_id: uuid.UUID
    subtotal: Decimal
    platform_fee: Decimal
    processor_fee: Decimal
    total: Decimal
    net_amount: Decimal
    payment_type: str
    payment_method: str
    currency: str
    milestone: dict | None
    status: str
    escrow_status: str | None
    gateway_intent_id: str | None
    hold_until: datetime | None
    requires_both_approval: bool
    seeker_approval: bool
    provider_confirmation: bool
    can_be_released: bool
    approvals: list[ApprovalResponse]
    released_at: datetime | None
    release_reason: str | None
    refunded_at: datetime | None
    refund_reason: str | None
    refund_amount: Decimal | None
    is_disputed: bool
    dispute_reason: str | None
    dispute_status: str | None
    dispute_resolution: str | None = None
    dispute_resolved_by: str | None = None
    created_at: datetime
    updated_at: datetime


class CreatePaymentIntentResponse(BaseModel):
    client_secret: str | None
    payment_id: uuid.UUID
    amount: Decimal
    payment: PaymentResponse


class ApproveReleaseResponse(BaseModel):
    message: str
    released: bool
    can_be_released: bool
    payment: PaymentResponse


class PaymentListResponse(BaseModel):
    payments: list[PaymentResponse]
    pagination: Pagination


class PaymentStatsResponse(BaseModel):
    stats: dict
