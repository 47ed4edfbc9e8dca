"""Escrow payment REST API routes.

Routes:
    POST   /api/v1/payments/create-payment-intent  Open a payment for an accepted quote
    POST   /api/v1/payments/confirm-payment        Capture into escrow
    GET    /api/v1/payments/mine                   The caller's payments
    GET    /api/v1/payments/stats/overview         Role-specific payment statistics
    GET    /api/v1/payments/{id}                   Payment details
    GET    /api/v1/payments/{id}/events            Audit trail
    POST   /api/v1/payments/{id}/approve-release   Record a release approval
    POST   /api/v1/payments/{id}/release           Manual or admin release
    POST   /api/v1/payments/{id}/refund            Refund held funds
    POST   /api/v1/payments/{id}/dispute           Open a dispute
    POST   /api/v1/payments/{id}/resolve-dispute   Admin: close a dispute, funds stay held
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from winnipeg_connect.api.deps import (
    get_current_user,
    get_db_session,
    get_pagination,
    get_payment_gateway,
)
from winnipeg_connect.domain.enums import EscrowStatus, PaymentStatus
from winnipeg_connect.domain.gateway_protocol import PaymentGateway
from winnipeg_connect.infrastructure.database.orm_models import User
from winnipeg_connect.logging_config import get_logger
from winnipeg_connect.schemas.common import (
    ERROR_RESPONSES,
    AuditEventResponse,
    ErrorResponse,
    Pagination,
)
from winnipeg_connect.schemas.payments import (
    ApproveReleaseRequest,
    ApproveReleaseResponse,
    ConfirmPaymentRequest,
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
    DisputePaymentRequest,
    PaymentListResponse,
    PaymentResponse,
    PaymentStatsResponse,
    RefundPaymentRequest,
    ResolveDisputeRequest,
)
from winnipeg_connect.services.payment_service import PaymentService

router = APIRouter(
    prefix="/api/v1/payments",
    tags=["Payments"],
    responses={**ERROR_RESPONSES, 502: {"model": ErrorResponse}},
)
logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Intent & confirmation
# ---------------------------------------------------------------------------


@router.post(
    "/create-payment-intent",
    response_model=CreatePaymentIntentResponse,
    status_code=201,
    summary="Create a payment intent",
    description=(
        "Computes fees, creates a manual-capture intent with the gateway and "
        "records a pending payment. Send an Idempotency-Key header to make "
        "retries safe."
    ),
)
async def create_payment_intent(
    request: CreatePaymentIntentRequest,
    idempotency_key: str | None = Header(default=None, max_length=255),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> CreatePaymentIntentResponse:
    payment, client_secret = await PaymentService(session, gateway).create_payment_intent(
        seeker=user,
        quote_id=request.quote_id,
        payment_type=request.payment_type,
        payment_method=request.payment_method,
        milestone=request.milestone.model_dump(mode="json") if request.milestone else None,
        idempotency_key=idempotency_key,
    )
    return CreatePaymentIntentResponse(
        client_secret=client_secret,
        payment_id=payment.id,
        amount=payment.total,
        payment=PaymentResponse.model_validate(payment),
    )


@router.post(
    "/confirm-payment",
    response_model=PaymentResponse,
    summary="Confirm a payment",
    description="Captures the authorized charge and holds the funds in escrow.",
)
async def confirm_payment(
    request: ConfirmPaymentRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentResponse:
    payment = await PaymentService(session, gateway).confirm_payment(
        user, request.payment_intent_id
    )
    return PaymentResponse.model_validate(payment)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


@router.get("/mine", response_model=PaymentListResponse, summary="List my payments")
async def list_my_payments(
    pagination: tuple[int, int] = Depends(get_pagination),
    status: PaymentStatus | None = Query(default=None),
    escrow_status: EscrowStatus | None = Query(default=None),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentListResponse:
    page, limit = pagination
    payments, total = await PaymentService(session, gateway).list_my_payments(
        user,
        page,
        limit,
        status=status.value if status else None,
        escrow_status=escrow_status.value if escrow_status else None,
    )
    return PaymentListResponse(
        payments=[PaymentResponse.model_validate(p) for p in payments],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/stats/overview", response_model=PaymentStatsResponse, summary="Payment stats")
async def get_payment_stats(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentStatsResponse:
    stats = await PaymentService(session, gateway).get_stats(user)
    return PaymentStatsResponse(stats=stats)


@router.get("/{payment_id}", response_model=PaymentResponse, summary="Get payment details")
async def get_payment(
    payment_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentResponse:
    payment = await PaymentService(session, gateway).get_payment(payment_id, user)
    return PaymentResponse.model_validate(payment)


@router.get(
    "/{payment_id}/events",
    response_model=list[AuditEventResponse],
    summary="Get payment audit trail",
)
async def get_payment_events(
    payment_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> list[AuditEventResponse]:
    events = await PaymentService(session, gateway).get_payment_events(payment_id, user)
    return [AuditEventResponse.model_validate(e) for e in events]


# ---------------------------------------------------------------------------
# Release
# ---------------------------------------------------------------------------


@router.post(
    "/{payment_id}/approve-release",
    response_model=ApproveReleaseResponse,
    summary="Approve releasing escrowed funds",
    description="Funds are released once both the seeker and the provider have approved.",
)
async def approve_release(
    payment_id: uuid.UUID,
    request: ApproveReleaseRequest | None = None,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> ApproveReleaseResponse:
    notes = request.notes if request else ""
    payment, released = await PaymentService(session, gateway).approve_release(
        payment_id, user, notes
    )
    return ApproveReleaseResponse(
        message="Payment released" if released else "Release approved",
        released=released,
        can_be_released=payment.can_be_released,
        payment=PaymentResponse.model_validate(payment),
    )


@router.post("/{payment_id}/release", response_model=PaymentResponse, summary="Release funds")
async def release_payment(
    payment_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentResponse:
    payment = await PaymentService(session, gateway).release_payment(payment_id, user)
    return PaymentResponse.model_validate(payment)


# ---------------------------------------------------------------------------
# Refund & dispute
# ---------------------------------------------------------------------------


@router.post("/{payment_id}/refund", response_model=PaymentResponse, summary="Refund a payment")
async def refund_payment(
    payment_id: uuid.UUID,
    request: RefundPaymentRequest | None = None,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentResponse:
    request = request or RefundPaymentRequest()
    payment = await PaymentService(session, gateway).refund_payment(
        payment_id, user, reason=request.reason, amount=request.amount
    )
    return PaymentResponse.model_validate(payment)


@router.post("/{payment_id}/dispute", response_model=PaymentResponse, summary="Dispute a payment")
async def dispute_payment(
    payment_id: uuid.UUID,
    request: DisputePaymentRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentResponse:
    payment = await PaymentService(session, gateway).dispute_payment(
        payment_id, user, request.reason
    )
    logger.info("api.payment_disputed", payment_id=str(payment_id))
    return PaymentResponse.model_validate(payment)


@router.post(
    "/{payment_id}/resolve-dispute",
    response_model=PaymentResponse,
    summary="Resolve a dispute",
    description=(
        "Admin only. Closes the dispute and returns the payment to captured with "
        "the funds still held. Use refund or release to settle it with money instead."
    ),
)
async def resolve_dispute(
    payment_id: uuid.UUID,
    request: ResolveDisputeRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentResponse:
    payment = await PaymentService(session, gateway).resolve_dispute(
        payment_id, user, request.resolution
    )
    logger.info("api.payment_dispute_resolved", payment_id=str(payment_id))
    return PaymentResponse.model_validate(payment)
