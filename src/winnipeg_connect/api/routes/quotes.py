"""Quote REST API routes.

Routes:
    POST   /api/v1/quotes              Submit a quote (providers)
    GET    /api/v1/quotes/mine         The caller's quotes
    POST   /api/v1/quotes/expire       Persist expiry of stale quotes (admin)
    GET    /api/v1/quotes/stats/overview  Provider quote statistics
    GET    /api/v1/quotes/{id}         Quote details (either party)
    PUT    /api/v1/quotes/{id}         Edit a pending quote
    DELETE /api/v1/quotes/{id}         Withdraw a pending quote
    PUT    /api/v1/quotes/{id}/accept  Accept (job owner)
    PUT    /api/v1/quotes/{id}/reject  Reject (job owner)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from winnipeg_connect.api.deps import get_current_user, get_db_session, get_pagination
from winnipeg_connect.domain.enums import QuoteStatus
from winnipeg_connect.domain.exceptions import NotAuthorizedError
from winnipeg_connect.infrastructure.database.orm_models import User
from winnipeg_connect.schemas.common import ERROR_RESPONSES, Pagination
from winnipeg_connect.schemas.quotes import (
    CreateQuoteRequest,
    QuoteListResponse,
    QuoteResponse,
    QuoteStatsResponse,
    RejectQuoteRequest,
    UpdateQuoteRequest,
)
from winnipeg_connect.services.quote_service import QuoteService

router = APIRouter(prefix="/api/v1/quotes", tags=["Quotes"], responses=ERROR_RESPONSES)


@router.post("", response_model=QuoteResponse, status_code=201, summary="Submit a quote")
async def submit_quote(
    request: CreateQuoteRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> QuoteResponse:
    quote = await QuoteService(session).submit_quote(user, request.job_id, request.to_fields())
    return QuoteResponse.from_model(quote)


@router.get("/mine", response_model=QuoteListResponse, summary="List my quotes")
async def list_my_quotes(
    pagination: tuple[int, int] = Depends(get_pagination),
    status: QuoteStatus | None = Query(default=None),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> QuoteListResponse:
    page, limit = pagination
    quotes, total = await QuoteService(session).list_my_quotes(
        user, page, limit, status=status.value if status else None
    )
    return QuoteListResponse(
        quotes=[QuoteResponse.from_model(q) for q in quotes],
        pagination=Pagination.build(page, limit, total),
    )


@router.post("/expire", summary="Expire stale pending quotes")
async def expire_quotes(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> dict[str, int]:
    if not user.is_admin:
        raise NotAuthorizedError("run the quote expiry sweep")
    expired = await QuoteService(session).expire_stale_quotes()
    return {"expired": expired}


@router.get("/stats/overview", response_model=QuoteStatsResponse, summary="Quote stats")
async def get_quote_stats(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> QuoteStatsResponse:
    stats = await QuoteService(session).get_provider_stats(user)
    return QuoteStatsResponse.model_validate({"stats": stats})


@router.get("/{quote_id}", response_model=QuoteResponse, summary="Get quote details")
async def get_quote(
    quote_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> QuoteResponse:
    quote = await QuoteService(session).get_quote(quote_id, user)
    return QuoteResponse.from_model(quote)


@router.put("/{quote_id}", response_model=QuoteResponse, summary="Edit a pending quote")
async def update_quote(
    quote_id: uuid.UUID,
    request: UpdateQuoteRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> QuoteResponse:
    quote = await QuoteService(session).update_quote(
        quote_id, user, request.to_fields(exclude_unset=True)
    )
    return QuoteResponse.from_model(quote)


@router.delete("/{quote_id}", response_model=QuoteResponse, summary="Withdraw a quote")
async def withdraw_quote(
    quote_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> QuoteResponse:
    quote = await QuoteService(session).withdraw_quote(quote_id, user)
    return QuoteResponse.from_model(quote)


@router.put(
    "/{quote_id}/accept",
    response_model=QuoteResponse,
    summary="Accept a quote",
    description="Selects the provider and rejects the job's other pending quotes.",
)
async def accept_quote(
    quote_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> QuoteResponse:
    quote = await QuoteService(session).accept_quote(quote_id, user)
    return QuoteResponse.from_model(quote)


@router.put("/{quote_id}/reject", response_model=QuoteResponse, summary="Reject a quote")
async def reject_quote(
    quote_id: uuid.UUID,
    request: RejectQuoteRequest | None = None,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> QuoteResponse:
    reason = request.reason if request else None
    quote = await QuoteService(session).reject_quote(quote_id, user, reason)
    return QuoteResponse.from_model(quote)
