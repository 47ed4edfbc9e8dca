"""Job REST API routes.

Routes:
    POST   /api/v1/jobs               Post a job (seekers)
    GET    /api/v1/jobs               Browse open jobs
    GET    /api/v1/jobs/mine          The caller's own jobs
    GET    /api/v1/jobs/{id}          Job details
    PUT    /api/v1/jobs/{id}          Edit an open job
    DELETE /api/v1/jobs/{id}          Delete or cancel a job
    PUT    /api/v1/jobs/{id}/status   Cancel, complete or dispute a job
    GET    /api/v1/jobs/{id}/quotes   Quotes on the job (owner)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from winnipeg_connect.api.deps import (
    get_current_user,
    get_db_session,
    get_optional_user,
    get_pagination,
)
from winnipeg_connect.domain.enums import JobPriority, JobStatus
from winnipeg_connect.infrastructure.database.orm_models import User
from winnipeg_connect.logging_config import get_logger
from winnipeg_connect.schemas.common import ERROR_RESPONSES, Pagination
from winnipeg_connect.schemas.jobs import (
    CreateJobRequest,
    JobListResponse,
    JobResponse,
    UpdateJobRequest,
    UpdateJobStatusRequest,
)
from winnipeg_connect.schemas.quotes import QuoteListResponse, QuoteResponse
from winnipeg_connect.services.job_service import JobService
from winnipeg_connect.services.quote_service import QuoteService

router = APIRouter(prefix="/api/v1/jobs", tags=["Jobs"], responses=ERROR_RESPONSES)
logger = get_logger(__name__)


@router.post("", response_model=JobResponse, status_code=201, summary="Post a job")
async def create_job(
    request: CreateJobRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> JobResponse:
    job = await JobService(session).create_job(user, request.to_fields())
    return JobResponse.model_validate(job)


@router.get("", response_model=JobListResponse, summary="Browse open jobs")
async def list_jobs(
    pagination: tuple[int, int] = Depends(get_pagination),
    category: str | None = Query(default=None),
    priority: JobPriority | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    sort: str = Query(default="newest", pattern="^(newest|oldest|views|urgent)$"),
    session: AsyncSession = Depends(get_db_session),
) -> JobListResponse:
    page, limit = pagination
    jobs, total = await JobService(session).list_open_jobs(
        page,
        limit,
        category=category,
        priority=priority.value if priority else None,
        search=search,
        sort=sort,
    )
    return JobListResponse(
        jobs=[JobResponse.model_validate(j) for j in jobs],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/mine", response_model=JobListResponse, summary="List my jobs")
async def list_my_jobs(
    pagination: tuple[int, int] = Depends(get_pagination),
    status: JobStatus | None = Query(default=None),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> JobListResponse:
    page, limit = pagination
    jobs, total = await JobService(session).list_my_jobs(
        user, page, limit, status=status.value if status else None
    )
    return JobListResponse(
        jobs=[JobResponse.model_validate(j) for j in jobs],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/{job_id}", response_model=JobResponse, summary="Get job details")
async def get_job(
    job_id: uuid.UUID,
    user: User | None = Depends(get_optional_user),
    session: AsyncSession = Depends(get_db_session),
) -> JobResponse:
    job = await JobService(session).get_job(job_id, viewer=user)
    return JobResponse.model_validate(job)


@router.put("/{job_id}", response_model=JobResponse, summary="Edit an open job")
async def update_job(
    job_id: uuid.UUID,
    request: UpdateJobRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> JobResponse:
    job = await JobService(session).update_job(job_id, user, request.to_fields())
    return JobResponse.model_validate(job)


@router.delete(
    "/{job_id}",
    response_model=JobResponse,
    summary="Delete a job",
    description=(
        "Jobs that never had a provider selected are deleted (204). "
        "Otherwise the job is cancelled and returned."
    ),
    responses={204: {"description": "Job deleted"}},
)
async def delete_job(
    job_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> JobResponse | Response:
    job = await JobService(session).delete_job(job_id, user)
    if job is None:
        return Response(status_code=204)
    return JobResponse.model_validate(job)


@router.put("/{job_id}/status", response_model=JobResponse, summary="Change job status")
async def update_job_status(
    job_id: uuid.UUID,
    request: UpdateJobStatusRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> JobResponse:
    job = await JobService(session).change_status(job_id, user, request.status)
    return JobResponse.model_validate(job)


@router.get("/{job_id}/quotes", response_model=QuoteListResponse, summary="Quotes on a job")
async def list_job_quotes(
    job_id: uuid.UUID,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
) -> QuoteListResponse:
    quotes = await QuoteService(session).list_job_quotes(job_id, user)
    return QuoteListResponse(quotes=[QuoteResponse.from_model(q) for q in quotes])
