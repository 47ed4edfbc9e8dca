"""FastAPI middleware for request tracing, error handling, and CORS.

Middleware stack (applied bottom-up):
    1. RequestIDMiddleware: injects X-Request-ID into every request/response
    2. ErrorHandlerMiddleware: catches domain exceptions -> structured JSON errors
    3. CORSMiddleware: lets the browser front end call the API

Domain exceptions map to status codes by category:
    not found 404, authentication 401, authorization 403, state conflict 409,
    validation 400, payment gateway 502, anything unexpected 500.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from winnipeg_connect.domain.exceptions import (
    AuthenticationError,
    DomainValidationError,
    InvalidStateTransitionError,
    MarketplaceError,
    NotAuthorizedError,
    PaymentGatewayError,
    ResourceNotFoundError,
    StateConflictError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI, Request, Response

    from winnipeg_connect.config import Settings

logger = structlog.get_logger(__name__)

# Checked in order; the first matching category wins.
_STATUS_BY_CATEGORY: tuple[tuple[type[MarketplaceError], int], ...] = (
    (ResourceNotFoundError, 404),
    (AuthenticationError, 401),
    (NotAuthorizedError, 403),
    (StateConflictError, 409),
    (DomainValidationError, 400),
    (PaymentGatewayError, 502),
)


def status_for(exc: MarketplaceError) -> int:
    for category, status_code in _STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            return status_code
    return 400


def _error_response(exc: MarketplaceError, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": exc.message},
    )


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag every request with an X-Request-ID and bind it to the log context."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn marketplace exceptions into {"error": CODE, "message": ...} bodies."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except InvalidStateTransitionError as exc:
            logger.warning(
                "state_machine.invalid_transition",
                entity=exc.entity,
                current=exc.current_state,
                attempted=exc.attempted,
            )
            return _error_response(exc, 409)
        except PaymentGatewayError as exc:
            logger.error("payment_gateway.error", error=exc.message, intent_id=exc.intent_id)
            return _error_response(exc, 502)
        except MarketplaceError as exc:
            status_code = status_for(exc)
            logger.warning("domain.error", code=exc.code, status_code=status_code)
            return _error_response(exc, status_code)
        except Exception:
            logger.exception("unhandled.error")
            return JSONResponse(
                status_code=500,
                content={"error": "INTERNAL_ERROR", "message": "An unexpected error occurred"},
            )


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register middleware. The last one added is the outermost."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIDMiddleware)
