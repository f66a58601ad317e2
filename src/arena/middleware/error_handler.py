"""Global error handlers. Every error leaves as ``{"detail", "kind", ...}`` JSON.

Domain errors carry their own status, kind and code. Framework errors are
mapped onto the same kinds. Anything else becomes a bare 500 so storage or
driver details never reach the client.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from arena.errors import ArenaError

logger = structlog.get_logger()

_KIND_BY_STATUS = {
    401: "authorization_denied",
    403: "authorization_denied",
    404: "not_found",
    405: "invalid_input",
    409: "conflict",
}


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(ArenaError)
    async def arena_error_handler(request: Request, exc: ArenaError) -> JSONResponse:
        log = logger.warning if exc.retryable else logger.info
        log(
            "request_rejected",
            path=request.url.path,
            method=request.method,
            kind=exc.kind,
            code=exc.code,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "kind": _KIND_BY_STATUS.get(exc.status_code, "error")},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "detail": "Validation error",
                "kind": "invalid_input",
                "errors": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "kind": "error"},
        )
