from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from retail_backend.app.core.exceptions import RetailError
from retail_backend.app.core.logging import get_logger

logger = get_logger("api")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RetailError)
    async def retail_error_handler(request: Request, exc: RetailError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error": exc.code, "retryable": exc.retryable},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error": "InternalError", "retryable": False},
        )
