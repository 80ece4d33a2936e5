from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .services.analysis import InvalidFormat
from .store import TranscriptNotFound

logger = logging.getLogger("teamsync")


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def _handle_http_exception(request: Request, exc: HTTPException):  # type: ignore[unused-variable]
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(InvalidFormat)
    async def _handle_invalid_format(request: Request, exc: InvalidFormat):  # type: ignore[unused-variable]
        return _error(400, str(exc))

    @app.exception_handler(TranscriptNotFound)
    async def _handle_not_found(request: Request, exc: TranscriptNotFound):  # type: ignore[unused-variable]
        return _error(404, str(exc))

    @app.exception_handler(Exception)
    async def _handle_unexpected(request: Request, exc: Exception):  # type: ignore[unused-variable]
        logger.exception(f"unhandled error on {request.method} {request.url.path}")
        return _error(500, "internal error")
