"""Domain errors surfaced to callers as rejected requests.

Services raise these instead of ``HTTPException`` so the same checks can back
both the REST routes and the Socket.IO handlers. ``install_error_handlers``
maps them onto JSON responses with the matching status code.
"""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class ChatError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(ChatError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(ChatError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(ChatError):
    status_code = status.HTTP_404_NOT_FOUND


async def _chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ChatError, _chat_error_handler)
