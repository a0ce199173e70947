"""Exception handlers mapping domain errors to HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from workhub.core.access import AuthorizationError, MembershipError, MemberNotFoundError

logger = logging.getLogger(__name__)


async def authorization_error_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={
            "detail": str(exc),
            "capability": exc.capability,
            "role": exc.role,
        },
    )


async def membership_error_handler(request: Request, exc: MembershipError) -> JSONResponse:
    if isinstance(exc, MemberNotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    logger.info(f"Rejected membership change on {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(AuthorizationError)(authorization_error_handler)
    app.exception_handler(MembershipError)(membership_error_handler)
