import logging
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from .exceptions import (
    SubscriptionError,
    ValidationError,
    ReasonRequired,
    FreeTextRequired,
    NotFound,
    LockedWindow,
    NotScheduled,
    InvalidTransition,
    ConcurrentUpdate,
    StoreUnavailable,
)
from .response import error as resp_error

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    ValidationError: 422,
    ReasonRequired: 422,
    FreeTextRequired: 422,
    NotFound: 404,
    LockedWindow: 409,
    NotScheduled: 409,
    InvalidTransition: 409,
    ConcurrentUpdate: 409,
    StoreUnavailable: 503,
}

def status_for(exc: SubscriptionError) -> int:
    for err_type, status in STATUS_BY_ERROR.items():
        if isinstance(exc, err_type):
            return status
    return 400

def register_exception_handlers(app: FastAPI):
    @app.exception_handler(SubscriptionError)
    async def subscription_error_handler(request: Request, exc: SubscriptionError):
        details = {"kind": exc.kind} if isinstance(exc, ValidationError) else None
        return JSONResponse(status_code=status_for(exc), content=resp_error(code=exc.code, message=exc.message, details=details))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content=resp_error(code=str(exc.status_code), message=str(exc.detail)))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=resp_error(code="internal_error", message="Internal server error"))
