"""
HTTP rendering of lifecycle errors.

Every service app registers the same handler so a rejected command looks the
same no matter which surface (customer, admin, payment callback) issued it:

    {"detail": {"error", "action", "order_id", "status", "payment_status", "message"}}
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from services.lifecycle import (
    AlreadyRated,
    ConcurrentModification,
    InvalidCommand,
    InvalidTransition,
    LifecycleError,
    NotFound,
    PaymentNotReady,
    TimeGateRejected,
)

STATUS_CODES = {
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidCommand: status.HTTP_422_UNPROCESSABLE_ENTITY,
    TimeGateRejected: status.HTTP_400_BAD_REQUEST,
    PaymentNotReady: status.HTTP_400_BAD_REQUEST,
    InvalidTransition: status.HTTP_409_CONFLICT,
    AlreadyRated: status.HTTP_409_CONFLICT,
    ConcurrentModification: status.HTTP_409_CONFLICT,
}


def status_code_for(exc: LifecycleError) -> int:
    for error_cls, code in STATUS_CODES.items():
        if isinstance(exc, error_cls):
            return code
    return status.HTTP_400_BAD_REQUEST


async def lifecycle_error_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    return JSONResponse(status_code=status_code_for(exc), content={"detail": exc.to_dict()})


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(LifecycleError, lifecycle_error_handler)
