"""Translation of application errors into HTTP responses."""

from urllib.parse import quote

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from swiftship.api.deps import LoginRequired, render
from swiftship.errors import (
    ConcurrentUpdate,
    InvalidTrackingNumber,
    InvalidTransition,
    NotFound,
    PartialUpdateFailure,
    StoreUnavailable,
    SwiftShipError,
)
from swiftship.services.directory import DuplicateRecord

logger = structlog.get_logger(__name__)

STATUS_CODES: dict[type[SwiftShipError], int] = {
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidTransition: status.HTTP_409_CONFLICT,
    ConcurrentUpdate: status.HTTP_409_CONFLICT,
    DuplicateRecord: status.HTTP_409_CONFLICT,
    InvalidTrackingNumber: status.HTTP_422_UNPROCESSABLE_ENTITY,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
    PartialUpdateFailure: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

ERROR_CODES: dict[type[SwiftShipError], str] = {
    NotFound: "not_found",
    InvalidTransition: "invalid_transition",
    ConcurrentUpdate: "concurrent_update",
    DuplicateRecord: "duplicate_record",
    InvalidTrackingNumber: "invalid_tracking_number",
    StoreUnavailable: "store_unavailable",
    PartialUpdateFailure: "partial_update_failure",
}


def _is_api(request: Request) -> bool:
    return request.url.path.startswith("/api/")


def error_body(exc: SwiftShipError) -> dict:
    body: dict = {"error": ERROR_CODES.get(type(exc), "error"), "detail": str(exc)}
    if isinstance(exc, InvalidTransition):
        body["current"] = exc.current.value
        body["next"] = exc.next_status.value
    elif isinstance(exc, PartialUpdateFailure):
        pending = exc.pending
        body["shipment_id"] = pending.shipment_id
        body["pending_event"] = {
            "status": pending.status.value,
            "created_at": pending.created_at.isoformat(),
            "location": pending.location,
            "description": pending.description,
            "notes": pending.notes,
            "branch_id": pending.branch_id,
        }
    return body


async def handle_app_error(request: Request, exc: SwiftShipError):
    status_code = STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=str(exc))

    if _is_api(request):
        return JSONResponse(error_body(exc), status_code=status_code)
    return render(request, "error.html", status_code=status_code, error=exc, code=status_code)


async def handle_login_required(request: Request, exc: LoginRequired):
    if _is_api(request):
        return JSONResponse(
            {"error": "unauthorized", "detail": "Sign in required"},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    return RedirectResponse(
        url=f"/admin/login?next={quote(request.url.path)}",
        status_code=status.HTTP_303_SEE_OTHER,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SwiftShipError, handle_app_error)
    app.add_exception_handler(LoginRequired, handle_login_required)
