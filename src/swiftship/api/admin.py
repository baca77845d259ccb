"""Back-office pages for staff."""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from swiftship.api.deps import (
    flash,
    get_session_provider,
    load_currency,
    render,
    require_admin,
)
from swiftship.config import settings
from swiftship.db import get_db
from swiftship.errors import (
    ConcurrentUpdate,
    InvalidTrackingNumber,
    InvalidTransition,
    NotFound,
    PartialUpdateFailure,
    PendingEvent,
)
from swiftship.lifecycle.status import ShipmentStatus
from swiftship.schemas import (
    BranchIn,
    CompanySettingsIn,
    CustomerIn,
    DriverIn,
    PendingEventIn,
    PricingRuleIn,
    PricingSettingsIn,
    ShipmentCreate,
    ShipmentUpdate,
    TransitionRequest,
)
from swiftship.services.app_settings import AppSettingsService
from swiftship.services.auth import SessionProvider
from swiftship.services.booking import BookingService
from swiftship.services.directory import (
    BranchService,
    CustomerService,
    DirectoryService,
    DriverService,
    DuplicateRecord,
)
from swiftship.services.pricing import PricingService
from swiftship.services.recorder import TrackingEventRecorder
from swiftship.services.reports import ReportService
from swiftship.services.shipments import ShipmentStore
from swiftship.services.tracker import TrackerService

logger = structlog.get_logger(__name__)

PENDING_KEY = "pending_event"

auth_router = APIRouter(prefix="/admin")
router = APIRouter(
    prefix="/admin", dependencies=[Depends(require_admin), Depends(load_currency)]
)

DIRECTORIES: dict[str, tuple[type[DirectoryService], type[BaseModel], str]] = {
    "branches": (BranchService, BranchIn, "Branches"),
    "drivers": (DriverService, DriverIn, "Drivers"),
    "customers": (CustomerService, CustomerIn, "Customers"),
}


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=303)


def _form_errors(error: ValidationError) -> list[str]:
    return [f"{'.'.join(str(p) for p in e['loc']) or 'form'}: {e['msg']}" for e in error.errors()]


async def _form_data(request: Request) -> dict[str, Any]:
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


def _directory(kind: str) -> tuple[type[DirectoryService], type[BaseModel], str]:
    if kind not in DIRECTORIES:
        raise NotFound("page", kind)
    return DIRECTORIES[kind]


# Sign-in


@auth_router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, next_url: str = Query(default="/admin", alias="next")):
    """Admin sign-in form."""
    return render(request, "admin/login.html", next=next_url, email="")


@auth_router.post("/login")
async def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    next_url: str = Form(default="/admin", alias="next"),
    provider: SessionProvider = Depends(get_session_provider),
):
    """Sign in with the configured admin account."""
    if provider.sign_in(email, password) is None:
        return render(
            request,
            "admin/login.html",
            status_code=401,
            next=next_url,
            email=email,
            error="Invalid email or password",
        )
    # Only redirect within the site
    if not next_url.startswith("/") or next_url.startswith("//"):
        next_url = "/admin"
    return _redirect(next_url)


@auth_router.post("/logout")
async def logout(provider: SessionProvider = Depends(get_session_provider)):
    """Sign out."""
    provider.sign_out()
    return _redirect("/admin/login")


# Dashboard and reports


@router.get("", response_class=HTMLResponse)
async def dashboard(request: Request, db: AsyncSession = Depends(get_db)):
    """Headline figures and the most recent shipments."""
    report = await ReportService(db).shipment_report(period_days=30)
    recent = await ShipmentStore(db).list_shipments(limit=settings.recent_shipments_limit)
    return render(request, "admin/dashboard.html", report=report, recent=recent)


@router.get("/reports", response_class=HTMLResponse)
async def reports(request: Request, days: int = 7, db: AsyncSession = Depends(get_db)):
    """Shipment report over a period of days."""
    days = min(max(days, 1), 365)
    report = await ReportService(db).shipment_report(period_days=days)
    return render(request, "admin/reports.html", report=report, days=days)


# Shipments


@router.get("/shipments", response_class=HTMLResponse)
async def shipment_list(
    request: Request,
    q: str = "",
    status: str = "",
    db: AsyncSession = Depends(get_db),
):
    """All shipments, searched and filtered."""
    try:
        status_filter = ShipmentStatus(status) if status else None
    except ValueError:
        status_filter = None
    shipments = await ShipmentStore(db).list_shipments(query=q or None, status=status_filter)
    return render(
        request,
        "admin/shipments.html",
        shipments=shipments,
        q=q,
        status_filter=status_filter,
    )


async def _shipment_form_context(db: AsyncSession) -> dict[str, Any]:
    return {
        "branches": await BranchService(db).list_all(active_only=True),
        "drivers": await DriverService(db).list_all(active_only=True),
        "customers": await CustomerService(db).list_all(active_only=True),
    }


@router.get("/shipments/new", response_class=HTMLResponse)
async def new_shipment_page(request: Request, db: AsyncSession = Depends(get_db)):
    """Form for booking a shipment."""
    context = await _shipment_form_context(db)
    return render(request, "admin/shipment_form.html", shipment=None, form={}, **context)


@router.post("/shipments/new")
async def create_shipment(request: Request, db: AsyncSession = Depends(get_db)):
    """Book a shipment from the form."""
    form = await _form_data(request)
    try:
        data = ShipmentCreate.model_validate(form)
    except ValidationError as e:
        context = await _shipment_form_context(db)
        return render(
            request,
            "admin/shipment_form.html",
            status_code=422,
            shipment=None,
            form=form,
            errors=_form_errors(e),
            **context,
        )

    shipment = await BookingService(db).create(data)
    flash(request, f"Shipment {shipment.tracking_number} created", "success")
    return _redirect(f"/admin/shipments/{shipment.id}")


@router.get("/shipments/{shipment_id}", response_class=HTMLResponse)
async def shipment_detail(request: Request, shipment_id: int, db: AsyncSession = Depends(get_db)):
    """Shipment details, history and the status update form."""
    view = await TrackerService(db).view_shipment(shipment_id)
    branches = await BranchService(db).list_all(active_only=True)
    pending = request.session.get(PENDING_KEY)
    if pending and pending.get("shipment_id") != shipment_id:
        pending = None
    return render(
        request,
        "admin/shipment_detail.html",
        view=view,
        shipment=view.shipment,
        branches=branches,
        pending=pending,
    )


@router.get("/shipments/{shipment_id}/edit", response_class=HTMLResponse)
async def edit_shipment_page(request: Request, shipment_id: int, db: AsyncSession = Depends(get_db)):
    """Form for editing a shipment."""
    shipment = await ShipmentStore(db).get_shipment(shipment_id)
    context = await _shipment_form_context(db)
    return render(request, "admin/shipment_form.html", shipment=shipment, form={}, **context)


@router.post("/shipments/{shipment_id}/edit")
async def edit_shipment(request: Request, shipment_id: int, db: AsyncSession = Depends(get_db)):
    """Save edits to a shipment."""
    form = await _form_data(request)
    try:
        data = ShipmentUpdate.model_validate(form)
        await BookingService(db).update(shipment_id, data)
    except ValidationError as e:
        shipment = await ShipmentStore(db).get_shipment(shipment_id)
        context = await _shipment_form_context(db)
        return render(
            request,
            "admin/shipment_form.html",
            status_code=422,
            shipment=shipment,
            form=form,
            errors=_form_errors(e),
            **context,
        )
    except (InvalidTransition, ConcurrentUpdate) as e:
        flash(request, str(e), "error")
        return _redirect(f"/admin/shipments/{shipment_id}/edit")
    except PartialUpdateFailure as e:
        _keep_pending(request, e)
        return _redirect(f"/admin/shipments/{shipment_id}")

    flash(request, "Shipment updated", "success")
    return _redirect(f"/admin/shipments/{shipment_id}")


def _keep_pending(request: Request, error: PartialUpdateFailure) -> None:
    """Remember an unrecorded event so the detail page can offer a retry."""
    pending = PendingEventIn.model_validate(error.pending).model_dump(mode="json")
    pending["shipment_id"] = error.pending.shipment_id
    request.session[PENDING_KEY] = pending
    flash(request, f"{error} Use retry to record the tracking event.", "error")


async def _record(
    request: Request, db: AsyncSession, shipment_id: int, data: TransitionRequest
) -> bool:
    """Record a transition from a form, turning failures into page messages."""
    recorder = TrackingEventRecorder(ShipmentStore(db))
    try:
        result = await recorder.record(
            shipment_id,
            data.status,
            location=data.location,
            description=data.description,
            notes=data.notes,
            branch_id=data.branch_id,
        )
    except (InvalidTransition, ConcurrentUpdate) as e:
        flash(request, str(e), "error")
        return False
    except PartialUpdateFailure as e:
        _keep_pending(request, e)
        return False

    flash(
        request,
        f"{result.shipment.tracking_number} is now {result.shipment.status_label}",
        "success",
    )
    return True


@router.post("/shipments/{shipment_id}/status")
async def update_status(
    request: Request,
    shipment_id: int,
    status: ShipmentStatus = Form(...),
    location: str = Form(default=""),
    description: str = Form(default=""),
    notes: str = Form(default=""),
    branch_id: str = Form(default=""),
    db: AsyncSession = Depends(get_db),
):
    """Move a shipment to a new status."""
    data = TransitionRequest.model_validate(
        {
            "status": status,
            "location": location,
            "description": description,
            "notes": notes,
            "branch_id": branch_id,
        }
    )
    await _record(request, db, shipment_id, data)
    return _redirect(f"/admin/shipments/{shipment_id}")


@router.post("/shipments/{shipment_id}/events/retry")
async def retry_event(request: Request, shipment_id: int, db: AsyncSession = Depends(get_db)):
    """Append the tracking event a partial update left behind."""
    data = request.session.get(PENDING_KEY)
    if not data or data.get("shipment_id") != shipment_id:
        flash(request, "Nothing to retry", "info")
        return _redirect(f"/admin/shipments/{shipment_id}")

    pending = PendingEventIn.model_validate(data)
    try:
        await TrackingEventRecorder(ShipmentStore(db)).complete(
            PendingEvent(shipment_id=shipment_id, **pending.model_dump())
        )
    except InvalidTransition as e:
        request.session.pop(PENDING_KEY, None)
        flash(request, f"Tracking event no longer applies: {e}", "error")
        return _redirect(f"/admin/shipments/{shipment_id}")
    request.session.pop(PENDING_KEY, None)
    flash(request, "Tracking event recorded", "success")
    return _redirect(f"/admin/shipments/{shipment_id}")


@router.post("/shipments/{shipment_id}/delete")
async def delete_shipment(request: Request, shipment_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a shipment and its history."""
    await ShipmentStore(db).delete_shipment(shipment_id)
    flash(request, "Shipment deleted", "success")
    return _redirect("/admin/shipments")


# Scanning


@router.get("/scan", response_class=HTMLResponse)
async def scan_page(request: Request, tracking_number: str = "", db: AsyncSession = Depends(get_db)):
    """Look up a parcel by tracking number to record a scan."""
    view = None
    error = None
    if tracking_number:
        try:
            view = await TrackerService(db).track(tracking_number)
        except (InvalidTrackingNumber, NotFound) as e:
            error = str(e)

    branches = await BranchService(db).list_all(active_only=True)
    return render(
        request,
        "admin/scan.html",
        tracking_number=tracking_number,
        view=view,
        error=error,
        branches=branches,
    )


@router.post("/scan")
async def scan(
    request: Request,
    tracking_number: str = Form(...),
    status: ShipmentStatus = Form(...),
    location: str = Form(default=""),
    notes: str = Form(default=""),
    branch_id: str = Form(default=""),
    db: AsyncSession = Depends(get_db),
):
    """Record a scan as a status change."""
    shipment = await ShipmentStore(db).get_shipment_by_tracking_number(tracking_number.strip().upper())
    data = TransitionRequest.model_validate(
        {"status": status, "location": location, "notes": notes, "branch_id": branch_id}
    )
    await _record(request, db, shipment.id, data)
    return _redirect(f"/admin/scan?tracking_number={shipment.tracking_number}")


# Settings


async def _settings_context(db: AsyncSession) -> dict[str, Any]:
    app_settings = AppSettingsService(db)
    return {
        "company": await app_settings.company(),
        "pricing": await app_settings.pricing(),
        "rules": await PricingService(db).list_rules(),
    }


@router.get("/settings", response_class=HTMLResponse)
async def settings_page(request: Request, db: AsyncSession = Depends(get_db)):
    """Company, pricing and pricing rules."""
    return render(request, "admin/settings.html", **await _settings_context(db))


async def _save_settings(request: Request, db: AsyncSession, key: str, schema: type[BaseModel]):
    form = await _form_data(request)
    try:
        data = schema.model_validate(form)
    except ValidationError as e:
        return render(
            request,
            "admin/settings.html",
            status_code=422,
            errors=_form_errors(e),
            **await _settings_context(db),
        )
    await AppSettingsService(db).set(key, data.model_dump(mode="json"))
    logger.info("Settings saved", key=key)
    flash(request, "Settings saved", "success")
    return _redirect("/admin/settings")


@router.post("/settings/company")
async def save_company(request: Request, db: AsyncSession = Depends(get_db)):
    return await _save_settings(request, db, "company", CompanySettingsIn)


@router.post("/settings/pricing")
async def save_pricing(request: Request, db: AsyncSession = Depends(get_db)):
    return await _save_settings(request, db, "pricing", PricingSettingsIn)


@router.post("/settings/rules")
async def save_rule(request: Request, db: AsyncSession = Depends(get_db)):
    """Create a pricing rule, or update one when the form carries its id."""
    form = await _form_data(request)
    rule_id = form.pop("id", "")
    try:
        data = PricingRuleIn.model_validate(form)
    except ValidationError as e:
        return render(
            request,
            "admin/settings.html",
            status_code=422,
            errors=_form_errors(e),
            **await _settings_context(db),
        )
    await PricingService(db).save_rule(int(rule_id) if rule_id else None, **data.model_dump())
    flash(request, "Pricing rule saved", "success")
    return _redirect("/admin/settings")


@router.post("/settings/rules/{rule_id}/delete")
async def delete_rule(request: Request, rule_id: int, db: AsyncSession = Depends(get_db)):
    await PricingService(db).delete_rule(rule_id)
    flash(request, "Pricing rule deleted", "success")
    return _redirect("/admin/settings")


# Branches, drivers and customers


@router.get("/{kind}", response_class=HTMLResponse)
async def directory_list(request: Request, kind: str, q: str = "", db: AsyncSession = Depends(get_db)):
    """List of branches, drivers or customers."""
    service_class, _, title = _directory(kind)
    records = await service_class(db).list_all(query=q or None)
    context: dict[str, Any] = {"kind": kind, "title": title, "records": records, "q": q}
    if kind == "drivers":
        context["branches"] = await BranchService(db).list_all(active_only=True)
    return render(request, "admin/directory.html", **context)


@router.post("/{kind}")
async def directory_create(request: Request, kind: str, db: AsyncSession = Depends(get_db)):
    """Add a branch, driver or customer."""
    service_class, schema, _ = _directory(kind)
    form = await _form_data(request)
    try:
        data = schema.model_validate(form)
        record = await service_class(db).save(**data.model_dump())
    except ValidationError as e:
        for message in _form_errors(e):
            flash(request, message, "error")
        return _redirect(f"/admin/{kind}")
    except DuplicateRecord as e:
        flash(request, str(e), "error")
        return _redirect(f"/admin/{kind}")

    flash(request, f"{record.name} added", "success")
    return _redirect(f"/admin/{kind}")


@router.post("/{kind}/{record_id}/toggle")
async def directory_toggle(
    request: Request, kind: str, record_id: int, db: AsyncSession = Depends(get_db)
):
    """Activate or deactivate a record."""
    service_class, _, _ = _directory(kind)
    service = service_class(db)
    record = await service.get(record_id)
    record = await service.set_active(record_id, not record.is_active)
    state = "activated" if record.is_active else "deactivated"
    flash(request, f"{record.name} {state}", "success")
    return _redirect(f"/admin/{kind}")


@router.post("/{kind}/{record_id}/delete")
async def directory_delete(
    request: Request, kind: str, record_id: int, db: AsyncSession = Depends(get_db)
):
    service_class, _, _ = _directory(kind)
    await service_class(db).delete(record_id)
    flash(request, "Record deleted", "success")
    return _redirect(f"/admin/{kind}")
