"""Public routes for shipment tracking."""

from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from swiftship.api.deps import render
from swiftship.db import get_db
from swiftship.errors import InvalidTrackingNumber, NotFound
from swiftship.schemas import ShipmentOut, StopOut, TimelineEntryOut, TrackingOut
from swiftship.services.app_settings import AppSettingsService
from swiftship.services.route_loader import route_loader
from swiftship.services.shipments import normalise_tracking_number
from swiftship.services.tracker import TrackerService, TrackingView

router = APIRouter()


def tracking_out(view: TrackingView) -> TrackingOut:
    return TrackingOut(
        shipment=ShipmentOut.model_validate(view.shipment),
        progress=view.progress,
        timeline=[TimelineEntryOut.model_validate(entry) for entry in view.timeline.newest_first()],
        stops=[StopOut.model_validate(stop) for stop in view.stops],
    )


@router.get("/", response_class=HTMLResponse)
async def index(request: Request):
    """Tracking search page."""
    return render(request, "index.html", routes=route_loader.list_routes())


@router.get("/track")
async def track_search(tracking_number: str = ""):
    """Send a searched tracking number to its result page."""
    tracking_number = normalise_tracking_number(tracking_number)
    if not tracking_number:
        return RedirectResponse(url="/", status_code=303)
    return RedirectResponse(url=f"/track/{quote(tracking_number)}", status_code=303)


@router.get("/track/{tracking_number}", response_class=HTMLResponse)
async def track(request: Request, tracking_number: str, db: AsyncSession = Depends(get_db)):
    """Show the tracking result for a shipment."""
    try:
        view = await TrackerService(db).track(tracking_number)
    except (InvalidTrackingNumber, NotFound) as e:
        return render(
            request,
            "track.html",
            status_code=404 if isinstance(e, NotFound) else 422,
            view=None,
            tracking_number=tracking_number,
            error=str(e),
        )

    return render(request, "track.html", view=view, tracking_number=tracking_number)


@router.get("/track/{tracking_number}/report", response_class=HTMLResponse)
async def track_report(request: Request, tracking_number: str, db: AsyncSession = Depends(get_db)):
    """Printable tracking report."""
    view = await TrackerService(db).track(tracking_number)
    company = await AppSettingsService(db).company()
    return render(request, "report.html", view=view, company=company)


@router.get("/api/track/{tracking_number}", response_model=TrackingOut)
async def api_track(tracking_number: str, db: AsyncSession = Depends(get_db)):
    """API endpoint returning a shipment's status, timeline and stops."""
    view = await TrackerService(db).track(tracking_number)
    return tracking_out(view)


@router.get("/api/routes")
async def list_routes():
    """API endpoint to list the transport routes."""
    return {
        "routes": [
            {"mode": r.mode, "name": r.name, "icon": r.icon, "stops": len(r.stops)}
            for r in route_loader.list_routes()
        ],
    }
