"""Shared helpers for routes: templates, flash messages and admin access."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import Depends, Request
from fastapi.templating import Jinja2Templates
from jinja2 import pass_context
from jinja2.runtime import Context
from sqlalchemy.ext.asyncio import AsyncSession

from swiftship.config import settings
from swiftship.db import get_db
from swiftship.lifecycle.status import (
    BADGE_VARIANTS,
    PaymentStatus,
    ServiceLevel,
    ShipmentStatus,
    TransportMode,
    allowed_transitions,
    status_label,
)
from swiftship.lifecycle.timeline import as_utc
from swiftship.services.app_settings import AppSettingsService
from swiftship.services.auth import SessionProvider, User

templates = Jinja2Templates(directory=str(settings.templates_dir))


class LoginRequired(Exception):
    """Raised when an admin page or endpoint is requested while signed out."""


@pass_context
def _money(context: Context, value: Any) -> str:
    if value is None:
        return "-"
    currency = context.get("currency") or settings.currency
    return f"{currency} {Decimal(value):,.2f}"


def _datetime(value: datetime | None, fmt: str = "%b %d, %Y %I:%M %p") -> str:
    if value is None:
        return "N/A"
    return as_utc(value).strftime(fmt)


def _badge(status: ShipmentStatus | str) -> str:
    return BADGE_VARIANTS.get(ShipmentStatus(status), "pending")


templates.env.filters["money"] = _money
templates.env.filters["datetime"] = _datetime
templates.env.filters["status_label"] = status_label
templates.env.filters["badge"] = _badge
templates.env.globals["app_name"] = settings.app_name
templates.env.globals["statuses"] = list(ShipmentStatus)
templates.env.globals["service_levels"] = list(ServiceLevel)
templates.env.globals["transport_modes"] = list(TransportMode)
templates.env.globals["payment_statuses"] = list(PaymentStatus)
templates.env.globals["allowed_transitions"] = allowed_transitions


def get_session_provider(request: Request) -> SessionProvider:
    return SessionProvider(request.session)


def require_admin(provider: SessionProvider = Depends(get_session_provider)) -> User:
    user = provider.get_current_user()
    if user is None or not user.is_admin:
        raise LoginRequired()
    return user


async def load_currency(request: Request, db: AsyncSession = Depends(get_db)) -> None:
    """Make the stored pricing currency available to rendered pages."""
    pricing = await AppSettingsService(db).pricing()
    request.state.currency = pricing["currency"]


def flash(request: Request, message: str, category: str = "info") -> None:
    """Queue a message for the next rendered page."""
    messages = [*request.session.get("flash", []), {"message": message, "category": category}]
    request.session["flash"] = messages


def render(request: Request, template: str, status_code: int = 200, **context: Any):
    """Render a template with the signed-in user and any queued messages."""
    context.setdefault("user", SessionProvider(request.session).get_current_user())
    context.setdefault("currency", getattr(request.state, "currency", settings.currency))
    context["messages"] = request.session.pop("flash", [])
    return templates.TemplateResponse(request, template, context, status_code=status_code)
