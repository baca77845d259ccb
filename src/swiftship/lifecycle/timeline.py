"""Projection of a shipment's tracking events into a display timeline."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Protocol

from swiftship.lifecycle.status import ShipmentStatus, progress_for, status_label


class EventLike(Protocol):
    """What the projector needs from a tracking event."""

    id: int | None
    status: ShipmentStatus
    location: str | None
    description: str | None
    notes: str | None
    created_at: datetime


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from the database."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimelineEntry:
    """One milestone as shown on the tracking page."""

    status: ShipmentStatus
    location: str | None
    timestamp: datetime
    description: str | None
    notes: str | None = None
    is_completed: bool = False
    is_current: bool = False

    @property
    def label(self) -> str:
        return status_label(self.status)


@dataclass(frozen=True)
class Timeline:
    """Ordered timeline (oldest first) and the shipment's progress."""

    entries: list[TimelineEntry] = field(default_factory=list)
    progress: int | None = None

    @property
    def current(self) -> TimelineEntry | None:
        return self.entries[-1] if self.entries else None

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def newest_first(self) -> list[TimelineEntry]:
        return list(reversed(self.entries))

    def __len__(self) -> int:
        return len(self.entries)


def _sort_key(event: EventLike) -> tuple[datetime, int]:
    return as_utc(event.created_at), event.id or 0


def project_timeline(
    events: Iterable[EventLike],
    current_status: ShipmentStatus | str | None = None,
) -> Timeline:
    """Build the display timeline for one shipment.

    Events are ordered by `created_at`, oldest first. The newest event is the
    only current one. Every earlier event counts as completed, since a later
    scan proves the milestone was passed; the newest is completed only once
    the parcel is delivered.

    Progress is taken from `current_status` when given, otherwise from the
    newest event. It is None when neither exists or the status is a side
    branch (exception, returned, cancelled).
    """
    ordered = sorted(events, key=_sort_key)
    last = len(ordered) - 1

    entries = [
        TimelineEntry(
            status=ShipmentStatus(event.status),
            location=event.location,
            timestamp=as_utc(event.created_at),
            description=event.description,
            notes=event.notes,
            is_completed=(
                index < last or ShipmentStatus(event.status) == ShipmentStatus.DELIVERED
            ),
            is_current=index == last,
        )
        for index, event in enumerate(ordered)
    ]

    if current_status is None and entries:
        current_status = entries[-1].status

    progress = progress_for(current_status) if current_status is not None else None
    return Timeline(entries=entries, progress=progress)
