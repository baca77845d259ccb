"""Route definitions for each transport mode."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

import yaml

from swiftship.lifecycle.status import (
    FORWARD_SEQUENCE,
    ShipmentStatus,
    forward_index,
)
from swiftship.lifecycle.timeline import EventLike, as_utc


@dataclass(frozen=True)
class StopTemplate:
    """An intermediate stop and the milestone that marks it as passed."""

    kind: str
    location: str
    description: str
    milestone: ShipmentStatus


@dataclass(frozen=True)
class Stop:
    """A stop as shown on the tracking page."""

    kind: str
    location: str
    description: str
    transport_mode: str
    completed: bool
    timestamp: datetime | None = None


@dataclass
class RouteConfig:
    """Configuration loaded from route.yaml."""

    mode: str
    name: str
    icon: str
    stops: list[StopTemplate] = field(default_factory=list)
    enabled: bool = True

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "RouteConfig":
        """Load a route configuration from a YAML file."""
        with open(yaml_path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RouteConfig":
        return cls(
            mode=data["mode"],
            name=data["name"],
            icon=data.get("icon", "truck"),
            stops=[
                StopTemplate(
                    kind=stop["kind"],
                    location=stop["location"],
                    description=stop.get("description", ""),
                    milestone=ShipmentStatus(stop["milestone"]),
                )
                for stop in data.get("stops", [])
            ],
            enabled=data.get("enabled", True),
        )


def effective_status(
    status: ShipmentStatus, events: Iterable[EventLike] = ()
) -> ShipmentStatus | None:
    """The forward-sequence status used to decide which stops were passed.

    Side-branch statuses fall back to the newest forward status in the
    shipment's history, or None when the history has none.
    """
    if forward_index(status) is not None:
        return status

    forward = [e for e in events if forward_index(ShipmentStatus(e.status)) is not None]
    if not forward:
        return None
    latest = max(forward, key=lambda e: (as_utc(e.created_at), e.id or 0))
    return ShipmentStatus(latest.status)


class TransportRoute:
    """Stops a shipment passes through for one transport mode."""

    def __init__(self, config: RouteConfig):
        self.config = config

    @property
    def mode(self) -> str:
        return self.config.mode

    def project_stops(
        self, status: ShipmentStatus | str, events: Iterable[EventLike] = ()
    ) -> list[Stop]:
        """Build the stop list for a shipment at `status`.

        A stop is completed once the shipment is at or past its milestone.
        When events are given, a completed stop carries the time of the first
        event that reached the milestone.
        """
        events = list(events)
        reached = effective_status(ShipmentStatus(status), events)
        reached_index = forward_index(reached) if reached is not None else -1

        stops = []
        for template in self.config.stops:
            milestone_index = FORWARD_SEQUENCE.index(template.milestone)
            completed = reached_index >= milestone_index
            stops.append(
                Stop(
                    kind=template.kind,
                    location=template.location,
                    description=template.description,
                    transport_mode=self.mode,
                    completed=completed,
                    timestamp=self._reached_at(milestone_index, events) if completed else None,
                )
            )
        return stops

    @staticmethod
    def _reached_at(milestone_index: int, events: list[EventLike]) -> datetime | None:
        """Time of the first forward event at or past the milestone."""
        times = []
        for event in events:
            index = forward_index(ShipmentStatus(event.status))
            if index is not None and index >= milestone_index:
                times.append(as_utc(event.created_at))
        return min(times) if times else None
