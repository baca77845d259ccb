"""Transport mode routes package."""

from swiftship.transport.base import RouteConfig, Stop, StopTemplate, TransportRoute

__all__ = ["RouteConfig", "Stop", "StopTemplate", "TransportRoute"]
