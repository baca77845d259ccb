"""Service for loading transport mode routes."""

from pathlib import Path

import structlog

from swiftship.config import settings
from swiftship.transport.base import RouteConfig, TransportRoute

logger = structlog.get_logger(__name__)


class RouteLoader:
    """Loads route definitions from the transport directory."""

    def __init__(self, routes_dir: Path | None = None):
        self.routes_dir = routes_dir or settings.routes_dir
        self._routes: dict[str, TransportRoute] = {}

    def load_all(self) -> dict[str, TransportRoute]:
        """Load all routes from the transport directory."""
        if self._routes:
            return self._routes

        for route_dir in sorted(self.routes_dir.iterdir()):
            if not route_dir.is_dir():
                continue
            if route_dir.name.startswith("_") or route_dir.name.startswith("."):
                continue

            self._load_route(route_dir)

        return self._routes

    def _load_route(self, route_dir: Path) -> None:
        """Load a single route definition."""
        config_path = route_dir / "route.yaml"

        if not config_path.exists():
            logger.debug("Skipping route directory without route.yaml", directory=route_dir.name)
            return

        config = RouteConfig.from_yaml(config_path)
        if not config.enabled:
            logger.info("Skipping disabled route", mode=config.mode)
            return

        self._routes[config.mode] = TransportRoute(config)
        logger.debug("Loaded route", mode=config.mode, stops=len(config.stops))

    def get_route(self, mode: str) -> TransportRoute | None:
        """Get the route for a transport mode."""
        if not self._routes:
            self.load_all()
        return self._routes.get(str(getattr(mode, "value", mode)))

    def list_routes(self) -> list[RouteConfig]:
        """List all loaded route configurations."""
        if not self._routes:
            self.load_all()
        return [route.config for route in self._routes.values()]


# Global route loader instance
route_loader = RouteLoader()
