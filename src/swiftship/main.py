"""Main FastAPI application."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from swiftship.api import (
    admin_api_router,
    admin_auth_router,
    admin_router,
    register_error_handlers,
    router,
)
from swiftship.config import settings
from swiftship.db import init_db
from swiftship.logs import configure_logging
from swiftship.services.route_loader import route_loader

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    configure_logging(settings.log_level, json=settings.log_json)
    logger.info("Starting application", app_name=settings.app_name)
    await init_db()
    route_loader.load_all()
    logger.info("Loaded transport routes", count=len(route_loader.list_routes()))

    yield

    # Shutdown
    logger.info("Shutting down")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="Parcel booking and tracking",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie="swiftship_session",
        same_site="lax",
    )

    # Mount static files
    app.mount("/static", StaticFiles(directory=settings.package_dir / "static"), name="static")

    # Include routes
    app.include_router(router)
    app.include_router(admin_auth_router)
    app.include_router(admin_router)
    app.include_router(admin_api_router)

    register_error_handlers(app)
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "swiftship.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
