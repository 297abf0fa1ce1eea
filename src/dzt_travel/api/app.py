"""Travel API: FastAPI application factory.

The app factory creates a FastAPI instance with:
- CORS middleware (origins from settings unless overridden)
- Lifespan handler that builds the provider clients and closes them on shutdown
- Health endpoint at GET /api/health
- Rail, flight and connection routers
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dzt_travel import __version__
from dzt_travel.api.deps import init_clients
from dzt_travel.api.middleware import register_error_handlers
from dzt_travel.api.routers.connections import router as connections_router
from dzt_travel.api.routers.flights import router as flights_router
from dzt_travel.api.routers.transport import router as transport_router
from dzt_travel.config import Settings, load_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle for the provider clients.

    On startup: build one HTTP client and the provider clients over it
    On shutdown: close the HTTP client
    """
    clients = init_clients(app.state.settings)
    app.state.clients = clients
    logger.info(
        "Provider clients ready (flights %s)",
        "live" if clients.flights.configured else "sample data",
    )

    yield

    await clients.aclose()
    app.state.clients = None


def create_app(
    settings: Settings | None = None,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    settings:
        Runtime configuration.  Defaults to :func:`load_settings`, which
        reads the environment (and ``DZT_CONFIG_FILE`` when set).
    cors_origins:
        Allowed CORS origins.  Defaults to ``settings.cors_origins``.
    """
    if settings is None:
        settings = load_settings()
    if cors_origins is None:
        cors_origins = settings.cors_origins

    app = FastAPI(
        title="DZT Travel API",
        version=__version__,
        lifespan=lifespan,
    )
    app.router.redirect_slashes = False
    app.state.settings = settings
    app.state.clients = None

    register_error_handlers(app)

    # Outermost: wraps the catch-all error middleware.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(connections_router)
    app.include_router(transport_router)
    app.include_router(flights_router)

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app
