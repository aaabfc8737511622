"""Main module for the price watch service."""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from price_watch.config import Settings
from price_watch.container import Container, init_container
from price_watch.db.sessions import init_db
from price_watch.routers import watchers_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    """Create tables and start background tasks at startup; stop and close on shutdown."""
    container: Container = fastapi_app.state.container

    # Unreachable database at boot is fatal.
    init_db(container.engine())

    supervisor = container.supervisor()
    supervisor.start()

    yield

    await supervisor.stop()

    # Close upstream HTTP clients
    for provider in (
        container.spot_source(),
        container.history_source(),
        container.explorer(),
        container.push_transport(),
    ):
        try:
            await provider.close()
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Error closing provider %s: %s", type(provider).__name__, exc)


def create_app(container: Container | None = None) -> FastAPI:
    """Build the FastAPI app around a wired container."""
    container = container or init_container()
    fastapi_app = FastAPI(
        title="Price Watch",
        description="Token price alerts and explorer address subscriptions",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.container = container
    fastapi_app.include_router(watchers_router)

    @fastapi_app.get("/")
    def health():
        """Return health check status."""
        return {"status": "ok"}

    return fastapi_app


def run():
    """Run the server (uvicorn). Use for `poetry run start`."""
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(init_container(settings)), host=settings.host, port=settings.port)
