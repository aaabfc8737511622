"""API routers."""
from price_watch.routers.watchers import router as watchers_router

__all__ = ["watchers_router"]
