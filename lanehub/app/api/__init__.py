"""HTTP routers."""

from lanehub.app.api.context import router as context_router
from lanehub.app.api.events import router as events_router

__all__ = ["context_router", "events_router"]
