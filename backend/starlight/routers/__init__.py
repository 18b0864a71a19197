# API routers
from .topology import router as topology_router
from .status import router as status_router
from .layout import router as layout_router
from .events import router as events_router

__all__ = ["topology_router", "status_router", "layout_router", "events_router"]
