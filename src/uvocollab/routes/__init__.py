"""HTTP routers."""

from uvocollab.routes.collaborations import router as collaborations_router
from uvocollab.routes.contracts import router as contracts_router
from uvocollab.routes.notifications import router as notifications_router
from uvocollab.routes.status import router as status_router

__all__ = [
    "collaborations_router",
    "contracts_router",
    "notifications_router",
    "status_router",
]
