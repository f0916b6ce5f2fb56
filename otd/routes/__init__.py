from .auth import router as auth_router
from .users import router as users_router
from .drivers import router as drivers_router
from .manufacturers import router as manufacturers_router
from .yards import router as yards_router
from .clients import router as clients_router, locations_router
from .checkpoints import router as checkpoints_router
from .vehicles import router as vehicles_router
from .collects import router as collects_router
from .transports import router as transports_router, checkpoint_router as transport_checkpoints_router
from .portaria import router as portaria_router
from .reports import router as reports_router
from .settlements import router as settlements_router
from .notifications import router as notifications_router

__all__ = [
    "auth_router",
    "users_router",
    "drivers_router",
    "manufacturers_router",
    "yards_router",
    "clients_router",
    "locations_router",
    "checkpoints_router",
    "vehicles_router",
    "collects_router",
    "transports_router",
    "transport_checkpoints_router",
    "portaria_router",
    "reports_router",
    "settlements_router",
    "notifications_router",
]
