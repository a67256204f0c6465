from contentauth.api.media_routes import router as media_router
from contentauth.api.activity_routes import router as activity_router
from contentauth.api.ledger_routes import router as ledger_router
from contentauth.api.system_routes import router as system_router

__all__ = ["media_router", "activity_router", "ledger_router", "system_router"]
