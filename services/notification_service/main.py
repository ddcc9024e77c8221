from fastapi import FastAPI
from shared.config.database import init_db
from shared.errors import register_error_handlers
from shared.observability import setup_observability
from .router import router, public_router
from .models import NotificationModel # Import to register with Base

notification_app = FastAPI(title="Notification Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(notification_app, "notification_service")
register_error_handlers(notification_app)

notification_app.include_router(public_router)
notification_app.include_router(router)

@notification_app.on_event("startup")
async def startup_event():
    await init_db()
