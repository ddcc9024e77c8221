from fastapi import FastAPI

from shared.config.database import init_db
from shared.errors import register_error_handlers
from shared.observability.setup import setup_observability

from .models import PaymentModel # Import to register with Base
from .router import router, admin_router, public_router


payment_app = FastAPI(title="Payment Service", version="2.0.0")

# Structured logs, OTLP traces and /metrics
setup_observability(payment_app, "payment_service")
register_error_handlers(payment_app)

payment_app.include_router(public_router)
payment_app.include_router(router)
payment_app.include_router(admin_router)

@payment_app.on_event("startup")
async def startup_event():
    await init_db()
