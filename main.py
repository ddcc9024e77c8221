from fastapi import FastAPI
from shared.config.database import init_db

# IMPORTANT: import models so they register with Base
from services.order_service import models as order_models
from services.payment_service import models as payment_models
from services.notification_service import models as notification_models

from services.order_service.main import order_app
from services.payment_service.main import payment_app
from services.notification_service.main import notification_app

app = FastAPI(title="Cleaning Order Cluster")

@app.on_event("startup")
async def startup_event():
    # Mounted sub-apps do not run their own startup hooks
    await init_db()

@app.get("/health")
async def health_check():
    return {"service": "cluster", "status": "running"}

app.mount("/orders", order_app)
app.mount("/payments", payment_app)
app.mount("/notifications", notification_app)
