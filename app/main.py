import logging

from fastapi import FastAPI

from app.api.endpoints import admin as admin_api
from app.api.endpoints import checkout as checkout_api
from app.api.endpoints import destinations as destinations_api
from app.api.endpoints import orders as orders_api
from app.api.endpoints import webhooks as webhooks_api
from app.core.config import LOG_LEVEL, TEST_MODE

logging.basicConfig(
    level=LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Trvel API", version="0.1.0")

# Include API routers
app.include_router(webhooks_api.router, prefix="/api/webhooks", tags=["Webhooks"])
app.include_router(admin_api.router, prefix="/api/admin", tags=["Admin"])
app.include_router(orders_api.router, prefix="/api/orders", tags=["Orders"])
app.include_router(checkout_api.router, prefix="/api/checkout", tags=["Checkout"])
app.include_router(destinations_api.router, prefix="/api", tags=["Catalog"])

if TEST_MODE:
    logger.warning("TEST_MODE is on: test Stripe keys and mock eSIM provisioning are in use")

@app.get("/ping", tags=["Health Check"])
async def ping():
    return {"message": "pong"}
