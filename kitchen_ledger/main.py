from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kitchen_ledger.api.routes.bills import router as bills_router
from kitchen_ledger.api.routes.dashboard import router as dashboard_router
from kitchen_ledger.api.routes.dishes import router as dishes_router
from kitchen_ledger.api.routes.dlc import router as dlc_router
from kitchen_ledger.api.routes.products import router as products_router
from kitchen_ledger.api.routes.sales import router as sales_router
from kitchen_ledger.core.config import settings
from kitchen_ledger.core.logging import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(settings.service_name, settings.log_level, settings.log_json)
    logger.info("service_started", app_name=settings.app_name)
    try:
        yield
    finally:
        logger.info("service_stopped")

app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(products_router)
app.include_router(dishes_router)
app.include_router(sales_router)
app.include_router(bills_router)
app.include_router(dlc_router)
app.include_router(dashboard_router)


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}
