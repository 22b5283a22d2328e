"""
StockSense inventory service

Stock levels, maintenance-agreement allocations and the append-only stock
movement audit trail.
"""

from contextlib import asynccontextmanager
from pathlib import Path
import os

from alembic import command
from alembic.config import Config
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.core import ServiceHealth, setup_logging, RequestLoggingMiddleware, get_logger
from stocksense.core_settings import get_settings
from stocksense.api.errors import setup_exception_handlers
from stocksense.api.routes import router as inventory_router, transactions_router, allocations_router, stats_router
from stocksense.infrastructure.db import engine, init_models
from stocksense.infrastructure.locks import get_lock_registry

settings = get_settings()

SERVICE_NAME = "stocksense-inventory"
SERVICE_DESCRIPTION = "Inventory stock, allocation and audit trail service"
ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"

os.environ.setdefault("SERVICE_VERSION", settings.SERVICE_VERSION)
os.environ.setdefault("ENVIRONMENT", settings.ENVIRONMENT)

setup_logging(service_name=SERVICE_NAME, level=settings.LOG_LEVEL)
logger = get_logger(__name__)


def run_migrations() -> None:
    config = Config(str(ALEMBIC_INI))
    config.attributes["configure_logger"] = False
    config.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    command.upgrade(config, "head")
    logger.info("Database migrations applied", extra={'extra_fields': {'target': 'head'}})


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Starting {SERVICE_NAME}",
        extra={'extra_fields': {'version': settings.SERVICE_VERSION, 'environment': settings.ENVIRONMENT}}
    )
    if settings.RUN_MIGRATIONS:
        run_migrations()
    # Tables the migrations did not create (local SQLite runs)
    init_models()
    yield
    logger.info(f"Shutting down {SERVICE_NAME}")


app = FastAPI(
    title=SERVICE_NAME,
    description=SERVICE_DESCRIPTION,
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "PATCH"],
    allow_headers=["Authorization", "Content-Type", "Idempotency-Key", "X-Request-ID", "X-Correlation-ID"],
)
app.add_middleware(RequestLoggingMiddleware)
setup_exception_handlers(app)

health_service = ServiceHealth(
    SERVICE_NAME,
    settings.SERVICE_VERSION,
    engine=engine,
    required_tables=("inventory", "transactions", "allocation_logs"),
    extra_metrics=lambda: {"active_item_locks": get_lock_registry().active_keys()},
)
app.include_router(health_service.create_health_router())

for router in (inventory_router, transactions_router, allocations_router, stats_router):
    app.include_router(router)


@app.get("/")
async def root():
    return {
        "service": SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs": "/api/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
