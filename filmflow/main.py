"""
Filmflow Backend
FastAPI application entry point

- Error sanitization middleware and structured domain error responses
- Health endpoint with store ping
- Local development creates tables on startup; production uses migrations
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from filmflow import __version__
from filmflow.api.routes import (
    audit_logs,
    cutting_entries,
    cutting_plans,
    order_stock_entries,
    orders,
    production_bobins,
    stock,
)
from filmflow.core.config import settings
from filmflow.core.error_handler import (
    ErrorSanitizationMiddleware,
    filmflow_error_handler,
    request_validation_error_handler,
)
from filmflow.core.exceptions import FilmflowError
from filmflow.store import get_store

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables for local SQL runs; nothing to start for the memory store."""
    if settings.STORE_BACKEND == "sql" and settings.ENVIRONMENT != "production":
        from filmflow.core.database import init_models
        await init_models()
        logger.info("Database tables ensured (ENVIRONMENT=%s)", settings.ENVIRONMENT)

    logger.info("%s %s started with %s store", settings.APP_NAME, __version__, settings.STORE_BACKEND)
    yield

    if settings.STORE_BACKEND == "sql":
        from filmflow.core.database import engine
        await engine.dispose()
    logger.info("%s shut down", settings.APP_NAME)


app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    description="Inventory, cutting and order-readiness backend for film manufacturing",
    version=__version__,
)

app.add_exception_handler(FilmflowError, filmflow_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)

# Catch unhandled exceptions, sanitize responses
app.add_middleware(ErrorSanitizationMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])
app.include_router(cutting_plans.router, prefix="/api/cutting-plans", tags=["Cutting Plans"])
app.include_router(cutting_entries.router, prefix="/api/cutting-entries", tags=["Cutting Entries"])
app.include_router(order_stock_entries.router, prefix="/api/order-stock-entries", tags=["Order Stock Entries"])
app.include_router(production_bobins.router, prefix="/api/production-bobins", tags=["Production Bobins"])
app.include_router(stock.router, prefix="/api/stock", tags=["Stock"])
app.include_router(audit_logs.router, prefix="/api/audit-logs", tags=["Audit"])


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check with an actual store ping.
    Returns 503 if the store is unreachable.
    """
    health_status = {
        "status": "healthy",
        "store": settings.STORE_BACKEND,
        "database": "unknown",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    try:
        await get_store().ping()
        health_status["database"] = "connected"
    except FilmflowError as e:
        health_status["database"] = f"error: {e.message[:100]}"
        health_status["status"] = "unhealthy"
        return JSONResponse(status_code=503, content=health_status)

    return health_status
