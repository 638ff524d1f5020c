"""FastAPI application entry point.

Order tracking service: PDF import, order store, production and
shipment tracking, comment threads.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ordertrack import __version__
from ordertrack.config import settings
from ordertrack.core.errors import OrderTrackError
from ordertrack.core.preview_store import get_preview_store
from ordertrack.infra.database import close_db_engine, init_models, verify_db_connection
from ordertrack.infra.logging import get_logger, setup_logging

# Import routers
from ordertrack.api.routes import (
    comments_router,
    events_router,
    health_router,
    orders_router,
    pdf_import_router,
    production_router,
    products_router,
    shipments_router,
)

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup:
    - Create tables on local SQLite databases
    - Verify database connection
    - Start the preview expiry sweeper

    Shutdown:
    - Stop the sweeper
    - Close database connections
    """
    logger.info("Order tracking starting", environment=settings.environment)

    if settings.environment == "dev" or settings.database_url.startswith("sqlite"):
        await init_models()

    db_ok = await verify_db_connection()
    if not db_ok:
        logger.warning("Database connection failed - will retry on first request")

    store = get_preview_store()
    await store.start_sweeper()

    yield

    # Shutdown
    logger.info("Order tracking shutting down")
    await store.stop()
    await close_db_engine()
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title="Order Tracking",
    description="Order import, production and shipment tracking",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "dev" else None,
    redoc_url=None,
)

# CORS middleware (local front-end development)
if settings.environment == "dev":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log mutating requests with the caller id."""
    if request.method not in ("GET", "HEAD", "OPTIONS"):
        logger.info(
            "Request received",
            method=request.method,
            path=request.url.path,
            user_id=request.headers.get("X-User-Id"),
        )

    response = await call_next(request)

    return response


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(OrderTrackError)
async def order_track_exception_handler(request: Request, exc: OrderTrackError) -> JSONResponse:
    """Render business errors with their status code."""
    logger.info(
        "Request rejected",
        error=exc.message,
        error_type=type(exc).__name__,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.message,
            "error_type": type(exc).__name__,
            "detail": jsonable_encoder(exc.detail) if exc.detail else None,
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies and parameters answer 400 like other input errors."""
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Requête invalide",
            "error_type": "InvalidInputError",
            "detail": {"errors": jsonable_encoder(exc.errors())},
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "error_type": type(exc).__name__,
        },
    )


# =============================================================================
# Include Routers
# =============================================================================
# Fixed /orders/... paths are registered before /orders/{order_id}

app.include_router(health_router, tags=["Health"])
app.include_router(production_router, prefix="/orders", tags=["Production"])
app.include_router(shipments_router, prefix="/orders", tags=["Shipments"])
app.include_router(orders_router, prefix="/orders", tags=["Orders"])
app.include_router(comments_router, prefix="/orders", tags=["Comments"])
app.include_router(products_router, prefix="/products", tags=["Products"])
app.include_router(pdf_import_router, prefix="/pdf", tags=["PDF import"])
app.include_router(events_router, prefix="/events", tags=["Events"])


# =============================================================================
# Root Endpoint
# =============================================================================


@app.get("/")
async def root() -> dict:
    """Root endpoint - basic service info."""
    return {
        "service": "Order Tracking",
        "version": __version__,
        "environment": settings.environment,
    }
