"""API routes module."""

from ordertrack.api.routes.comments import router as comments_router
from ordertrack.api.routes.events import router as events_router
from ordertrack.api.routes.health import router as health_router
from ordertrack.api.routes.orders import router as orders_router
from ordertrack.api.routes.pdf_import import router as pdf_import_router
from ordertrack.api.routes.production import router as production_router
from ordertrack.api.routes.products import router as products_router
from ordertrack.api.routes.shipments import router as shipments_router

__all__ = [
    "comments_router",
    "events_router",
    "health_router",
    "orders_router",
    "pdf_import_router",
    "production_router",
    "products_router",
    "shipments_router",
]
