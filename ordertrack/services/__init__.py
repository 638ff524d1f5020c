"""Services - order stores, production and shipment tracking, PDF import."""

from ordertrack.services.catalog_service import CatalogService
from ordertrack.services.comment_service import CommentService
from ordertrack.services.order_service import ImportOutcome, OrderService
from ordertrack.services.pdf_import_service import PdfImportService
from ordertrack.services.production_service import ProductionService
from ordertrack.services.shipment_service import ShipmentService

__all__ = [
    "CatalogService",
    "CommentService",
    "ImportOutcome",
    "OrderService",
    "PdfImportService",
    "ProductionService",
    "ShipmentService",
]
