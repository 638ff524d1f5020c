"""Product catalog endpoints."""

from fastapi import APIRouter, Query, Response, status

from ordertrack.api.deps import DbSession
from ordertrack.schemas.common import Page
from ordertrack.schemas.product import ProductCreate, ProductUpdate, ProductView
from ordertrack.services.catalog_service import CatalogService

router = APIRouter()


@router.get("", response_model=Page[ProductView])
async def list_products(
    db: DbSession,
    q: str | None = Query(default=None),
    category: str | None = Query(default=None),
    active: bool | None = Query(default=None),
    limit: int = Query(default=50),
    offset: int = Query(default=0),
) -> Page[ProductView]:
    return await CatalogService(db).list_products(
        q=q, category=category, active=active, limit=limit, offset=offset
    )


@router.get("/search", response_model=list[ProductView])
async def search_products(
    db: DbSession,
    q: str | None = Query(default=None),
    limit: int = Query(default=10),
) -> list[ProductView]:
    """Label autocompletion (at most 20 results)."""
    products = await CatalogService(db).search_products(q, limit)
    return [ProductView.model_validate(p) for p in products]


@router.post("", response_model=ProductView, status_code=status.HTTP_201_CREATED)
async def create_product(body: ProductCreate, db: DbSession) -> ProductView:
    return await CatalogService(db).create_product(body)


@router.patch("/{product_id}", response_model=ProductView)
async def update_product(product_id: int, body: ProductUpdate, db: DbSession) -> ProductView:
    return await CatalogService(db).update_product(product_id, body)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_product(product_id: int, db: DbSession) -> Response:
    await CatalogService(db).delete_product(product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
