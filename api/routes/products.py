"""
api/routes/products.py -- Product catalog routes.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /products                     -- cursor-paginated listing
  GET    /products/search              -- filtered search
  GET    /products/featured            -- top 6 featured by rating
  GET    /products/stats               -- aggregate statistics
  GET    /products/category/{categoria} -- products in a category by rating
  GET    /products/{product_id}        -- single product
  POST   /products                     -- create (auth)
  PUT    /products/{product_id}        -- partial update (auth)
  PATCH  /products/{product_id}/stock  -- stock update (auth)
  DELETE /products/{product_id}        -- delete (auth)

The literal /products/search, /featured and /stats paths must be registered
before /products/{product_id}, otherwise "search" would be captured as an id.

Search query parameters keep the public (Spanish) names: categoria, marca,
disponibilidad, destacado, rgb, minPrice, maxPrice.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.models import (
    CategoryResponse,
    ErrorDetail,
    MessageResponse,
    PaginatedProductsResponse,
    PaginationMeta,
    ProductCreate,
    ProductListResponse,
    ProductOut,
    ProductResponse,
    ProductUpdate,
    SearchResponse,
    StatsOut,
    StatsResponse,
    StockUpdate,
)
from auth.dependencies import get_current_user
from auth.models import TokenClaims
from catalog import service
from catalog.query import InvalidCursorError, parse_search_filters
from catalog.store import ProductStore
from core.config import get_settings

logger = logging.getLogger("catalog.api")

# Auth policy:
# - GET    routes: public -- catalog browsing needs no account
# - POST   /products, PUT /products/{id}, PATCH /products/{id}/stock,
#   DELETE /products/{id}: require a valid Bearer token (get_current_user)
router = APIRouter()


def _store(request: Request) -> ProductStore:
    return request.app.state.products


def _not_found(product_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail=ErrorDetail(code="product_not_found", message=f"Product {product_id} not found.").model_dump(),
    )


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------


@router.get("/products", response_model=PaginatedProductsResponse)
def list_products(
    request: Request,
    page: int = Query(default=1, ge=1, description="Page number, echoed back. Navigation uses cursor."),
    limit: Optional[int] = Query(default=None, ge=1, description="Page size; clamped to MAX_PAGE_SIZE."),
    cursor: Optional[str] = Query(default=None, description="next_cursor from the previous page."),
) -> PaginatedProductsResponse:
    """Return one page of products, newest first."""
    settings = get_settings()
    page_size = min(limit or settings.default_page_size, settings.max_page_size)
    try:
        result = service.list_products(_store(request), page_size, cursor)
    except InvalidCursorError as exc:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="invalid_cursor", message=str(exc)).model_dump(),
        ) from exc
    return PaginatedProductsResponse(
        data=[ProductOut.from_product(p) for p in result.products],
        pagination=PaginationMeta(
            current_page=page,
            page_size=page_size,
            has_more=result.has_more,
            total_items=len(result.products),
            next_cursor=result.next_cursor,
        ),
    )


@router.get("/products/search", response_model=SearchResponse)
def search_products(
    request: Request,
    q: Optional[str] = Query(default=None, max_length=200),
    categoria: Optional[str] = None,
    marca: Optional[str] = None,
    min_price: Optional[str] = Query(default=None, alias="minPrice"),
    max_price: Optional[str] = Query(default=None, alias="maxPrice"),
    destacado: Optional[str] = None,
    rgb: Optional[str] = None,
    disponibilidad: Optional[str] = None,
) -> SearchResponse:
    """Search products by equality filters, free text and price range.

    Unparseable price bounds and flag values other than "true"/"false" are
    ignored rather than rejected.
    """
    filters = parse_search_filters(
        category=categoria,
        brand=marca,
        availability=disponibilidad,
        featured=destacado,
        rgb=rgb,
        min_price=min_price,
        max_price=max_price,
    )
    term = q.strip() if q else None
    products = service.search_products(_store(request), term, filters)
    return SearchResponse(
        data=[ProductOut.from_product(p) for p in products],
        count=len(products),
        search_term=term or None,
        filters=filters.applied(),
    )


@router.get("/products/featured", response_model=ProductListResponse)
def featured_products(request: Request) -> ProductListResponse:
    """Return up to 6 featured products, best rated first."""
    products = service.get_featured_products(_store(request))
    return ProductListResponse(data=[ProductOut.from_product(p) for p in products], count=len(products))


@router.get("/products/stats", response_model=StatsResponse)
def product_stats(request: Request) -> StatsResponse:
    """Return aggregate statistics over the whole catalog."""
    return StatsResponse(data=StatsOut.from_stats(service.get_stats(_store(request))))


@router.get("/products/category/{categoria}", response_model=CategoryResponse)
def products_by_category(request: Request, categoria: str) -> CategoryResponse:
    """Return every product in a category, best rated first. 404 if the category is empty."""
    products = service.get_products_by_category(_store(request), categoria)
    if not products:
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(
                code="category_not_found",
                message=f"No products found in category {categoria}.",
            ).model_dump(),
        )
    return CategoryResponse(
        data=[ProductOut.from_product(p) for p in products],
        category=categoria,
        count=len(products),
    )


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(request: Request, product_id: str) -> ProductResponse:
    product = service.get_product(_store(request), product_id)
    if product is None:
        raise _not_found(product_id)
    return ProductResponse(data=ProductOut.from_product(product))


# ---------------------------------------------------------------------------
# Authenticated writes
# ---------------------------------------------------------------------------


@router.post("/products", response_model=ProductResponse, status_code=201)
def create_product(
    request: Request,
    body: ProductCreate,
    current_user: TokenClaims = Depends(get_current_user),
) -> ProductResponse:
    """Create a product. Availability is derived from stock; rating starts at 0."""
    product = service.create_product(_store(request), body.model_dump())
    logger.info("Product %s created by %s", product.id, current_user.username)
    return ProductResponse(message="Product created successfully.", data=ProductOut.from_product(product))


@router.put("/products/{product_id}", response_model=ProductResponse)
def update_product(
    request: Request,
    product_id: str,
    body: ProductUpdate,
    current_user: TokenClaims = Depends(get_current_user),
) -> ProductResponse:
    """Merge the supplied fields onto an existing product."""
    changes = body.changes()
    if not changes:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="no_changes", message="No fields to update.").model_dump(),
        )
    product = service.update_product(_store(request), product_id, changes)
    if product is None:
        raise _not_found(product_id)
    logger.info("Product %s updated by %s", product_id, current_user.username)
    return ProductResponse(message="Product updated successfully.", data=ProductOut.from_product(product))


@router.patch("/products/{product_id}/stock", response_model=ProductResponse)
def update_stock(
    request: Request,
    product_id: str,
    body: StockUpdate,
    current_user: TokenClaims = Depends(get_current_user),
) -> ProductResponse:
    """Set the stock count; availability follows."""
    product = service.update_stock(_store(request), product_id, body.stock)
    if product is None:
        raise _not_found(product_id)
    logger.info("Stock of %s set to %d by %s", product_id, body.stock, current_user.username)
    return ProductResponse(message="Stock updated successfully.", data=ProductOut.from_product(product))


@router.delete("/products/{product_id}", response_model=MessageResponse)
def delete_product(
    request: Request,
    product_id: str,
    current_user: TokenClaims = Depends(get_current_user),
) -> MessageResponse:
    if not service.delete_product(_store(request), product_id):
        raise _not_found(product_id)
    logger.info("Product %s deleted by %s", product_id, current_user.username)
    return MessageResponse(message="Product deleted successfully.")
