"""
catalog/service.py -- Catalog operations on top of ProductStore.

No HTTP here. Route handlers in api/routes/products.py validate input with
the Pydantic models in api/models.py and call these functions with plain
values; everything returned is a catalog.models dataclass.

Invariant maintained here: availability is recomputed whenever stock is
written (create, update with stock, stock update).
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from catalog.models import IN_STOCK, OUT_OF_STOCK, CatalogStats, Product, ProductPage, availability_for
from catalog.query import Predicate, SearchFilters, build_search_predicates, matches_term, within_price
from catalog.store import ProductStore

logger = logging.getLogger("catalog.service")

FEATURED_LIMIT = 6


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def list_products(store: ProductStore, limit: int, cursor: Optional[str] = None) -> ProductPage:
    """Return one page of products, newest first.

    Raises catalog.query.InvalidCursorError for a malformed cursor.
    """
    products, next_cursor = store.page(limit, cursor)
    return ProductPage(products=products, limit=limit, next_cursor=next_cursor)


def search_products(store: ProductStore, term: Optional[str], filters: SearchFilters) -> list[Product]:
    """Filtered search.

    Equality filters go to the store as predicates. The free-text term and
    the price range are applied locally to the fetched rows, in that order.
    Result order is whatever the store returns.
    """
    products = store.query(build_search_predicates(filters))
    if term:
        products = [p for p in products if matches_term(p, term)]
    if filters.min_price is not None or filters.max_price is not None:
        products = [p for p in products if within_price(p, filters.min_price, filters.max_price)]
    return products


def get_product(store: ProductStore, product_id: str) -> Optional[Product]:
    return store.get(product_id)


def get_featured_products(store: ProductStore) -> list[Product]:
    """Return the top featured products by rating."""
    return store.query(
        [Predicate("featured", "==", True)],
        order_by="rating",
        descending=True,
        limit=FEATURED_LIMIT,
    )


def get_products_by_category(store: ProductStore, category: str) -> list[Product]:
    """Return every product in a category, best rated first."""
    return store.query([Predicate("category", "==", category)], order_by="rating", descending=True)


def get_stats(store: ProductStore) -> CatalogStats:
    """Aggregate counts, averages and distinct categories/brands over the collection."""
    products = store.all()
    total = len(products)
    return CatalogStats(
        total=total,
        in_stock=sum(1 for p in products if p.availability == IN_STOCK),
        out_of_stock=sum(1 for p in products if p.availability == OUT_OF_STOCK),
        featured=sum(1 for p in products if p.featured),
        with_rgb=sum(1 for p in products if p.rgb),
        average_rating=sum(p.rating for p in products) / total if total else None,
        average_price=sum(p.price for p in products) / total if total else None,
        # dict.fromkeys keeps first-seen order
        categories=list(dict.fromkeys(p.category for p in products)),
        brands=list(dict.fromkeys(p.brand for p in products)),
    )


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def create_product(store: ProductStore, data: dict[str, Any]) -> Product:
    """Persist a new product from validated input and return it with its id.

    Stamps both timestamps, derives availability from stock and starts the
    rating and review count at zero regardless of input.
    """
    now = _now_iso()
    product = Product(
        name=data["name"],
        model=data["model"],
        description=data["description"],
        price=data["price"],
        category=data["category"],
        brand=data["brand"],
        stock=data["stock"],
        availability=availability_for(data["stock"]),
        featured=data.get("featured", False),
        rgb=data.get("rgb", False),
        rating=0.0,
        review_count=0,
        tags=list(data.get("tags") or []),
        created_at=now,
        updated_at=now,
    )
    product.id = store.add(product)
    logger.info("Created product %s in category %s", product.id, product.category)
    return product


def update_product(store: ProductStore, product_id: str, patch: dict[str, Any]) -> Optional[Product]:
    """Merge patch onto an existing product. Returns None if it does not exist.

    availability is recomputed only when stock is part of the patch.
    """
    existing = store.get(product_id)
    if existing is None:
        return None
    changes = dict(patch)
    changes["updated_at"] = _now_iso()
    if "stock" in changes:
        changes["availability"] = availability_for(changes["stock"])
    if not store.update(product_id, **changes):
        return None
    for key, value in changes.items():
        setattr(existing, key, value)
    logger.info("Updated product %s (%s)", product_id, ", ".join(sorted(patch)))
    return existing


def update_stock(store: ProductStore, product_id: str, stock: int) -> Optional[Product]:
    """Set stock and its derived availability. Returns None if the product does not exist."""
    if stock < 0:
        raise ValueError("Stock must be greater than or equal to 0.")
    return update_product(store, product_id, {"stock": stock})


def delete_product(store: ProductStore, product_id: str) -> bool:
    """Delete a product. Returns False if it did not exist."""
    if not store.exists(product_id):
        return False
    deleted = store.delete(product_id)
    if deleted:
        logger.info("Deleted product %s", product_id)
    return deleted
