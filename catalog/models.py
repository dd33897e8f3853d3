"""
catalog/models.py -- Domain dataclasses for the product catalog.

These are pure data containers. The one derived rule that belongs to the
domain itself (availability from stock) lives next to them as a function so
the store, the service and the tests all share a single definition.

Separation of concerns: these dataclasses are the catalog's domain truth.
api/models.py owns the HTTP contract and maps from these.
"""

from dataclasses import dataclass, field
from typing import Optional

IN_STOCK = "in stock"
OUT_OF_STOCK = "sin stock"


def availability_for(stock: int) -> str:
    """Return the availability label for a stock count. Pure function of stock."""
    return IN_STOCK if stock > 0 else OUT_OF_STOCK


@dataclass
class Product:
    """A catalog product as persisted in the products collection.

    availability is derived: callers that change stock must recompute it with
    availability_for(). rating and review_count start at zero on creation.

    id is None before the record is written to the store.
    """

    name: str
    model: str
    description: str
    price: float
    category: str
    brand: str
    stock: int
    availability: str = OUT_OF_STOCK  # "in stock" | "sin stock"
    featured: bool = False
    rgb: bool = False
    rating: float = 0.0
    review_count: int = 0
    tags: list[str] = field(default_factory=list)
    created_at: str = ""  # ISO 8601, set by the service on create
    updated_at: str = ""  # ISO 8601, refreshed on every mutation
    id: Optional[str] = None


@dataclass
class ProductPage:
    """One page of a cursor-paginated listing.

    has_more is len(products) == limit. The store cannot cheaply count the
    remainder, so an exactly-full last page still reports has_more=True and
    the following request returns an empty page.
    """

    products: list[Product]
    limit: int
    next_cursor: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return len(self.products) == self.limit


@dataclass
class CatalogStats:
    """Aggregate figures over the whole products collection.

    The averages are None for an empty collection rather than a division fault.
    """

    total: int
    in_stock: int
    out_of_stock: int
    featured: int
    with_rgb: int
    average_rating: Optional[float]
    average_price: Optional[float]
    categories: list[str] = field(default_factory=list)
    brands: list[str] = field(default_factory=list)
