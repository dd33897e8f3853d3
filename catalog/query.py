"""
catalog/query.py -- Search predicates, local post-filters and pagination cursors.

Pattern: Specification. A search request becomes an ordered list of Predicate
descriptors (field, op, value). The store maps each descriptor onto its own
query primitive; nothing in here knows about SQL. That keeps the predicate
set testable without a database and lets the store be swapped.

Two filters cannot be pushed to the store with plain equality predicates and
run locally on the fetched rows instead:
  - free-text term: case-insensitive substring over name, description, brand
    and tags (match if ANY field contains the term)
  - price range: inclusive min/max bounds

Cursors are opaque to clients: url-safe base64 of a small JSON document
holding the sort key (created_at, id) of the last record on a page.
"""

from __future__ import annotations

import base64
import binascii
import json
import math
from dataclasses import dataclass
from typing import Any, Optional

from catalog.models import Product

# Store-side equality filters, in the order they are added to the query.
SEARCH_FIELDS: tuple[str, ...] = ("category", "brand", "availability", "featured", "rgb")

OPERATORS: frozenset[str] = frozenset({"==", ">=", "<="})


class InvalidCursorError(ValueError):
    """Raised when a pagination cursor cannot be decoded."""


@dataclass(frozen=True)
class Predicate:
    """A single typed filter clause: `field op value`.

    Search only builds `==` predicates; its price range runs locally through
    within_price(). The `>=` and `<=` operators are for direct
    ProductStore.query() callers that want a range pushed to the database,
    e.g. `Predicate("stock", "<=", 5)` for a low-stock report.
    """

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported operator: {self.op!r}")


@dataclass
class SearchFilters:
    """Optional search parameters after query-string parsing.

    None means "not supplied" for every field; absent filters are left out of
    the query entirely rather than matched against a wildcard.
    """

    category: Optional[str] = None
    brand: Optional[str] = None
    availability: Optional[str] = None
    featured: Optional[bool] = None
    rgb: Optional[bool] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None

    def applied(self) -> dict[str, Any]:
        """Return only the filters that were supplied, for echoing back to clients."""
        return {k: v for k, v in vars(self).items() if v is not None}


# ---------------------------------------------------------------------------
# Query-string parsing
# ---------------------------------------------------------------------------


def parse_flag(raw: Optional[str]) -> Optional[bool]:
    """Map "true"/"false" to a bool. Anything else counts as not supplied."""
    if raw == "true":
        return True
    if raw == "false":
        return False
    return None


def parse_price_bound(raw: Optional[str]) -> Optional[float]:
    """Parse a price bound, treating unparseable or non-finite input as absent."""
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def _blank_to_none(raw: Optional[str]) -> Optional[str]:
    return raw if raw else None


def parse_search_filters(
    category: Optional[str] = None,
    brand: Optional[str] = None,
    availability: Optional[str] = None,
    featured: Optional[str] = None,
    rgb: Optional[str] = None,
    min_price: Optional[str] = None,
    max_price: Optional[str] = None,
) -> SearchFilters:
    """Build SearchFilters from raw query-string values."""
    return SearchFilters(
        category=_blank_to_none(category),
        brand=_blank_to_none(brand),
        availability=_blank_to_none(availability),
        featured=parse_flag(featured),
        rgb=parse_flag(rgb),
        min_price=parse_price_bound(min_price),
        max_price=parse_price_bound(max_price),
    )


# ---------------------------------------------------------------------------
# Predicate construction
# ---------------------------------------------------------------------------


def build_search_predicates(filters: SearchFilters) -> list[Predicate]:
    """Return one equality predicate per supplied store-side filter, in SEARCH_FIELDS order."""
    predicates: list[Predicate] = []
    for name in SEARCH_FIELDS:
        value = getattr(filters, name)
        if value is not None:
            predicates.append(Predicate(name, "==", value))
    return predicates


# ---------------------------------------------------------------------------
# Local post-filters
# ---------------------------------------------------------------------------


def matches_term(product: Product, term: str) -> bool:
    """Case-insensitive substring match against name, description, brand and tags."""
    needle = term.lower()
    fields = [product.name, product.description, product.brand, *product.tags]
    return any(needle in (value or "").lower() for value in fields)


def within_price(product: Product, min_price: Optional[float], max_price: Optional[float]) -> bool:
    """Return True if the product price lies within the inclusive bounds."""
    if min_price is not None and product.price < min_price:
        return False
    if max_price is not None and product.price > max_price:
        return False
    return True


# ---------------------------------------------------------------------------
# Cursors
# ---------------------------------------------------------------------------


def encode_cursor(product: Product) -> str:
    """Return an opaque continuation token for the position after this product."""
    raw = json.dumps({"c": product.created_at, "i": product.id}, separators=(",", ":"))
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(token: str) -> tuple[str, str]:
    """Decode a continuation token into (created_at, id).

    Raises InvalidCursorError for anything that was not produced by encode_cursor().
    """
    padded = token + "=" * (-len(token) % 4)
    try:
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise InvalidCursorError("Invalid pagination cursor.") from exc
    if not isinstance(data, dict):
        raise InvalidCursorError("Invalid pagination cursor.")
    created_at, product_id = data.get("c"), data.get("i")
    if not isinstance(created_at, str) or not isinstance(product_id, str):
        raise InvalidCursorError("Invalid pagination cursor.")
    return created_at, product_id
