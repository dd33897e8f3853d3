"""
catalog/store.py -- SQLAlchemy-backed "products" collection.

Uses SQLAlchemy Core (not ORM) so the dataclasses in catalog/models.py remain
the authoritative domain representation. SQLAlchemy provides a
database-agnostic abstraction: swapping SQLite for PostgreSQL is a connection
string change, not a rewrite.

Pattern: Repository + Data Mapper. ProductStore is the repository and exposes
document-store style primitives (query by predicates, order, limit, start
after a cursor, get/add/update/delete by id). _row_to_product is the mapper.
Route handlers never touch SQL directly.

Security: all queries use bound parameters. Predicate field names are checked
against the table's column set before use.

Usage:
    store = ProductStore()                               # SQLite default
    store = ProductStore("postgresql://user:pw@host/db") # PostgreSQL
    product_id = store.add(product)
    store.query([Predicate("category", "==", "keyboards")], order_by="rating", descending=True)
    store.close()
"""

import json
import logging
import operator
import uuid
from typing import Callable, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    and_,
    create_engine,
    event,
    or_,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from catalog.models import Product
from catalog.query import Predicate, decode_cursor, encode_cursor

logger = logging.getLogger("catalog.store")

_DEFAULT_DB_URL = "sqlite:///catalog.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_products = Table(
    "products",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("model", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("price", Float, nullable=False),
    Column("category", String(100), nullable=False, index=True),
    Column("brand", String(100), nullable=False),
    Column("stock", Integer, nullable=False, server_default="0"),
    Column("availability", String(20), nullable=False),
    Column("featured", Boolean, nullable=False, server_default="0"),
    Column("rgb", Boolean, nullable=False, server_default="0"),
    Column("rating", Float, nullable=False, server_default="0"),
    Column("review_count", Integer, nullable=False, server_default="0"),
    Column("tags", Text),  # JSON array serialized as text
    Column("created_at", String(32), nullable=False, index=True),
    Column("updated_at", String(32), nullable=False),
)

_OPERATORS: dict[str, Callable] = {
    "==": operator.eq,
    ">=": operator.ge,
    "<=": operator.le,
}

# Fields a caller may change through update(). id and created_at are fixed
# for the life of the record.
_MUTABLE_FIELDS = frozenset(c.name for c in _products.columns) - {"id", "created_at"}


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _is_memory_url(db_url: str) -> bool:
    return ":memory:" in db_url or "mode=memory" in db_url


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ProductStore:
    """Repository for Product records.

    Identifiers are assigned by the store on add() (uuid4 hex strings), the
    same way a managed document store assigns document ids.
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        engine_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            if _is_memory_url(db_url):
                # A single connection keeps the in-memory database alive.
                engine_args["poolclass"] = StaticPool
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(
        self,
        predicates: Optional[list[Predicate]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Product]:
        """Return products matching every predicate (conjunction).

        Without order_by the rows come back in whatever order the database
        chooses; callers that need an order must ask for one.
        """
        stmt = _products.select()
        for predicate in predicates or []:
            stmt = stmt.where(_clause(predicate))
        if order_by is not None:
            column = _column(order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_product(r) for r in rows]

    def page(self, limit: int, cursor: Optional[str] = None) -> tuple[list[Product], Optional[str]]:
        """Return up to limit products, newest first, starting after cursor.

        The sort key is (created_at desc, id desc) so records created in the
        same instant still page deterministically. Returns the batch and the
        cursor of its last record (None for an empty batch).

        Raises catalog.query.InvalidCursorError for a malformed cursor.
        """
        stmt = _products.select().order_by(_products.c.created_at.desc(), _products.c.id.desc()).limit(limit)
        if cursor:
            created_at, product_id = decode_cursor(cursor)
            stmt = stmt.where(
                or_(
                    _products.c.created_at < created_at,
                    and_(_products.c.created_at == created_at, _products.c.id < product_id),
                )
            )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        products = [_row_to_product(r) for r in rows]
        next_cursor = encode_cursor(products[-1]) if products else None
        return products, next_cursor

    def all(self) -> list[Product]:
        """Return every product. Full collection scan."""
        return self.query()

    def get(self, product_id: str) -> Optional[Product]:
        """Look up a product by id. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_products.select().where(_products.c.id == product_id)).fetchone()
        return _row_to_product(row) if row is not None else None

    def exists(self, product_id: str) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_products.c.id).where(_products.c.id == product_id)).fetchone()
        return row is not None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, product: Product) -> str:
        """Insert a new product and return its store-assigned id."""
        product_id = uuid.uuid4().hex
        with self.engine.connect() as conn:
            conn.execute(
                _products.insert().values(
                    id=product_id,
                    name=product.name,
                    model=product.model,
                    description=product.description,
                    price=product.price,
                    category=product.category,
                    brand=product.brand,
                    stock=product.stock,
                    availability=product.availability,
                    featured=product.featured,
                    rgb=product.rgb,
                    rating=product.rating,
                    review_count=product.review_count,
                    tags=json.dumps(product.tags),
                    created_at=product.created_at,
                    updated_at=product.updated_at,
                )
            )
            conn.commit()
        logger.info("Product %s added (%s)", product_id, product.name)
        return product_id

    def update(self, product_id: str, **fields) -> bool:
        """Write the given fields onto an existing product (last write wins).

        Accepted fields: every column except id and created_at. tags must be
        passed as a list; this method serializes it for storage.

        Returns True if a row was updated, False if product_id was not found.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown product fields: {sorted(unknown)!r}")
        if "tags" in fields:
            fields["tags"] = json.dumps(fields["tags"] or [])
        with self.engine.connect() as conn:
            result = conn.execute(_products.update().where(_products.c.id == product_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete(self, product_id: str) -> bool:
        """Permanently delete a product. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_products.delete().where(_products.c.id == product_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Predicate mapping
# ---------------------------------------------------------------------------


def _column(name: str):
    try:
        return _products.c[name]
    except KeyError:
        raise ValueError(f"Unknown product field: {name!r}") from None


def _clause(predicate: Predicate):
    """Translate a Predicate descriptor into a SQLAlchemy boolean clause."""
    return _OPERATORS[predicate.op](_column(predicate.field), predicate.value)


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_product(row) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        model=row.model,
        description=row.description,
        price=row.price,
        category=row.category,
        brand=row.brand,
        stock=row.stock,
        availability=row.availability,
        featured=bool(row.featured),
        rgb=bool(row.rgb),
        rating=row.rating or 0.0,
        review_count=row.review_count or 0,
        tags=json.loads(row.tags) if row.tags else [],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
