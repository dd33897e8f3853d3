"""Unit tests for catalog/service.py.

Covers:
- availability is derived from stock on create, update and stock update
- update refreshes updated_at and leaves availability alone without stock
- search order of operations: predicates, then term, then price
- featured limit, stats over empty and populated stores
"""

import pytest

from catalog import service
from catalog.models import IN_STOCK, OUT_OF_STOCK, availability_for
from catalog.query import SearchFilters


def _data(**overrides) -> dict:
    data = {
        "name": "Aurora K2",
        "model": "K2",
        "description": "Mechanical keyboard",
        "price": 50.0,
        "category": "keyboards",
        "brand": "Lumen",
        "stock": 3,
        "featured": False,
        "rgb": False,
        "tags": [],
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize("stock,expected", [(0, OUT_OF_STOCK), (1, IN_STOCK), (250, IN_STOCK)])
def test_availability_for(stock, expected):
    assert availability_for(stock) == expected


def test_create_stamps_and_derives(product_store):
    product = service.create_product(product_store, _data(stock=0))
    assert product.id
    assert product.availability == OUT_OF_STOCK
    assert product.rating == 0
    assert product.review_count == 0
    assert product.created_at == product.updated_at
    assert service.get_product(product_store, product.id) == product


def test_update_without_stock_keeps_availability(product_store):
    product = service.create_product(product_store, _data(stock=2))
    # Force an inconsistent stored value to prove availability is not touched
    product_store.update(product.id, availability=OUT_OF_STOCK)
    updated = service.update_product(product_store, product.id, {"price": 10.0})
    assert updated.price == 10.0
    assert updated.availability == OUT_OF_STOCK
    assert updated.updated_at >= product.updated_at


def test_update_with_stock_recomputes(product_store):
    product = service.create_product(product_store, _data(stock=2))
    updated = service.update_product(product_store, product.id, {"stock": 0})
    assert updated.availability == OUT_OF_STOCK
    assert product_store.get(product.id).availability == OUT_OF_STOCK


def test_update_missing_returns_none(product_store):
    assert service.update_product(product_store, "nope", {"price": 1.0}) is None


def test_update_stock(product_store):
    product = service.create_product(product_store, _data(stock=0))
    assert service.update_stock(product_store, product.id, 4).availability == IN_STOCK
    with pytest.raises(ValueError):
        service.update_stock(product_store, product.id, -1)


def test_delete_product(product_store):
    product = service.create_product(product_store, _data())
    assert service.delete_product(product_store, product.id) is True
    assert service.delete_product(product_store, product.id) is False


def test_search_combines_filters(product_store):
    service.create_product(product_store, _data(name="Cheap Lumen", price=10))
    service.create_product(product_store, _data(name="Pricey Lumen", price=200))
    service.create_product(product_store, _data(name="Orbit Mouse", brand="Orbit", category="mice", price=15))

    assert len(service.search_products(product_store, None, SearchFilters())) == 3
    result = service.search_products(product_store, "lumen", SearchFilters(max_price=100))
    assert [p.name for p in result] == ["Cheap Lumen"]
    assert service.search_products(product_store, "nothing", SearchFilters()) == []


def test_featured_limit(product_store):
    for i in range(service.FEATURED_LIMIT + 2):
        product = service.create_product(product_store, _data(name=f"P{i}", featured=True))
        service.update_product(product_store, product.id, {"rating": float(i % 5)})
    featured = service.get_featured_products(product_store)
    assert len(featured) == service.FEATURED_LIMIT
    assert [p.rating for p in featured] == sorted((p.rating for p in featured), reverse=True)


def test_category_ordered_by_rating(product_store):
    low = service.create_product(product_store, _data(name="low"))
    high = service.create_product(product_store, _data(name="high"))
    service.update_product(product_store, low.id, {"rating": 1.0})
    service.update_product(product_store, high.id, {"rating": 4.0})
    assert [p.name for p in service.get_products_by_category(product_store, "keyboards")] == ["high", "low"]
    assert service.get_products_by_category(product_store, "monitors") == []


def test_stats_empty(product_store):
    stats = service.get_stats(product_store)
    assert stats.total == 0
    assert stats.average_rating is None
    assert stats.average_price is None
    assert stats.categories == []


def test_stats_populated(product_store):
    service.create_product(product_store, _data(category="keyboards", brand="Lumen", price=10, stock=0, rgb=True))
    service.create_product(product_store, _data(category="mice", brand="Lumen", price=30, featured=True))
    stats = service.get_stats(product_store)
    assert stats.total == 2
    assert stats.in_stock == 1
    assert stats.out_of_stock == 1
    assert stats.featured == 1
    assert stats.with_rgb == 1
    assert stats.average_price == 20
    assert sorted(stats.categories) == ["keyboards", "mice"]
    assert stats.brands == ["Lumen"]
