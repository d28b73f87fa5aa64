"""Tests for the cache-aside stock decrement logic."""

import pytest

from stock_service.errors import InvalidQuantityError
from stock_service.schemas import UpdateStatus
from stock_service.stock import StockUpdateService


def test_order_scenario(service, products, redis_client, cache_product):
    """Product 101 starts with 10 units."""
    cache_product(101, 10)

    result = service.apply_order(101, 3)
    assert result.status == UpdateStatus.UPDATED
    assert result.new_stock == 7
    assert "product_101" not in redis_client.data
    assert products.stock_of(101) == 7

    result = service.apply_order(101, 8)
    assert result.status == UpdateStatus.INSUFFICIENT_STOCK
    assert products.stock_of(101) == 7

    assert service.apply_order(999, 1).status == UpdateStatus.NOT_FOUND


def test_sequential_orders_decrement_exactly(service, catalog):
    assert service.apply_order(101, 1).new_stock == 9
    assert service.apply_order(101, 1).new_stock == 8
    assert catalog.find_by_product_id(101).stock == 8


def test_exact_stock_can_be_ordered(service, products):
    result = service.apply_order(101, 10)
    assert result.status == UpdateStatus.UPDATED
    assert result.new_stock == 0
    assert products.stock_of(101) == 0


def test_insufficient_stock_leaves_store_and_cache(service, products, redis_client, cache_product):
    cache_product(101, 10)

    result = service.apply_order(101, 11)

    assert result.status == UpdateStatus.INSUFFICIENT_STOCK
    assert result.new_stock is None
    assert products.writes == 0
    assert "product_101" in redis_client.data
    assert redis_client.deleted == []


def test_not_found_touches_nothing(service, products, redis_client):
    result = service.apply_order(999, 1)

    assert result.status == UpdateStatus.NOT_FOUND
    assert products.writes == 0
    assert redis_client.deleted == []


def test_cache_absent_after_update_even_without_entry(service, redis_client):
    assert "product_101" not in redis_client.data

    assert service.apply_order(101, 2).status == UpdateStatus.UPDATED
    assert redis_client.deleted == ["product_101"]


@pytest.mark.parametrize("quantity", [1, 5, 10, 11])
def test_cache_hit_and_miss_agree(quantity, service, cache_product, products, redis_client):
    cache_product(101, 10)
    from_cache = service.apply_order(101, quantity)

    products.documents[0]["stock"] = 10
    redis_client.data.clear()
    from_store = service.apply_order(101, quantity)

    assert from_cache == from_store


def test_cache_hit_skips_catalog_read(service, products, cache_product):
    cache_product(101, 4)
    products.fail_reads = True

    result = service.apply_order(101, 4)

    assert result.status == UpdateStatus.UPDATED
    assert result.new_stock == 0


def test_cache_outage_falls_back_to_catalog(service, redis_client, products):
    redis_client.fail_reads = True

    result = service.apply_order(101, 3)

    assert result.status == UpdateStatus.UPDATED
    assert products.stock_of(101) == 7


@pytest.mark.parametrize("blob", [b"{not json", b'{"product_id": 101}', b'{"product_id": 101, "stock": -4}'])
def test_unreadable_cache_entry_is_a_miss(blob, service, redis_client, products):
    redis_client.data["product_101"] = blob

    result = service.apply_order(101, 3)

    assert result.new_stock == 7
    assert "product_101" not in redis_client.data


def test_catalog_read_failure_is_transient(service, redis_client, products):
    redis_client.fail_reads = True
    products.fail_reads = True

    result = service.apply_order(101, 1)

    assert result.status == UpdateStatus.TRANSIENT_FAILURE
    assert not result.is_terminal


def test_write_failure_keeps_cache(service, products, redis_client, cache_product):
    cache_product(101, 10)
    products.fail_writes = True

    result = service.apply_order(101, 3)

    assert result.status == UpdateStatus.TRANSIENT_FAILURE
    assert "product_101" in redis_client.data
    assert redis_client.deleted == []


def test_invalidation_failure_does_not_downgrade_result(service, products, redis_client, cache_product):
    cache_product(101, 10)
    redis_client.fail_deletes = True

    result = service.apply_order(101, 3)

    assert result.status == UpdateStatus.UPDATED
    assert result.new_stock == 7
    assert products.stock_of(101) == 7


@pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True, None])
def test_invalid_quantity_rejected_before_io(quantity, service, products, redis_client):
    with pytest.raises(InvalidQuantityError):
        service.apply_order(101, quantity)
    assert products.writes == 0


def test_invalid_quantity_is_a_value_error(service):
    with pytest.raises(ValueError):
        service.apply_order(101, 0)


class TestAtomicDecrement:
    """Guarded decrement in the catalog instead of read-then-set."""

    @pytest.fixture
    def service(self, cache, catalog):
        return StockUpdateService(cache, catalog, atomic_decrement=True)

    def test_updates_through_guarded_decrement(self, service, products, redis_client, cache_product):
        cache_product(101, 10)

        result = service.apply_order(101, 3)

        assert result.new_stock == 7
        assert products.stock_of(101) == 7
        assert "product_101" not in redis_client.data

    def test_stale_cache_cannot_oversell(self, service, products, redis_client, cache_product):
        cache_product(101, 10)
        products.documents[0]["stock"] = 2

        result = service.apply_order(101, 5)

        assert result.status == UpdateStatus.INSUFFICIENT_STOCK
        assert products.stock_of(101) == 2
        assert "product_101" in redis_client.data

    def test_new_stock_comes_from_the_store(self, service, products, cache_product):
        cache_product(101, 10)
        products.documents[0]["stock"] = 6

        assert service.apply_order(101, 1).new_stock == 5

    def test_write_failure_is_transient(self, service, products):
        products.fail_writes = True

        assert service.apply_order(101, 1).status == UpdateStatus.TRANSIENT_FAILURE


def test_malformed_catalog_document_is_final(service, products, redis_client):
    products.documents[0]["stock"] = "lots"

    result = service.apply_order(101, 1)

    assert result.status == UpdateStatus.INVALID_PRODUCT
    assert result.is_terminal
    assert products.writes == 0
    assert redis_client.deleted == []


def test_cache_entry_for_another_product_is_a_miss(service, redis_client, products):
    redis_client.data["product_101"] = b'{"product_id": 202, "stock": 1}'

    result = service.apply_order(101, 3)

    assert result.status == UpdateStatus.UPDATED
    assert result.new_stock == 7
    assert products.stock_of(101) == 7
