"""Fixtures for the stock service tests.

Redis and MongoDB are replaced by small in-memory doubles that implement the
handful of client calls the gateways make, so the real ``CacheGateway`` and
``CatalogStore`` code runs in every pipeline test.
"""

import json
from types import SimpleNamespace

import pytest
import redis
from pymongo.errors import ServerSelectionTimeoutError

from stock_service.cache import CacheGateway
from stock_service.catalog import CatalogStore
from stock_service.stock import StockUpdateService


class InMemoryRedis:
    """Dict-backed stand-in for the ``redis.Redis`` methods the gateway uses."""

    def __init__(self):
        self.data: dict[str, bytes] = {}
        self.fail_reads = False
        self.fail_deletes = False
        self.deleted: list[str] = []

    def get(self, key):
        if self.fail_reads:
            raise redis.ConnectionError("redis down")
        return self.data.get(key)

    def delete(self, key):
        if self.fail_deletes:
            raise redis.TimeoutError("redis timed out")
        self.deleted.append(key)
        return 1 if self.data.pop(key, None) is not None else 0

    def ping(self):
        if self.fail_reads:
            raise redis.ConnectionError("redis down")
        return True

    def close(self):
        pass


class InMemoryProducts:
    """List-backed stand-in for a pymongo products ``Collection``."""

    def __init__(self, documents=None):
        self.documents = [dict(d) for d in documents or []]
        self.fail_reads = False
        self.fail_writes = False
        self.writes = 0
        self.database = SimpleNamespace(command=lambda name: {"ok": 1})

    def _find(self, product_id):
        return next((d for d in self.documents if d["product_id"] == product_id), None)

    def find_one(self, query, projection=None):
        if self.fail_reads:
            raise ServerSelectionTimeoutError("mongo down")
        document = self._find(query["product_id"])
        return {k: v for k, v in document.items() if k != "_id"} if document else None

    def update_one(self, query, update):
        if self.fail_writes:
            raise ServerSelectionTimeoutError("mongo down")
        document = self._find(query["product_id"])
        if document is not None:
            document.update(update["$set"])
            self.writes += 1
        return SimpleNamespace(matched_count=int(document is not None))

    def find_one_and_update(self, query, update, projection=None, return_document=None):
        if self.fail_writes:
            raise ServerSelectionTimeoutError("mongo down")
        document = self._find(query["product_id"])
        if document is None or document["stock"] < query["stock"]["$gte"]:
            return None
        document["stock"] += update["$inc"]["stock"]
        self.writes += 1
        return {k: v for k, v in document.items() if k != "_id"}

    def stock_of(self, product_id):
        return self._find(product_id)["stock"]


@pytest.fixture
def redis_client():
    return InMemoryRedis()


@pytest.fixture
def products():
    return InMemoryProducts([{"_id": "abc", "product_id": 101, "name": "Widget", "stock": 10}])


@pytest.fixture
def cache(redis_client):
    return CacheGateway(redis_client)


@pytest.fixture
def catalog(products):
    return CatalogStore(products)


@pytest.fixture
def service(cache, catalog):
    return StockUpdateService(cache, catalog)


@pytest.fixture
def cache_product(redis_client):
    """Store a product snapshot in the fake cache the way a catalog reader would."""

    def _cache(product_id, stock, **fields):
        redis_client.data[f"product_{product_id}"] = json.dumps(
            {"product_id": product_id, "stock": stock, **fields}
        ).encode("utf-8")

    return _cache
