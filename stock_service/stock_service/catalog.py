"""MongoDB-backed catalog store for products."""

from pydantic import ValidationError
from pymongo import MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import PyMongoError
from logging_utils import get_logger

from .errors import CatalogUnavailableError, InvalidProductError
from .schemas import Product

logger = get_logger("stock-service")

# Mongo's internal id is never part of a Product record.
_PROJECTION = {"_id": 0}


class CatalogStore:
    """Typed find/update operations over the ``products`` collection.

    Documents are keyed by equality on the ``product_id`` field and carry a
    ``stock`` integer.

    Attributes:
        collection: The underlying pymongo collection.
    """

    def __init__(self, collection: Collection, client: MongoClient | None = None):
        self.collection = collection
        self._client = client

    @classmethod
    def from_uri(
        cls, uri: str, database: str = "ecommerce", collection: str = "products", timeout_ms: int = 5000
    ) -> "CatalogStore":
        """Connect to MongoDB and return a store that owns the client.

        Args:
            uri: MongoDB connection string
            database: Database holding the catalog
            collection: Collection holding product documents
            timeout_ms: Server selection, connect and socket timeout
        """
        client = MongoClient(
            uri,
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
            socketTimeoutMS=timeout_ms,
        )
        logger.info(f"MongoDB catalog store configured for {database}.{collection}")
        return cls(client[database][collection], client=client)

    def find_by_product_id(self, product_id: int) -> Product | None:
        """Look up a product, returning ``None`` when it does not exist.

        Raises:
            CatalogUnavailableError: On any MongoDB error.
            InvalidProductError: When the stored document is not a valid product.
        """
        try:
            document = self.collection.find_one({"product_id": product_id}, _PROJECTION)
        except PyMongoError as e:
            raise CatalogUnavailableError(f"Catalog read failed for product {product_id}: {e}") from e
        if document is None:
            return None
        try:
            return Product.model_validate(document)
        except ValidationError as e:
            raise InvalidProductError(f"Catalog document for product {product_id} is invalid: {e}") from e

    def update_stock(self, product_id: int, new_stock: int) -> None:
        """Unconditionally set the stock of a product.

        The caller checks that ``new_stock`` is non-negative beforehand; the write
        itself is a plain ``$set``. Two writers doing read-then-update on the same
        product can lose a decrement, so this is only safe when a single consumer
        owns each product id. Use :meth:`decrement_stock` otherwise.

        Raises:
            CatalogUnavailableError: On a MongoDB error or when no document matched.
        """
        try:
            result = self.collection.update_one({"product_id": product_id}, {"$set": {"stock": new_stock}})
        except PyMongoError as e:
            raise CatalogUnavailableError(f"Catalog write failed for product {product_id}: {e}") from e
        if result.matched_count == 0:
            raise CatalogUnavailableError(f"Product {product_id} disappeared before its stock was written")

    def decrement_stock(self, product_id: int, quantity: int) -> int | None:
        """Atomically subtract ``quantity`` if enough stock remains.

        Returns:
            The new stock, or ``None`` if the product is missing or holds fewer
            than ``quantity`` units.

        Raises:
            CatalogUnavailableError: On a MongoDB error.
        """
        try:
            document = self.collection.find_one_and_update(
                {"product_id": product_id, "stock": {"$gte": quantity}},
                {"$inc": {"stock": -quantity}},
                projection=_PROJECTION,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise CatalogUnavailableError(f"Catalog decrement failed for product {product_id}: {e}") from e
        if document is None:
            return None
        return int(document["stock"])

    def ping(self) -> bool:
        try:
            self.collection.database.command("ping")
        except PyMongoError as e:
            logger.error(f"MongoDB ping failed: {e}")
            return False
        return True

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            logger.info("MongoDB catalog store closed")
