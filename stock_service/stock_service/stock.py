"""Cache-aside stock decrement logic."""

from pydantic import ValidationError
from logging_utils import get_logger

from .cache import CacheGateway, product_key
from .catalog import CatalogStore
from .errors import CacheUnavailableError, CatalogUnavailableError, InvalidProductError, InvalidQuantityError
from .schemas import Product, StockUpdateResult

logger = get_logger("stock-service")


def validate_quantity(quantity: object) -> int:
    """Return ``quantity`` if it is a positive ``int``.

    Raises:
        InvalidQuantityError: For booleans, non-integers and values below 1.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError(f"Quantity must be an integer, got {quantity!r}")
    if quantity <= 0:
        raise InvalidQuantityError(f"Quantity must be positive, got {quantity}")
    return quantity


class StockUpdateService:
    """Applies orders to the catalog, reading through the cache.

    Reads go to the cache first and fall back to the catalog on a miss, a cache
    outage or an unreadable entry. Writes only ever go to the catalog and are
    followed by an invalidation of the product's cache entry.

    Attributes:
        cache: Cache gateway for product snapshots.
        catalog: Catalog store, the source of truth for stock.
        atomic_decrement: Use the catalog's guarded decrement instead of
            read-then-set. Required when more than one consumer may handle
            the same product concurrently.
    """

    def __init__(self, cache: CacheGateway, catalog: CatalogStore, atomic_decrement: bool = False):
        self.cache = cache
        self.catalog = catalog
        self.atomic_decrement = atomic_decrement

    def apply_order(self, product_id: int, quantity: int) -> StockUpdateResult:
        """Decrement a product's stock by ``quantity``.

        Args:
            product_id: Catalog product identifier
            quantity: Units to remove, must be a positive integer

        Returns:
            StockUpdateResult: ``UPDATED`` with the new stock, ``INSUFFICIENT_STOCK``,
            ``NOT_FOUND``, ``INVALID_PRODUCT`` or ``TRANSIENT_FAILURE``.

        Raises:
            InvalidQuantityError: If ``quantity`` is not a positive integer.
        """
        validate_quantity(quantity)
        key = product_key(product_id)

        try:
            product = self._read_product(key, product_id)
        except CatalogUnavailableError as e:
            logger.error(f"Could not read product {product_id}: {e}")
            return StockUpdateResult.transient_failure(product_id, str(e))
        except InvalidProductError as e:
            logger.error(f"Product {product_id} cannot be used: {e}")
            return StockUpdateResult.invalid_product(product_id, str(e))

        if product is None:
            return StockUpdateResult.not_found(product_id)

        new_stock = product.stock - quantity
        if new_stock < 0:
            return StockUpdateResult.insufficient_stock(
                product_id, f"requested {quantity}, available {product.stock}"
            )

        try:
            if self.atomic_decrement:
                written = self.catalog.decrement_stock(product_id, quantity)
                if written is None:
                    return StockUpdateResult.insufficient_stock(
                        product_id, f"requested {quantity}, stock changed concurrently"
                    )
                new_stock = written
            else:
                self.catalog.update_stock(product_id, new_stock)
        except CatalogUnavailableError as e:
            logger.error(f"Stock write failed for product {product_id}, cache left untouched: {e}")
            return StockUpdateResult.transient_failure(product_id, str(e))

        self.cache.invalidate(key)
        return StockUpdateResult.updated(product_id, new_stock)

    def _read_product(self, key: str, product_id: int) -> Product | None:
        cached = self._read_cached(key, product_id)
        if cached is not None:
            return cached
        return self.catalog.find_by_product_id(product_id)

    def _read_cached(self, key: str, product_id: int) -> Product | None:
        try:
            blob = self.cache.get(key)
        except CacheUnavailableError as e:
            logger.warning(f"{e}; falling back to catalog")
            return None
        if blob is None:
            logger.debug(f"Cache miss for {key}")
            return None
        try:
            product = Product.model_validate_json(blob)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable cache entry {key}: {e.error_count()} validation error(s)")
            return None
        if product.product_id != product_id:
            logger.warning(f"Ignoring cache entry {key} holding product {product.product_id}")
            return None
        logger.debug(f"Cache hit for {key}")
        return product
