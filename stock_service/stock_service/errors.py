"""Exceptions raised across the stock update pipeline."""


class StockServiceError(Exception):
    """Base class for all stock service errors."""


class CacheUnavailableError(StockServiceError):
    """The cache store could not be reached or rejected the operation."""


class CatalogUnavailableError(StockServiceError):
    """The catalog store could not complete a read or write."""


class DecodeError(StockServiceError):
    """A message payload cannot be turned into an order event."""

    def __init__(self, message: str, payload: bytes | str | None = None):
        super().__init__(message)
        self.payload = payload


class InvalidQuantityError(StockServiceError, ValueError):
    """An order quantity is not a positive integer."""


class InvalidProductError(StockServiceError):
    """A catalog document exists but is not a valid product."""
