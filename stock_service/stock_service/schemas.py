"""Pydantic models for order events, catalog products and update results."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class OrderEvent(BaseModel):
    """An order event consumed from Kafka.

    The wire format is camelCase JSON: ``{"orderId": 1, "productId": 101, "quantity": 3}``.

    Attributes:
        order_id (int): Identifier of the order that produced the event.
        product_id (int): Catalog product to decrement.
        quantity (int): Units ordered, strictly positive.
    """

    order_id: StrictInt = Field(..., alias="orderId")
    product_id: StrictInt = Field(..., alias="productId")
    quantity: StrictInt = Field(..., gt=0, description="Units ordered.")

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        json_schema_extra={"example": {"orderId": 1, "productId": 101, "quantity": 3}},
    )


class Product(BaseModel):
    """A catalog product as stored in MongoDB and serialized into the cache.

    Only ``product_id`` and ``stock`` are interpreted; any other catalog fields
    are carried through untouched. Whole-valued doubles written by the Mongo
    shell are accepted as integers.
    """

    product_id: int
    stock: int = Field(..., ge=0)

    model_config = ConfigDict(extra="allow")


class UpdateStatus(str, Enum):
    """Outcome of applying one order to the catalog."""

    UPDATED = "updated"
    INSUFFICIENT_STOCK = "insufficient_stock"
    NOT_FOUND = "not_found"
    INVALID_PRODUCT = "invalid_product"
    TRANSIENT_FAILURE = "transient_failure"


class StockUpdateResult(BaseModel):
    """Result of ``StockUpdateService.apply_order``."""

    status: UpdateStatus
    product_id: int
    new_stock: int | None = None
    detail: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_terminal(self) -> bool:
        """Whether redelivering the same event could change the outcome."""
        return self.status != UpdateStatus.TRANSIENT_FAILURE

    @classmethod
    def updated(cls, product_id: int, new_stock: int) -> "StockUpdateResult":
        return cls(status=UpdateStatus.UPDATED, product_id=product_id, new_stock=new_stock)

    @classmethod
    def insufficient_stock(cls, product_id: int, detail: str | None = None) -> "StockUpdateResult":
        return cls(status=UpdateStatus.INSUFFICIENT_STOCK, product_id=product_id, detail=detail)

    @classmethod
    def not_found(cls, product_id: int) -> "StockUpdateResult":
        return cls(status=UpdateStatus.NOT_FOUND, product_id=product_id)

    @classmethod
    def invalid_product(cls, product_id: int, detail: str) -> "StockUpdateResult":
        return cls(status=UpdateStatus.INVALID_PRODUCT, product_id=product_id, detail=detail)

    @classmethod
    def transient_failure(cls, product_id: int, detail: str) -> "StockUpdateResult":
        return cls(status=UpdateStatus.TRANSIENT_FAILURE, product_id=product_id, detail=detail)
