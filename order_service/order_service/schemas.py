"""Pydantic models for order events published to Kafka."""

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class OrderEvent(BaseModel):
    """An order event as published on the order topic.

    Serialized with ``by_alias=True`` this produces the wire format
    ``{"orderId": 1, "productId": 101, "quantity": 1}``.

    Attributes:
        order_id (int): Unique order identifier.
        product_id (int): Catalog product the order draws stock from.
        quantity (int): Units ordered, strictly positive.
    """

    order_id: StrictInt = Field(..., alias="orderId")
    product_id: StrictInt = Field(..., alias="productId")
    quantity: StrictInt = Field(..., gt=0)

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"orderId": 1, "productId": 101, "quantity": 1}},
    )

    def to_wire(self) -> bytes:
        """UTF-8 JSON payload for the Kafka message value."""
        return self.model_dump_json(by_alias=True).encode("utf-8")
