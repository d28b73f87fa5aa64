"""Test fixtures for the order service tests."""

import pytest

from order_service.producer import OrderProducer
from order_service.schemas import OrderEvent


@pytest.fixture
def test_order():
    """Create a test order fixture.

    Returns:
        OrderEvent: A sample order for product 101.
    """
    return OrderEvent(orderId=1, productId=101, quantity=1)


@pytest.fixture
def test_producer():
    """Create a test Kafka producer fixture.

    Returns:
        OrderProducer: A configured producer instance pointing to localhost.
    """
    return OrderProducer("localhost:9092", topic="orders.test")
