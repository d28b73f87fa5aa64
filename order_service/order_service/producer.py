"""Kafka producer for publishing order events."""

from confluent_kafka import Producer
from logging_utils import get_kafka_logger

from .schemas import OrderEvent

logger = get_kafka_logger("order-service")

DEFAULT_ORDER_TOPIC = "my-order-updates2"


class OrderProducer:
    """Kafka producer for publishing order events.

    Messages are keyed by product id so every event for one product lands on
    the same partition and is applied by a single stock consumer.

    Attributes:
        _producer: The underlying Kafka producer instance.
        topic: Topic order events are published to.
    """

    def __init__(self, bootstrap_servers: str, topic: str = DEFAULT_ORDER_TOPIC):
        """Initialize the Kafka producer with the given bootstrap servers.

        Args:
            bootstrap_servers (str): Comma-separated list of Kafka broker addresses.
            topic (str): Topic to publish order events to.
        """
        self.topic = topic
        self._producer = Producer(
            {
                "bootstrap.servers": bootstrap_servers,
                "message.timeout.ms": 5000,
                "partitioner": "consistent_random",  # Same key → same partition
            }
        )

    @property
    def producer(self):
        """Get the underlying Kafka producer instance.

        Returns:
            Producer: The Kafka producer instance.
        """
        return self._producer

    def _delivery_callback(self, err, msg):
        """Callback function for message delivery reports.

        Args:
            err: Error that occurred during message delivery, if any.
            msg: Message that was delivered or failed.
        """
        if err:
            logger.error(f"Error sending order message to {msg.topic()}: {err}")
        else:
            logger.info(f"Order message sent successfully to {msg.topic()} [p:{msg.partition()}] @ {msg.offset()}")

    def publish_order(self, order: OrderEvent, partition: int | None = None):
        """Publish an order event to the order topic.

        Args:
            order (OrderEvent): The order to publish.
            partition (int | None): Explicit partition; when omitted the
                partitioner picks one from the product id key.

        Raises:
            BufferError: If the producer's internal buffer is full.
        """
        kwargs = {
            "topic": self.topic,
            "key": str(order.product_id).encode("utf-8"),
            "value": order.to_wire(),
            "on_delivery": self._delivery_callback,
        }
        if partition is not None:
            kwargs["partition"] = partition
        try:
            self._producer.produce(**kwargs)
            self.producer.poll(0)  # Trigger delivery callbacks
        except BufferError:
            logger.warning("Producer buffer full, flushing...")
            self.producer.flush()
            raise

    def flush(self, timeout: float = 10.0) -> int:
        """Wait for outstanding messages to be delivered.

        Returns:
            int: Number of messages still pending after ``timeout``.
        """
        remaining = self._producer.flush(timeout)
        if remaining > 0:
            logger.warning(f"{remaining} order messages still pending delivery")
        return remaining
