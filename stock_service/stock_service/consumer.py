"""Kafka consumer that turns order events into stock updates."""

import time
from enum import Enum

from confluent_kafka import Consumer, KafkaError, KafkaException, Message, TopicPartition
from pydantic import ValidationError
from logging_utils import get_kafka_logger

from .errors import DecodeError, InvalidQuantityError
from .ledger import ProcessedOrderLedger
from .schemas import OrderEvent, StockUpdateResult, UpdateStatus
from .stock import StockUpdateService

logger = get_kafka_logger("stock-service")

DEFAULT_CONSUMER_CONFIG = {
    "auto.offset.reset": "earliest",
    "enable.auto.commit": True,
    "session.timeout.ms": 30000,
    "max.poll.interval.ms": 300000,
}


class ConsumerState(str, Enum):
    """Whether the consumer is waiting for a message or applying one."""

    IDLE = "idle"
    PROCESSING = "processing"


def decode_order_event(payload: bytes | str | None) -> OrderEvent:
    """Decode a UTF-8 JSON message value into an order event.

    Raises:
        DecodeError: If the payload is empty, not UTF-8, not JSON, or does not
            describe a valid order (including non-positive quantities).
    """
    if payload is None:
        raise DecodeError("Message has no value", payload)
    if isinstance(payload, bytes):
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Message is not valid UTF-8: {e}", payload) from e
    else:
        text = payload
    try:
        return OrderEvent.model_validate_json(text)
    except ValidationError as e:
        raise DecodeError(f"Invalid order event: {e}", payload) from e


class OrderEventConsumer:
    """Consumes order events one at a time and applies them to the catalog.

    Only one event is in flight per instance, which keeps the read-then-write
    on stock race-free as long as each product id is consumed by a single
    instance (the producer keys messages by product id).
    """

    def __init__(
        self,
        bootstrap_servers: str,
        group_id: str,
        service: StockUpdateService,
        ledger: ProcessedOrderLedger | None = None,
        auto_offset_reset: str = "earliest",
        enable_auto_commit: bool = True,
        retry_backoff: float = 1.0,
    ):
        """Initialize the order event consumer.

        Args:
            bootstrap_servers: Kafka bootstrap servers
            group_id: Consumer group ID
            service: Stock update service each event is applied through
            ledger: Optional record of processed order ids for deduplication
            auto_offset_reset: Where to start consuming from if no offset is stored
            enable_auto_commit: Let Kafka commit offsets; when False offsets are
                committed after a final outcome and transient failures are redelivered
            retry_backoff: Seconds to wait before redelivering a transient failure
        """
        logger.info(
            f"Initializing consumer with bootstrap_servers={bootstrap_servers}, "
            f"group_id={group_id}, auto_commit={enable_auto_commit}"
        )
        config = DEFAULT_CONSUMER_CONFIG.copy()
        config.update(
            {
                "bootstrap.servers": bootstrap_servers,
                "group.id": group_id,
                "auto.offset.reset": auto_offset_reset,
                "enable.auto.commit": enable_auto_commit,
            }
        )
        self.consumer = Consumer(config)
        self.service = service
        self.ledger = ledger
        self.enable_auto_commit = enable_auto_commit
        self.retry_backoff = retry_backoff
        self.state = ConsumerState.IDLE
        self.stats = {
            "messages_processed": 0,
            "updated": 0,
            "insufficient_stock": 0,
            "not_found": 0,
            "invalid_product": 0,
            "transient_failures": 0,
            "decode_errors": 0,
            "duplicates": 0,
            "errors": 0,
            "start_time": time.time(),
        }
        self._running = False
        self._closed = False

    @property
    def running(self) -> bool:
        return self._running

    def subscribe(self, topics: list[str]) -> None:
        """Subscribe to the specified Kafka topics.

        Args:
            topics: List of topic names to subscribe to
        """
        logger.info(f"Subscribing to topics: {topics}")
        self.consumer.subscribe(topics)
        logger.info("Successfully subscribed to topics")

    def process_messages(self) -> None:
        """Poll and apply messages until :meth:`stop` is called.

        The message being applied when ``stop`` arrives is finished before the
        loop exits; the Kafka consumer is closed afterwards.
        """
        logger.info("Starting message processing loop")
        self._running = True
        try:
            while self._running:
                msg = self.consumer.poll(timeout=1.0)
                if msg is None:
                    continue

                if msg.error():
                    if msg.error().code() == KafkaError._PARTITION_EOF:
                        logger.debug("Reached end of partition")
                        continue
                    logger.error(f"Kafka error: {msg.error()}")
                    self.stats["errors"] += 1
                    continue

                try:
                    self.handle_message(msg)
                except Exception as e:
                    self.stats["errors"] += 1
                    logger.opt(exception=e).error(
                        f"Unexpected error processing message at {msg.topic()}[{msg.partition()}]@{msg.offset()}"
                    )
        finally:
            self._running = False
            self.state = ConsumerState.IDLE
            self.close()
            logger.info("Message processing loop stopped")

    def handle_message(self, msg: Message) -> StockUpdateResult | None:
        """Decode one message and apply it.

        Returns:
            The update result, or ``None`` if the message could not be decoded
            or its order was already processed.
        """
        self.state = ConsumerState.PROCESSING
        try:
            self.stats["messages_processed"] += 1
            logger.debug(f"Received message | topic={msg.topic()} | partition={msg.partition()} | offset={msg.offset()}")

            try:
                event = decode_order_event(msg.value())
            except DecodeError as e:
                self.stats["decode_errors"] += 1
                logger.error(f"Skipping undecodable message at offset {msg.offset()}: {e}")
                self._acknowledge(msg)
                return None

            if self.ledger is not None and self.ledger.seen(event.order_id):
                self.stats["duplicates"] += 1
                logger.info(f"Order {event.order_id} already processed, skipping redelivery")
                self._acknowledge(msg)
                return None

            logger.info(
                f"Processing order {event.order_id} for product {event.product_id}, quantity: {event.quantity}"
            )
            try:
                result = self.service.apply_order(event.product_id, event.quantity)
            except InvalidQuantityError as e:
                self.stats["decode_errors"] += 1
                logger.error(f"Rejected order {event.order_id}: {e}")
                self._acknowledge(msg)
                return None

            self._log_outcome(event, result)
            if result.is_terminal:
                if self.ledger is not None:
                    self.ledger.record(event.order_id)
                self._acknowledge(msg)
            else:
                self._request_redelivery(msg)
            return result
        finally:
            self.state = ConsumerState.IDLE

    def _log_outcome(self, event: OrderEvent, result: StockUpdateResult) -> None:
        if result.status == UpdateStatus.UPDATED:
            self.stats["updated"] += 1
            logger.info(f"Product stock updated for product {event.product_id}, new stock: {result.new_stock}")
        elif result.status == UpdateStatus.INSUFFICIENT_STOCK:
            self.stats["insufficient_stock"] += 1
            logger.warning(f"Insufficient stock for order {event.order_id}, product {event.product_id}: {result.detail}")
        elif result.status == UpdateStatus.NOT_FOUND:
            self.stats["not_found"] += 1
            logger.error(f"Order {event.order_id} references unknown product {event.product_id}")
        elif result.status == UpdateStatus.INVALID_PRODUCT:
            self.stats["invalid_product"] += 1
            logger.error(f"Order {event.order_id} skipped, product {event.product_id} is malformed: {result.detail}")
        else:
            self.stats["transient_failures"] += 1
            logger.error(f"Order {event.order_id} for product {event.product_id} failed: {result.detail}")

    def _acknowledge(self, msg: Message) -> None:
        if self.enable_auto_commit:
            return
        try:
            self.consumer.commit(message=msg, asynchronous=False)
        except KafkaException as e:
            logger.error(f"Offset commit failed at offset {msg.offset()}: {e}")

    def _request_redelivery(self, msg: Message) -> None:
        if self.enable_auto_commit:
            logger.warning(f"Auto-commit enabled, offset {msg.offset()} will not be redelivered")
            return
        if self.retry_backoff:
            time.sleep(self.retry_backoff)
        try:
            self.consumer.seek(TopicPartition(msg.topic(), msg.partition(), msg.offset()))
        except KafkaException as e:
            logger.error(f"Could not rewind to offset {msg.offset()} for redelivery: {e}")
            return
        logger.info(f"Rewound {msg.topic()}[{msg.partition()}] to offset {msg.offset()} for redelivery")

    def stop(self) -> None:
        """Ask the processing loop to exit after the in-flight message."""
        if self._running:
            logger.info("Stopping consumer, draining in-flight message")
        self._running = False

    def close(self) -> None:
        """Close the consumer connection."""
        if self._closed:
            return
        self._closed = True
        self.consumer.close()
        logger.info("Consumer closed")
