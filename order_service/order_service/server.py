"""Order Service Server."""

import os
from contextlib import asynccontextmanager

from confluent_kafka.admin import AdminClient
from fastapi import APIRouter, FastAPI
from logging_utils import setup_service_logger

from .producer import DEFAULT_ORDER_TOPIC, OrderProducer
from .schemas import OrderEvent

logger = setup_service_logger("order-service", log_level=os.getenv("LOG_LEVEL", "INFO"))

router = APIRouter()

producer = OrderProducer(
    os.getenv("KAFKA_BOOTSTRAP_SERVERS", "kafka:9092"), topic=os.getenv("ORDER_TOPIC", DEFAULT_ORDER_TOPIC)
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    producer.flush()
    logger.info("Order producer flushed")


@router.get("/health")
def health_check():
    """Check the health status of the service.

    Returns:
        dict: Contains Kafka connection status.
    """
    return {"kafka": _check_kafka_connection()}


@router.get("/health/ready")
def readiness_check():
    """Check if the service is ready to accept traffic.

    Returns:
        dict: Service readiness status and Kafka connection status.
    """
    kafka_ok = _check_kafka_connection()
    return {"status": "ready" if kafka_ok else "not_ready", "kafka": kafka_ok}


@router.post("/orders")
async def create_order(order: OrderEvent, partition: int | None = None):
    """Publish a new order event.

    Args:
        order (OrderEvent): The order data to be published.
        partition (int | None): Optional explicit partition.

    Returns:
        dict: Status of the publication and the order ID if successful.
    """
    logger.info(f"Received new order: {order}")
    try:
        producer.publish_order(order, partition=partition)
        logger.info(f"Order published successfully: {order.order_id}")
        return {"status": "success", "orderId": order.order_id}
    except Exception as e:
        logger.error(f"Failed to publish order {order.order_id}: {e}")
        return {"status": "error", "message": str(e)}


def _check_kafka_connection() -> bool:
    """Check if Kafka connection is available.

    Returns:
        bool: True if Kafka is accessible, False otherwise.
    """
    try:
        admin = AdminClient({"bootstrap.servers": os.getenv("KAFKA_BOOTSTRAP_SERVERS", "kafka:9092")})
        return bool(admin.list_topics(timeout=5))
    except Exception as e:
        logger.error(f"Kafka connection failed: {e}")
        return False


app = FastAPI(title="Order Service", lifespan=lifespan)
app.include_router(router)
logger.info("API router mounted.")
