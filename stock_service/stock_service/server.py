"""FastAPI host for the Stock Service consumer."""

import threading
from contextlib import asynccontextmanager

from confluent_kafka.admin import AdminClient
from fastapi import FastAPI
from logging_utils import setup_service_logger

from .cache import CacheGateway
from .catalog import CatalogStore
from .config import StockServiceSettings, load_settings
from .consumer import OrderEventConsumer
from .errors import CacheUnavailableError, CatalogUnavailableError
from .ledger import ProcessedOrderLedger
from .stock import StockUpdateService

DRAIN_TIMEOUT_SECONDS = 30.0


class StockServiceState:
    """Long-lived clients shared by the consumer thread and the endpoints."""

    def __init__(self):
        self.settings: StockServiceSettings | None = None
        self.cache: CacheGateway | None = None
        self.catalog: CatalogStore | None = None
        self.consumer: OrderEventConsumer | None = None
        self.consumer_thread: threading.Thread | None = None

    def start(self, settings: StockServiceSettings) -> None:
        """Connect cache, catalog and Kafka, then start consuming in a background thread."""
        self.settings = settings
        self.cache = CacheGateway.from_url(settings.redis_url, timeout=settings.store_timeout_ms / 1000)
        self.catalog = CatalogStore.from_uri(
            settings.mongo_uri,
            database=settings.mongo_database,
            collection=settings.mongo_collection,
            timeout_ms=settings.store_timeout_ms,
        )
        self._check_stores()
        service = StockUpdateService(self.cache, self.catalog, atomic_decrement=settings.atomic_stock_updates)
        self.consumer = OrderEventConsumer(
            bootstrap_servers=settings.kafka_bootstrap_servers,
            group_id=settings.kafka_consumer_group,
            service=service,
            ledger=ProcessedOrderLedger(settings.dedup_window),
            enable_auto_commit=settings.kafka_auto_commit,
            retry_backoff=settings.retry_backoff_seconds,
        )
        self.consumer.subscribe([settings.order_topic])

        self.consumer_thread = threading.Thread(
            target=self.consumer.process_messages, name="order-event-consumer", daemon=True
        )
        self.consumer_thread.start()
        logger.info("Consumer thread started")

    def stop(self) -> None:
        """Drain the in-flight message, then release every connection."""
        if self.consumer:
            self.consumer.stop()
        if self.consumer_thread and self.consumer_thread.is_alive():
            self.consumer_thread.join(timeout=DRAIN_TIMEOUT_SECONDS)
            if self.consumer_thread.is_alive():
                logger.error(
                    f"Consumer did not drain within {DRAIN_TIMEOUT_SECONDS}s, leaving its connections open"
                )
                return
        if self.consumer:
            self.consumer.close()
        if self.cache:
            self.cache.close()
        if self.catalog:
            self.catalog.close()

    def _check_stores(self) -> None:
        """Reach Redis and MongoDB once before any message is consumed."""
        redis_ok = self.cache.ping()
        mongo_ok = self.catalog.ping()
        if redis_ok and mongo_ok:
            logger.info("Connected to Redis and MongoDB")
            return
        self.cache.close()
        self.catalog.close()
        if not redis_ok:
            raise CacheUnavailableError(f"Redis is unreachable at {self.settings.redis_url}")
        raise CatalogUnavailableError("MongoDB is unreachable")

    @property
    def running(self) -> bool:
        return bool(self.consumer_thread and self.consumer_thread.is_alive())


logger = setup_service_logger("stock-service")
state = StockServiceState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage the lifecycle of the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    settings = load_settings()
    setup_service_logger(
        "stock-service", log_level=settings.log_level, log_file=settings.log_file, serialize=settings.log_json
    )
    state.start(settings)

    yield

    logger.info("Shutting down stock service...")
    state.stop()
    logger.info("Shutdown complete")


app = FastAPI(title="Stock Service", lifespan=lifespan)


@app.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy"}


@app.get("/health/ready")
async def readiness_check():
    """Readiness check covering Kafka, Redis and MongoDB."""
    bootstrap_servers = state.settings.kafka_bootstrap_servers if state.settings else "kafka:9092"
    checks = {
        "kafka": _check_kafka_connection(bootstrap_servers),
        "redis": bool(state.cache and state.cache.ping()),
        "mongodb": bool(state.catalog and state.catalog.ping()),
        "consumer": state.running,
    }
    ready = all(checks.values())
    return {"status": "ready" if ready else "not ready", **checks}


@app.get("/stats")
async def consumer_stats():
    """Counters of the order event consumer."""
    if not state.consumer:
        return {"state": "stopped"}
    return {"state": state.consumer.state.value, **state.consumer.stats}


def _check_kafka_connection(bootstrap_servers: str) -> bool:
    """Check if Kafka connection is available.

    Returns:
        bool: True if Kafka is accessible, False otherwise.
    """
    try:
        admin = AdminClient({"bootstrap.servers": bootstrap_servers})
        return admin.list_topics(timeout=5) is not None
    except Exception as e:
        logger.error(f"Kafka connection failed: {e}")
        return False
