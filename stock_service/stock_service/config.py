"""Environment-driven settings for the Stock Service."""

import os

from pydantic import BaseModel, Field


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


class StockServiceSettings(BaseModel):
    """Runtime configuration, resolved once at startup."""

    kafka_bootstrap_servers: str = "kafka:9092"
    kafka_consumer_group: str = "stock-service"
    order_topic: str = "my-order-updates2"
    kafka_auto_commit: bool = True

    redis_url: str = "redis://localhost:6379/0"
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_database: str = "ecommerce"
    mongo_collection: str = "products"
    store_timeout_ms: int = Field(5000, gt=0)

    atomic_stock_updates: bool = False
    dedup_window: int = Field(10000, ge=0)
    retry_backoff_seconds: float = Field(1.0, ge=0)

    log_level: str = "INFO"
    log_file: str | None = None
    log_json: bool = False


def load_settings() -> StockServiceSettings:
    """Build settings from environment variables.

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value.
    """
    return StockServiceSettings(
        kafka_bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "kafka:9092"),
        kafka_consumer_group=os.getenv("KAFKA_CONSUMER_GROUP", "stock-service"),
        order_topic=os.getenv("ORDER_TOPIC", "my-order-updates2"),
        kafka_auto_commit=_env_flag("KAFKA_AUTO_COMMIT", "true"),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        mongo_uri=os.getenv("MONGO_URI", "mongodb://localhost:27017"),
        mongo_database=os.getenv("MONGO_DATABASE", "ecommerce"),
        mongo_collection=os.getenv("MONGO_COLLECTION", "products"),
        store_timeout_ms=os.getenv("STORE_TIMEOUT_MS", "5000"),
        atomic_stock_updates=_env_flag("ATOMIC_STOCK_UPDATES", "false"),
        dedup_window=os.getenv("DEDUP_WINDOW", "10000"),
        retry_backoff_seconds=os.getenv("RETRY_BACKOFF_SECONDS", "1.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("LOG_FILE") or None,
        log_json=_env_flag("LOG_JSON", "false"),
    )
