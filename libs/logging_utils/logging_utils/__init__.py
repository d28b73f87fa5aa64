"""Logging utilities for the stock pipeline services."""

from .config import get_kafka_logger, get_logger, setup_service_logger

__all__ = [
    "setup_service_logger",
    "get_logger",
    "get_kafka_logger",
]
