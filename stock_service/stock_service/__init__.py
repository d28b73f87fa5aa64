"""Stock Service: applies order events from Kafka as catalog stock decrements."""
