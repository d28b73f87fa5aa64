"""Order Service: publishes order events for the stock pipeline."""
