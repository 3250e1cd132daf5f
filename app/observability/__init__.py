"""Observability helpers.

Request IDs + structlog contextvars, JSON logging, and a per-app Prometheus
registry scraped from ``/metrics``.
"""

