"""Prometheus metrics definitions for Aisle."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "aisle_http_requests_total",
    "Total number of HTTP requests processed by the Aisle API",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "aisle_http_request_duration_seconds",
    "Latency of HTTP requests processed by the Aisle API",
    ["method", "path"],
)

GROCERY_MUTATIONS = Counter(
    "aisle_grocery_mutations_total",
    "Number of grocery list mutations by operation",
    ["operation"],
)

PARTITION_REBALANCES = Counter(
    "aisle_partition_rebalances_total",
    "Number of store partitions renumbered, by trigger",
    ["trigger"],
)

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "GROCERY_MUTATIONS",
    "PARTITION_REBALANCES",
]
