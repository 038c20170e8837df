"""Fractional sort keys for ordering items inside a partition."""

from aisle.ordering.allocator import (
    GAP,
    OrderKeyExhausted,
    allocate_order_key,
    effective_key,
    keys_too_close,
    rebalance_keys,
    sort_partition,
)
from aisle.ordering.keys import UNORDERED, OrderKey

__all__ = [
    "GAP",
    "OrderKey",
    "OrderKeyExhausted",
    "UNORDERED",
    "allocate_order_key",
    "effective_key",
    "keys_too_close",
    "rebalance_keys",
    "sort_partition",
]
