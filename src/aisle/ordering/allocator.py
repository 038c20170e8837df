"""Fractional order key allocation for items within a single partition.

Every placement computes one new key for the moving item from its future
neighbours. No other item is touched, so inserts and moves cost a single write
regardless of partition size.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Hashable, Iterable, List, Optional, Protocol, Sequence

from .keys import OrderKey

logger = logging.getLogger(__name__)

GAP = 1000.0


class OrderedItem(Protocol):
    """Anything carrying an id and a nullable sort key."""

    @property
    def id(self) -> Hashable: ...

    @property
    def sort_order(self) -> Optional[float]: ...


class OrderKeyExhausted(ArithmeticError):
    """Raised when no finite float fits strictly between the requested neighbours."""

    def __init__(self, lower: Optional[float], upper: Optional[float]):
        super().__init__(f"No order key available between {lower!r} and {upper!r}")
        self.lower = lower
        self.upper = upper


def effective_key(item: OrderedItem) -> OrderKey:
    return OrderKey.from_storage(item.sort_order)


def sort_partition(items: Iterable[OrderedItem]) -> List[OrderedItem]:
    """Return items in display order: ascending key, unordered last, ties by id."""

    return sorted(items, key=lambda item: (effective_key(item), item.id))


def _require_between(key: float, lower: Optional[float], upper: Optional[float]) -> float:
    if not math.isfinite(key):
        raise OrderKeyExhausted(lower, upper)
    if lower is not None and not key > lower:
        raise OrderKeyExhausted(lower, upper)
    if upper is not None and not key < upper:
        raise OrderKeyExhausted(lower, upper)
    return key


def _end_key(ordered: Sequence[OrderedItem]) -> float:
    finite = [effective_key(item).value for item in ordered if effective_key(item).is_finite]
    if not finite:
        return GAP
    last = finite[-1]
    return _require_between(last + GAP, last, None)


def _first_key(target: OrderKey) -> float:
    if target.unordered:
        return GAP
    if target.value <= 0:
        return _require_between(target.value - GAP, None, target.value)
    # Halving must stay above zero; an underflow to 0.0 counts as exhausted.
    return _require_between(target.value / 2, 0.0, target.value)


def allocate_order_key(
    items: Iterable[OrderedItem],
    *,
    moving_id: Optional[Hashable] = None,
    before_id: Optional[Hashable] = None,
) -> float:
    """Compute the key that places an item before ``before_id`` (or at the end).

    ``items`` are the current members of the target partition. The moving item is
    ignored if it is among them. A ``before_id`` that is not in the partition falls
    back to end-of-partition placement.
    """

    ordered = [item for item in sort_partition(items) if item.id != moving_id]

    if before_id is None:
        return _end_key(ordered)

    index = next((pos for pos, item in enumerate(ordered) if item.id == before_id), None)
    if index is None:
        logger.debug("before_id=%s not in partition; placing at end", before_id)
        return _end_key(ordered)

    target = effective_key(ordered[index])
    if index == 0:
        return _first_key(target)

    preceding = effective_key(ordered[index - 1])
    if preceding.unordered and target.unordered:
        # Both neighbours are unordered: land after every finite key.
        return _end_key(ordered)

    lower = target.value - 2 * GAP if preceding.unordered else preceding.value
    upper = preceding.value + 2 * GAP if target.unordered else target.value
    return _require_between((lower + upper) / 2, lower, upper)


def rebalance_keys(items: Iterable[OrderedItem]) -> Dict[Hashable, float]:
    """Renumber a partition to multiples of GAP, keeping its display order."""

    return {item.id: GAP * (position + 1) for position, item in enumerate(sort_partition(items))}


def keys_too_close(items: Iterable[OrderedItem], epsilon: float) -> bool:
    """Return True when two neighbouring finite keys are closer than ``epsilon``."""

    finite = [
        effective_key(item).value for item in sort_partition(items) if item.sort_order is not None
    ]
    return any(upper - lower < epsilon for lower, upper in zip(finite, finite[1:]))


__all__ = [
    "GAP",
    "OrderKeyExhausted",
    "OrderedItem",
    "allocate_order_key",
    "effective_key",
    "keys_too_close",
    "rebalance_keys",
    "sort_partition",
]
