"""Order key value type."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, order=True)
class OrderKey:
    """Position of an item inside its partition.

    A key is either finite or unordered. Unordered keys compare greater than every
    finite key and equal to each other, which gives the "nulls last" display order
    without ever turning an absent key into a number.
    """

    unordered: bool
    value: float = 0.0

    @classmethod
    def finite(cls, value: float) -> "OrderKey":
        number = float(value)
        if not math.isfinite(number):
            raise ValueError(f"Order keys must be finite, got {value!r}")
        return cls(unordered=False, value=number)

    @classmethod
    def from_storage(cls, value: Optional[float]) -> "OrderKey":
        """Build a key from the nullable column value."""

        if value is None:
            return UNORDERED
        return cls.finite(value)

    @property
    def is_finite(self) -> bool:
        return not self.unordered

    def to_storage(self) -> Optional[float]:
        return None if self.unordered else self.value

    def __repr__(self) -> str:
        if self.unordered:
            return "OrderKey(UNORDERED)"
        return f"OrderKey({self.value!r})"


UNORDERED = OrderKey(unordered=True)

__all__ = ["OrderKey", "UNORDERED"]
