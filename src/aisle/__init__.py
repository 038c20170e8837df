"""
Aisle grocery list service.

The package keeps a household grocery list partitioned by store and orders each
store's items with fractional sort keys, so inserts and moves never renumber the list.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
