"""
Catalog package: the observed side of the stock monitor.

This package contains:
- Catalog data models (items, tracked collections, observed states, snapshots)
- The snapshot store persisting the last observed state per collection
- The HTTP catalog reader that produces observed states
"""

__version__ = "1.0.0"
