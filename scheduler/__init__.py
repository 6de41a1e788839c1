"""
Scheduler package for change detection and notification.

This package contains:
- Interval scheduler and single-flight run coordinator
- Change detection engine (count and identifier deltas)
- Keyword classifier for new items
- Message formatting
- Chunked, paced, retrying notification dispatcher
"""

__version__ = "1.0.0"
