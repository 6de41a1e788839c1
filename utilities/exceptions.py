"""
Exception taxonomy for the observe -> diff -> notify pipeline.
"""

from typing import Optional


class MonitorError(Exception):
    """Base exception for stock monitor failures."""


class ConfigurationError(MonitorError):
    """Raised when required settings are missing at start-up."""


class ReadFailure(MonitorError):
    """Raised when the catalog reader cannot produce an observed state."""

    def __init__(self, collection_key: str, reason: str):
        self.collection_key = collection_key
        self.reason = reason
        super().__init__(f"Failed to read collection {collection_key}: {reason}")


class PersistFailure(MonitorError):
    """Raised when a snapshot cannot be written."""

    def __init__(self, collection_key: str, reason: str):
        self.collection_key = collection_key
        self.reason = reason
        super().__init__(f"Failed to persist snapshot for {collection_key}: {reason}")


class DeliveryFailure(MonitorError):
    """Raised when one message chunk exhausts its retry budget."""

    def __init__(self, chunk_index: int, attempts: int, reason: Optional[str] = None):
        self.chunk_index = chunk_index
        self.attempts = attempts
        self.reason = reason
        super().__init__(
            f"Chunk {chunk_index} abandoned after {attempts} attempts: {reason}"
        )
