"""
Pydantic models for catalog observations and persisted snapshots.
Implements the item schema, tracked collection definitions and the snapshot record layout.
"""

import re
from datetime import datetime
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Product links look like https://host/<slug>/p/<id>_<variant>
PRODUCT_ID_PATTERN = re.compile(r"/p/([A-Za-z0-9_-]+)")


def extract_item_id(link: Optional[str]) -> Optional[str]:
    """
    Extract the stable item identifier from a canonical product link.

    Args:
        link: Absolute or relative product URL

    Returns:
        Identifier string, or None if the link carries none
    """
    if not link:
        return None

    path = urlparse(link.strip()).path
    match = PRODUCT_ID_PATTERN.search(path)
    if match:
        return match.group(1)

    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        return None
    return segments[-1]


class Item(BaseModel):
    """One catalog entry, identified by the id taken from its canonical link."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Stable identifier extracted from the link")
    title: str = Field(default="", description="Title text as shown in the listing")
    price: str = Field(default="", description="Price text, may be empty")
    link: str = Field(..., min_length=1, description="Canonical product link")


class TrackedCollection(BaseModel):
    """
    A named catalog view monitored independently of the others.
    """
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1, description="Stable collection identifier")
    label: str = Field(..., description="Display label used in notifications")
    url: str = Field(..., description="Source locator handed to the catalog reader")
    track_items: bool = Field(
        default=True,
        description="Track the full item list (identifier delta) instead of totals only"
    )


class ObservedState(BaseModel):
    """Result of one read of a tracked collection."""
    model_config = ConfigDict(frozen=True)

    total_items: int = Field(..., ge=0, description="Total count reported by the catalog")
    items: List[Item] = Field(default_factory=list, description="Items in page order")
    observed_at: datetime = Field(default_factory=datetime.utcnow)


class Snapshot(BaseModel):
    """
    Persisted state for one tracked collection.

    Serialized with camelCase keys so the state file stays readable:
    ``{"totalItems": 10, "items": [...], "observedAt": "..."}``.
    A snapshot without ``observed_at`` is the empty baseline used before the first
    successful cycle.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    total_items: int = Field(default=0, ge=0, alias="totalItems")
    items: List[Item] = Field(default_factory=list)
    observed_at: Optional[datetime] = Field(default=None, alias="observedAt")

    @field_validator("items", mode="before")
    @classmethod
    def drop_items_without_id(cls, v):
        """Skip stored records that lost their identifier."""
        if not isinstance(v, list):
            return v
        return [item for item in v if not isinstance(item, dict) or item.get("id")]

    @classmethod
    def empty(cls) -> "Snapshot":
        """Baseline for a collection that was never observed."""
        return cls()

    @classmethod
    def from_observed(cls, state: ObservedState) -> "Snapshot":
        """Build the snapshot that records an observed state verbatim."""
        return cls(
            total_items=state.total_items,
            items=list(state.items),
            observed_at=state.observed_at
        )

    @property
    def is_baseline(self) -> bool:
        """True when no cycle has completed for this collection yet."""
        return self.observed_at is None

    def to_record(self) -> dict:
        """Serialize to the persisted record layout."""
        return self.model_dump(mode="json", by_alias=True)
