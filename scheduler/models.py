"""
Models for scheduler, change detection and notification functionality.

This module defines Pydantic models for:
- Immutable pipeline configuration (reader, notifier, scheduler)
- Change records produced by the diff engine
- Classification buckets
- Per-collection outcomes and cycle results
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from catalog.models import Item, TrackedCollection


class CollectionStatus(str, Enum):
    """Outcome of one collection within a cycle."""
    UPDATED = "updated"
    READ_FAILED = "read_failed"
    PERSIST_FAILED = "persist_failed"


class ReaderConfig(BaseModel):
    """Configuration for the HTTP catalog reader."""
    model_config = ConfigDict(frozen=True)

    request_timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds")
    max_retries: int = Field(default=2, ge=0, description="Extra attempts after a failed read")
    retry_delay: float = Field(default=6.0, ge=0, description="Seconds between read attempts")
    count_selector: str = Field(default=".length strong")
    item_selector: str = Field(default="a[href*='/product']")
    title_selector: str = Field(default=".nameCls, .name")
    price_selector: str = Field(default=".price strong, .price")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120 Safari/537.36"
        )
    )


class NotifierConfig(BaseModel):
    """Configuration for the notification dispatcher."""
    model_config = ConfigDict(frozen=True)

    # Channel constraints
    max_message_length: int = Field(default=3800, ge=1, le=4096, description="Chunk boundary in characters")
    send_delay_seconds: float = Field(default=0.3, ge=0, description="Pause after every chunk send")
    retry_budget: int = Field(default=2, ge=0, description="Extra attempts per chunk")
    retry_delay_seconds: float = Field(default=2.0, ge=0, description="Backoff between attempts")
    request_timeout: float = Field(default=15.0, gt=0)
    link_preview: bool = Field(default=False)

    # Message volume
    category_send_threshold: int = Field(default=5, ge=0, description="New items needed for bucket messages")
    max_links_per_category: int = Field(default=8, ge=1)
    summary_link_limit: int = Field(default=12, ge=0)

    # Content
    notify_unchanged: bool = Field(default=True, description="Send the summary even when nothing changed")
    report_removed_items: bool = Field(default=False, description="Mention items gone by identifier")


class SchedulerConfig(BaseModel):
    """Configuration for the scheduler and run coordinator."""
    model_config = ConfigDict(frozen=True)

    # Scheduling
    interval_minutes: float = Field(default=10, gt=0, description="Minutes between cycles")
    startup_delay_seconds: float = Field(default=5, ge=0, description="Delay before the first cycle")
    timezone: str = Field(default="Asia/Kolkata", description="Timezone for schedules and timestamps")

    # Reading
    collections: List[TrackedCollection] = Field(default_factory=list)
    read_timeout_seconds: float = Field(default=180, gt=0, description="Upper bound for one collection read")
    collection_cooldown_seconds: float = Field(default=5.0, ge=0, description="Pause between collection reads")

    reader: ReaderConfig = Field(default_factory=ReaderConfig)
    notifier: NotifierConfig = Field(default_factory=NotifierConfig)


class ChangeRecord(BaseModel):
    """Delta between a stored snapshot and a fresh observation."""
    collection_key: str = Field(..., description="Tracked collection key")
    previous_total: int = Field(default=0, ge=0)
    current_total: int = Field(default=0, ge=0)
    added_count: int = Field(default=0, ge=0)
    removed_count: int = Field(default=0, ge=0)
    new_items: List[Item] = Field(default_factory=list, description="Items absent from the snapshot, in page order")
    removed_items: List[Item] = Field(default_factory=list, description="Snapshot items no longer observed")
    first_observation: bool = Field(default=False, description="Diffed against the empty baseline")

    @property
    def has_changes(self) -> bool:
        """True when totals moved or items appeared or disappeared."""
        return bool(
            self.added_count or self.removed_count or self.new_items or self.removed_items
        )


class Bucket(BaseModel):
    """Named group of items whose titles matched one classification rule."""
    name: str = Field(..., description="Rule name")
    label: str = Field(..., description="Display label")
    items: List[Item] = Field(default_factory=list)


class CollectionOutcome(BaseModel):
    """What happened to one tracked collection during a cycle."""
    collection: TrackedCollection
    status: CollectionStatus
    change: Optional[ChangeRecord] = None
    items: List[Item] = Field(default_factory=list, description="Items observed this cycle, in page order")
    error: Optional[str] = None


class CycleResult(BaseModel):
    """Result of one observe -> diff -> notify cycle."""
    cycle_id: str = Field(..., description="Unique cycle identifier")
    started_at: datetime = Field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None
    outcomes: List[CollectionOutcome] = Field(default_factory=list)
    new_item_count: int = Field(default=0, ge=0)
    summary_delivered: Optional[bool] = Field(default=None, description="None when no summary was sent")
    buckets_delivered: Optional[bool] = Field(default=None, description="None when no bucket messages were sent")

    @property
    def success(self) -> bool:
        """True when every collection was read and persisted."""
        return all(outcome.status == CollectionStatus.UPDATED for outcome in self.outcomes)

    @property
    def duration_seconds(self) -> float:
        """Wall time of the cycle, zero while it is still running."""
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()
