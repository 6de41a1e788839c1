"""
Test cases specifically for scheduler models and data structures.
Tests validation, defaults and derived properties.
"""

from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from catalog.models import TrackedCollection
from scheduler.models import (
    ChangeRecord, CollectionOutcome, CollectionStatus, CycleResult,
    NotifierConfig, ReaderConfig, SchedulerConfig
)


class TestCollectionStatus:
    """Test cases for CollectionStatus enum."""

    def test_all_statuses(self):
        """Test all status values."""
        assert CollectionStatus.UPDATED == "updated"
        assert CollectionStatus.READ_FAILED == "read_failed"
        assert CollectionStatus.PERSIST_FAILED == "persist_failed"

    def test_invalid_status(self):
        """Test that unknown values are rejected."""
        with pytest.raises(ValueError):
            CollectionStatus("skipped")


class TestNotifierConfig:
    """Test cases for NotifierConfig."""

    def test_defaults(self):
        """Test default delivery settings."""
        config = NotifierConfig()

        assert config.max_message_length == 3800
        assert config.send_delay_seconds == 0.3
        assert config.retry_budget == 2
        assert config.category_send_threshold == 5
        assert config.max_links_per_category == 8
        assert config.notify_unchanged is True
        assert config.report_removed_items is False

    def test_message_length_bounds(self):
        """Test the channel length limits."""
        with pytest.raises(ValidationError):
            NotifierConfig(max_message_length=0)
        with pytest.raises(ValidationError):
            NotifierConfig(max_message_length=5000)

    def test_negative_delays_rejected(self):
        """Test delay validation."""
        with pytest.raises(ValidationError):
            NotifierConfig(send_delay_seconds=-1)
        with pytest.raises(ValidationError):
            NotifierConfig(retry_budget=-1)

    def test_immutable(self):
        """Test that configuration cannot change after construction."""
        config = NotifierConfig()
        with pytest.raises(ValidationError):
            config.retry_budget = 5


class TestSchedulerConfig:
    """Test cases for SchedulerConfig."""

    def test_defaults(self):
        """Test default scheduling settings."""
        config = SchedulerConfig()

        assert config.interval_minutes == 10
        assert config.startup_delay_seconds == 5
        assert config.timezone == "Asia/Kolkata"
        assert config.read_timeout_seconds == 180
        assert config.collections == []
        assert isinstance(config.reader, ReaderConfig)
        assert isinstance(config.notifier, NotifierConfig)

    def test_invalid_interval(self):
        """Test that the interval must be positive."""
        with pytest.raises(ValidationError):
            SchedulerConfig(interval_minutes=0)


class TestChangeRecord:
    """Test cases for ChangeRecord."""

    def test_has_changes(self, make_item):
        """Test change detection on the record."""
        assert not ChangeRecord(collection_key="MEN_ALL").has_changes
        assert ChangeRecord(collection_key="MEN_ALL", added_count=1).has_changes
        assert ChangeRecord(collection_key="MEN_ALL", removed_count=1).has_changes
        assert ChangeRecord(collection_key="MEN_ALL", new_items=[make_item("1")]).has_changes

    def test_negative_counts_rejected(self):
        """Test count validation."""
        with pytest.raises(ValidationError):
            ChangeRecord(collection_key="MEN_ALL", added_count=-1)


class TestCycleResult:
    """Test cases for CycleResult."""

    @pytest.fixture
    def collection(self):
        return TrackedCollection(key="MEN_ALL", label="Men", url="https://shop.example.com/men")

    def test_success_requires_every_collection_updated(self, collection):
        """Test the success property."""
        ok = CollectionOutcome(collection=collection, status=CollectionStatus.UPDATED)
        failed = CollectionOutcome(collection=collection, status=CollectionStatus.READ_FAILED)

        assert CycleResult(cycle_id="a", outcomes=[ok]).success
        assert not CycleResult(cycle_id="b", outcomes=[ok, failed]).success

    def test_duration(self):
        """Test wall time computation."""
        started = datetime(2024, 1, 15, 10, 0, 0)
        result = CycleResult(cycle_id="a", started_at=started)

        assert result.duration_seconds == 0.0

        result.finished_at = started + timedelta(seconds=42)
        assert result.duration_seconds == 42.0

    def test_delivery_unknown_by_default(self):
        """Test that delivery flags start unset."""
        result = CycleResult(cycle_id="a")

        assert result.summary_delivered is None
        assert result.buckets_delivered is None
        assert result.new_item_count == 0
