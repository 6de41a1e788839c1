"""
Pytest configuration and shared fixtures.
"""

import asyncio
from typing import Dict, List, Union
from unittest.mock import AsyncMock

import pytest

from catalog.models import Item, ObservedState, TrackedCollection
from catalog.reader import CatalogReader
from catalog.snapshot_store import SnapshotStore
from scheduler.alerting import NotificationDispatcher
from scheduler.classifier import Classifier
from scheduler.models import NotifierConfig, SchedulerConfig
from scheduler.report_generator import ReportGenerator
from scheduler.scheduler_service import RunCoordinator
from utilities.exceptions import ReadFailure


def build_item(item_id: str, title: str = "", price: str = "") -> Item:
    """Build an item whose link carries the identifier."""
    return Item(
        id=item_id,
        title=title or f"Item {item_id}",
        price=price,
        link=f"https://shop.example.com/product-{item_id}/p/{item_id}"
    )


class FakeReader(CatalogReader):
    """Reader returning canned states or raising canned failures per collection key."""

    def __init__(self, results: Dict[str, Union[ObservedState, Exception]]):
        self.results = results
        self.calls: List[str] = []

    async def read(self, collection: TrackedCollection) -> ObservedState:
        self.calls.append(collection.key)
        result = self.results[collection.key]
        if isinstance(result, Exception):
            raise result
        return result


class BlockingReader(CatalogReader):
    """Reader that waits until released, to hold a cycle in the running state."""

    def __init__(self, state: ObservedState):
        self.state = state
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = 0

    async def read(self, collection: TrackedCollection) -> ObservedState:
        self.calls += 1
        self.entered.set()
        await self.release.wait()
        return self.state


@pytest.fixture
def all_collection():
    """Identifier-tracked collection."""
    return TrackedCollection(key="MEN_ALL", label="MEN (All Products)", url="https://shop.example.com/men")


@pytest.fixture
def filtered_collection():
    """Second identifier-tracked collection."""
    return TrackedCollection(
        key="MEN_FILTERED", label="MEN (L, XL)", url="https://shop.example.com/men?size=L"
    )


@pytest.fixture
def count_collection():
    """Count-only collection."""
    return TrackedCollection(
        key="WOMEN_ALL", label="WOMEN", url="https://shop.example.com/women", track_items=False
    )


@pytest.fixture
def notifier_config():
    """Notifier configuration without real waiting."""
    return NotifierConfig(
        max_message_length=3800,
        send_delay_seconds=0,
        retry_budget=2,
        retry_delay_seconds=0,
        category_send_threshold=5,
        max_links_per_category=8,
        summary_link_limit=12
    )


@pytest.fixture
def scheduler_config(all_collection, filtered_collection, notifier_config):
    """Scheduler configuration with two tracked collections and no cool-down."""
    return SchedulerConfig(
        interval_minutes=10,
        startup_delay_seconds=0,
        timezone="Asia/Kolkata",
        collections=[all_collection, filtered_collection],
        read_timeout_seconds=5,
        collection_cooldown_seconds=0,
        notifier=notifier_config
    )


@pytest.fixture
def report_generator(notifier_config):
    """Report generator in the default timezone."""
    return ReportGenerator(notifier_config, "Asia/Kolkata")


@pytest.fixture
def mock_channel():
    """Messaging channel that accepts everything."""
    channel = AsyncMock()
    channel.send.return_value = None
    return channel


@pytest.fixture
def dispatcher(notifier_config, mock_channel, report_generator):
    """Dispatcher over the mock channel."""
    return NotificationDispatcher(notifier_config, mock_channel, report_generator)


@pytest.fixture
def snapshot_store(tmp_path):
    """Snapshot store in a temporary directory."""
    return SnapshotStore(tmp_path / "stock.json")


@pytest.fixture
def make_coordinator(scheduler_config, snapshot_store, dispatcher, report_generator):
    """Factory building a coordinator around a given reader."""
    def _make(reader: CatalogReader, config: SchedulerConfig = None) -> RunCoordinator:
        return RunCoordinator(
            config=config or scheduler_config,
            reader=reader,
            store=snapshot_store,
            dispatcher=dispatcher,
            classifier=Classifier(),
            report_generator=report_generator
        )
    return _make


@pytest.fixture
def read_failure():
    """Failure raised by a reader for the filtered collection."""
    return ReadFailure("MEN_FILTERED", "selector not found")


@pytest.fixture
def make_item():
    """Factory for items whose link carries the identifier."""
    return build_item


@pytest.fixture
def fake_reader():
    """Factory for readers with canned results per collection key."""
    return FakeReader


@pytest.fixture
def blocking_reader():
    """Factory for readers that block until released."""
    return BlockingReader
