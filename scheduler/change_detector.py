"""
Change detection engine for catalog observations.

This module provides:
- Count-based deltas between stored and observed totals
- Identifier-based deltas between stored and observed item lists
- Change record assembly for a tracked collection

Everything here is pure: no I/O and no mutation of the inputs.
"""

from typing import Iterable, List, Tuple

from catalog.models import Item, ObservedState, Snapshot, TrackedCollection
from scheduler.models import ChangeRecord


def calculate_count_delta(old_total: int, new_total: int) -> Tuple[int, int]:
    """
    Compute added and removed counts from two totals.

    Both values are non-negative and ``new_total == old_total + added - removed``.
    Growth and shrink cannot both show up here; churn hidden behind an unchanged
    total is only visible to the identifier delta.

    Args:
        old_total: Total from the stored snapshot
        new_total: Total from the fresh observation

    Returns:
        Tuple of (added, removed)
    """
    return max(0, new_total - old_total), max(0, old_total - new_total)


def dedupe_items(items: Iterable[Item]) -> List[Item]:
    """Drop repeated identifiers, keeping the first occurrence and its position."""
    seen = set()
    unique = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


def find_new_items(previous: Iterable[Item], current: Iterable[Item]) -> List[Item]:
    """
    Items whose identifier is absent from the previous list.

    Args:
        previous: Items of the stored snapshot
        current: Items of the fresh observation, in page order

    Returns:
        New items in the order of ``current``, each identifier once
    """
    known_ids = {item.id for item in previous}
    return [item for item in dedupe_items(current) if item.id not in known_ids]


def find_removed_items(previous: Iterable[Item], current: Iterable[Item]) -> List[Item]:
    """Items of the previous list whose identifier is no longer observed."""
    current_ids = {item.id for item in current}
    return [item for item in dedupe_items(previous) if item.id not in current_ids]


def detect_changes(
    collection: TrackedCollection,
    snapshot: Snapshot,
    observed: ObservedState
) -> ChangeRecord:
    """
    Diff a fresh observation against the stored snapshot.

    The empty baseline counts as total 0 with no items, so a first observation
    reports everything as added.

    Args:
        collection: Collection the observation belongs to
        snapshot: Last persisted snapshot (possibly the empty baseline)
        observed: Fresh observation

    Returns:
        ChangeRecord for the collection
    """
    added, removed = calculate_count_delta(snapshot.total_items, observed.total_items)

    new_items: List[Item] = []
    removed_items: List[Item] = []
    if collection.track_items:
        new_items = find_new_items(snapshot.items, observed.items)
        removed_items = find_removed_items(snapshot.items, observed.items)

    return ChangeRecord(
        collection_key=collection.key,
        previous_total=snapshot.total_items,
        current_total=observed.total_items,
        added_count=added,
        removed_count=removed,
        new_items=new_items,
        removed_items=removed_items,
        first_observation=snapshot.is_baseline
    )
