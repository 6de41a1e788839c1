"""
Message formatting for change notifications.

This module provides:
- The per-cycle summary message (totals, deltas, new item links per collection, top links)
- Per-bucket messages with a bounded link list
- Timestamp rendering in the configured timezone
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence
from zoneinfo import ZoneInfo

import structlog

from catalog.models import Item
from scheduler.models import CollectionOutcome, CollectionStatus, NotifierConfig

logger = structlog.get_logger(__name__)

SUMMARY_HEADER = "📦 STOCK UPDATE"
TOP_LINKS_HEADER = "🔗 Top Links"
NO_LINKS_TEXT = "No links found"
TIME_FORMAT = "%d/%m/%Y, %H:%M:%S"


class ReportGenerator:
    """Builder for the text messages sent after each cycle."""

    def __init__(self, config: NotifierConfig, timezone_name: str = "UTC"):
        """
        Initialize report generator.

        Args:
            config: Notifier configuration (link limits, removed-item reporting)
            timezone_name: IANA timezone used for the "Updated" line
        """
        self.config = config
        self.timezone = ZoneInfo(timezone_name)
        self.logger = logger.bind(component="report_generator")

    def build_summary(
        self,
        outcomes: Sequence[CollectionOutcome],
        generated_at: Optional[datetime] = None,
        top_links: Optional[Sequence[Item]] = None
    ) -> str:
        """
        Build the summary message for one cycle.

        Args:
            outcomes: Collection outcomes in declared order
            generated_at: Naive UTC time of the cycle (defaults to now)
            top_links: Items for the top links block; omitted when None

        Returns:
            Message text, possibly longer than one channel message
        """
        sections = [SUMMARY_HEADER]
        for index, outcome in enumerate(outcomes, start=1):
            sections.append(self._build_section(index, outcome))
        if top_links is not None and self.config.summary_link_limit:
            sections.append(self._build_top_links(top_links))
        sections.append(f"Updated: {self.format_time(generated_at or datetime.utcnow())}")
        return "\n\n".join(sections)

    def build_bucket_message(self, label: str, items: Sequence[Item], limit: int) -> str:
        """
        Build one bucket message.

        Args:
            label: Bucket display label
            items: All items in the bucket
            limit: Maximum number of links to list

        Returns:
            Message text with the full count in the header
        """
        lines = [f"{label} ({len(items)} products)", ""]
        lines.extend(self._format_links(items, limit))
        return "\n".join(lines)

    def format_time(self, moment: datetime) -> str:
        """Render a naive UTC or aware datetime in the configured timezone."""
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(self.timezone).strftime(TIME_FORMAT)

    def _build_section(self, index: int, outcome: CollectionOutcome) -> str:
        """Format one collection's block."""
        title = f"{index}. {outcome.collection.label}"

        if outcome.status == CollectionStatus.READ_FAILED or outcome.change is None:
            return f"{title}\n⚠️ Read failed, previous snapshot kept"

        change = outcome.change
        lines = [
            title,
            f"Total: {change.current_total}",
            f"Added: +{change.added_count}",
            f"Removed: -{change.removed_count}",
        ]

        if outcome.collection.track_items:
            lines.append(f"New items: {len(change.new_items)}")
            if change.new_items and self.config.summary_link_limit:
                lines.extend(self._format_links(change.new_items, self.config.summary_link_limit))
            if self.config.report_removed_items:
                lines.append(f"Gone items: {len(change.removed_items)}")

        if outcome.status == CollectionStatus.PERSIST_FAILED:
            lines.append("⚠️ Snapshot not saved, these items may be reported again")

        return "\n".join(lines)

    def _format_links(self, items: Sequence[Item], limit: int) -> List[str]:
        """Bullet list of links, with the overflow summarized as a count."""
        lines = [f"• {item.link}" for item in items[:limit]]
        remaining = len(items) - limit
        if remaining > 0:
            lines.append(f"…and {remaining} more")
        return lines

    def _build_top_links(self, items: Sequence[Item]) -> str:
        """Top links block, without an overflow line."""
        links = [f"• {item.link}" for item in items[:self.config.summary_link_limit]]
        return "\n".join([TOP_LINKS_HEADER] + (links or [NO_LINKS_TEXT]))
