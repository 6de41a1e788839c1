"""
Notification delivery for change alerts.

This module provides:
- Telegram Bot API channel
- Chunking of long messages at the channel's length limit
- Fixed pacing after every chunk and bounded retry per chunk
- Per-bucket alert messages for large restocks
"""

import asyncio
from typing import List, Optional, Sequence

import httpx
import structlog

from scheduler.models import Bucket, NotifierConfig
from scheduler.report_generator import ReportGenerator
from utilities.exceptions import DeliveryFailure

logger = structlog.get_logger(__name__)


def split_into_chunks(text: str, max_length: int) -> List[str]:
    """
    Split text into contiguous slices of at most ``max_length`` characters.

    Slices are cut on raw character positions, mid-word if need be.

    Args:
        text: Message text
        max_length: Channel length limit

    Returns:
        Chunks in order; empty list for empty text
    """
    if max_length < 1:
        raise ValueError("max_length must be positive")
    return [text[i:i + max_length] for i in range(0, len(text), max_length)]


class TelegramChannel:
    """Messaging channel backed by the Telegram Bot API ``sendMessage`` method."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        api_base: str = "https://api.telegram.org",
        timeout: float = 15.0,
        link_preview: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize Telegram channel.

        Args:
            bot_token: Bot token issued by BotFather
            chat_id: Recipient chat identifier
            api_base: Bot API base URL
            timeout: Per-request timeout in seconds
            link_preview: Whether Telegram should render link previews
            transport: Optional httpx transport (used by tests)
        """
        self.chat_id = chat_id
        self.url = f"{api_base.rstrip('/')}/bot{bot_token}/sendMessage"
        self.timeout = timeout
        self.link_preview = link_preview
        self.transport = transport

    async def send(self, text: str) -> None:
        """
        Send one message.

        Raises:
            httpx.HTTPError: On network failure or a non-2xx response
        """
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "disable_web_page_preview": not self.link_preview,
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()


class NotificationDispatcher:
    """Chunking, pacing and retrying sender for notification text."""

    def __init__(self, config: NotifierConfig, channel, report_generator: ReportGenerator):
        """
        Initialize notification dispatcher.

        Args:
            config: Notifier configuration
            channel: Object with an async ``send(text)`` that raises on failure
            report_generator: Formatter for bucket messages
        """
        self.config = config
        self.channel = channel
        self.report_generator = report_generator
        self.logger = logger.bind(component="notification_dispatcher")

    async def deliver(self, text: str) -> bool:
        """
        Deliver a message, split into chunks, in order.

        A chunk that exhausts its retries is logged and skipped; the remaining
        chunks are still sent.

        Args:
            text: Message text of any length

        Returns:
            True if every chunk was delivered
        """
        chunks = split_into_chunks(text, self.config.max_message_length)
        if not chunks:
            self.logger.debug("Nothing to deliver")
            return True

        delivered = 0
        for index, chunk in enumerate(chunks, start=1):
            try:
                await self._send_with_retry(chunk, index)
                delivered += 1
            except DeliveryFailure as e:
                self.logger.error(
                    "Chunk delivery abandoned",
                    chunk=index,
                    chunks=len(chunks),
                    attempts=e.attempts,
                    error=e.reason
                )
            await asyncio.sleep(self.config.send_delay_seconds)

        self.logger.info(
            "Message delivered" if delivered == len(chunks) else "Message partially delivered",
            chunks=len(chunks),
            delivered_chunks=delivered,
            length=len(text)
        )
        return delivered == len(chunks)

    async def deliver_buckets(
        self,
        buckets: Sequence[Bucket],
        per_bucket_limit: Optional[int] = None
    ) -> bool:
        """
        Send one message per non-empty bucket.

        Args:
            buckets: Classified buckets in display order
            per_bucket_limit: Links listed per bucket (defaults to the configured maximum)

        Returns:
            True if every bucket message was fully delivered
        """
        limit = per_bucket_limit
        if limit is None:
            limit = self.config.max_links_per_category
        all_delivered = True
        sent = 0

        for bucket in buckets:
            if not bucket.items:
                continue
            message = self.report_generator.build_bucket_message(bucket.label, bucket.items, limit)
            if not await self.deliver(message):
                all_delivered = False
            sent += 1

        self.logger.info("Bucket messages sent", buckets=sent, all_delivered=all_delivered)
        return all_delivered

    def should_split(self, new_item_count: int) -> bool:
        """Whether a cycle's new-item count warrants per-bucket messages."""
        return new_item_count >= self.config.category_send_threshold

    async def _send_with_retry(self, chunk: str, index: int) -> None:
        """
        Send one chunk, retrying with a fixed backoff.

        Raises:
            DeliveryFailure: After ``1 + retry_budget`` failed attempts
        """
        attempts = self.config.retry_budget + 1
        last_error = None

        for attempt in range(1, attempts + 1):
            try:
                await self.channel.send(chunk)
                return
            except Exception as e:
                last_error = e
                if attempt < attempts:
                    self.logger.warning(
                        "Retrying chunk send",
                        chunk=index,
                        attempt=attempt,
                        max_attempts=attempts,
                        delay_seconds=self.config.retry_delay_seconds,
                        error=str(e)
                    )
                    await asyncio.sleep(self.config.retry_delay_seconds)

        raise DeliveryFailure(index, attempts, str(last_error))
