"""
HTTP catalog reader for tracked listing pages.
Fetches a listing with retry logic and extracts the total count and product entries.
"""

import asyncio
import re
from typing import Dict, List, Optional
from urllib.parse import urldefrag, urljoin

import httpx
import structlog
from bs4 import BeautifulSoup

from scheduler.models import ReaderConfig
from utilities.exceptions import ReadFailure
from utilities.logger import CycleLogger
from .models import Item, ObservedState, TrackedCollection, extract_item_id

logger = structlog.get_logger(__name__)

COUNT_PATTERN = re.compile(r"\d+")


class CatalogReader:
    """Interface of a catalog reader: one observation per call."""

    async def read(self, collection: TrackedCollection) -> ObservedState:
        """
        Observe a tracked collection.

        Raises:
            ReadFailure: If no observed state can be produced
        """
        raise NotImplementedError


class HttpCatalogReader(CatalogReader):
    """
    Catalog reader for server-rendered listing pages.
    """

    def __init__(self, config: ReaderConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the reader.

        Args:
            config: Reader configuration
            transport: Optional httpx transport (used by tests)
        """
        self.config = config
        self.transport = transport
        self.read_logger = CycleLogger("catalog_reader")
        self.client_config = {
            "timeout": config.request_timeout,
            "headers": {
                "User-Agent": config.user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.5",
            },
            "follow_redirects": True,
        }

    async def read(self, collection: TrackedCollection) -> ObservedState:
        """
        Read a collection, retrying failed attempts.

        Args:
            collection: Collection to observe

        Returns:
            Fresh observed state

        Raises:
            ReadFailure: After ``1 + max_retries`` failed attempts
        """
        attempts = self.config.max_retries + 1
        last_failure: Optional[ReadFailure] = None

        for attempt in range(1, attempts + 1):
            try:
                return await self._read_once(collection)
            except ReadFailure as e:
                last_failure = e
                if attempt < attempts:
                    self.read_logger.log_retry(
                        collection.url, attempt, attempts, self.config.retry_delay
                    )
                    await asyncio.sleep(self.config.retry_delay)

        self.read_logger.log_error(
            f"Read failed after {attempts} attempts: {last_failure.reason}",
            url=collection.url
        )
        raise last_failure

    async def _read_once(self, collection: TrackedCollection) -> ObservedState:
        """Single fetch-and-parse attempt."""
        try:
            async with httpx.AsyncClient(transport=self.transport, **self.client_config) as client:
                response = await client.get(collection.url)
                response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ReadFailure(collection.key, f"{type(e).__name__}: {e}") from e

        state = self.parse_listing(response.text, str(response.url))
        if not state.items:
            raise ReadFailure(collection.key, "No products detected")

        logger.info(
            "Collection read",
            collection=collection.key,
            total_items=state.total_items,
            scraped=len(state.items)
        )
        return state

    def parse_listing(self, html: str, page_url: str) -> ObservedState:
        """
        Extract the total count and items from listing markup.

        Anchors without an extractable identifier are dropped. Repeated
        identifiers keep their first position; an empty title is filled from a
        later anchor of the same item.

        Args:
            html: Listing page markup
            page_url: URL the markup was served from, for resolving links

        Returns:
            Observed state for the page
        """
        soup = BeautifulSoup(html, "html.parser")
        items = self._extract_items(soup, page_url)
        total_items = self._extract_total(soup)
        if total_items is None:
            logger.debug("Total count not found, using scraped item count", url=page_url)
            total_items = len(items)
        return ObservedState(total_items=total_items, items=items)

    def _extract_total(self, soup: BeautifulSoup) -> Optional[int]:
        """Read the first integer of the count element."""
        element = soup.select_one(self.config.count_selector)
        if element is None:
            return None
        match = COUNT_PATTERN.search(element.get_text(strip=True).replace(",", ""))
        return int(match.group()) if match else None

    def _extract_items(self, soup: BeautifulSoup, page_url: str) -> List[Item]:
        """Build items from product anchors in page order."""
        by_id: Dict[str, Item] = {}

        for anchor in soup.select(self.config.item_selector):
            href = anchor.get("href")
            if not href:
                continue
            link, _ = urldefrag(urljoin(page_url, href))
            item_id = extract_item_id(link)
            if not item_id:
                continue

            title = self._extract_title(anchor)
            price = self._extract_text(anchor, self.config.price_selector)

            existing = by_id.get(item_id)
            if existing is None:
                by_id[item_id] = Item(id=item_id, title=title, price=price, link=link)
            elif (not existing.title and title) or (not existing.price and price):
                by_id[item_id] = existing.model_copy(update={
                    "title": existing.title or title,
                    "price": existing.price or price,
                })

        return list(by_id.values())

    def _extract_title(self, anchor) -> str:
        """Title from the name element, the title attribute, or the anchor text."""
        title = self._extract_text(anchor, self.config.title_selector)
        if title:
            return title
        attribute = anchor.get("title") or anchor.get("aria-label")
        if attribute:
            return attribute.strip()
        return anchor.get_text(" ", strip=True)

    def _extract_text(self, element, selector: str) -> str:
        """Extract text from a child element using a CSS selector."""
        if not selector:
            return ""
        child = element.select_one(selector)
        return child.get_text(" ", strip=True) if child else ""
