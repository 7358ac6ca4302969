"""Bounded-concurrency page fetching and shared scan states."""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Iterable

from models import Page, TimedEvent
from utils.logging_config import get_logger

logger = get_logger("pagination")

DEFAULT_BATCH_SIZE = 10

PageFetcher = Callable[[int], Awaitable[Page]]


class ScanState(Enum):
    """States of a pagination scan."""

    SCANNING = "scanning"
    FOUND_BOUNDARY = "found_boundary"
    EXHAUSTED = "exhausted"


class BoundedConcurrencyBatcher:
    """Fetch pages in fixed-size concurrent batches.

    All requests of a batch are awaited together; the next batch starts
    only once the previous one has fully resolved. Results come back in
    page order regardless of completion order within a batch.
    """

    def __init__(self, fetch_page: PageFetcher, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._fetch_page = fetch_page
        self.batch_size = batch_size

    async def fetch_pages(self, page_numbers: Iterable[int]) -> list[Page]:
        """Fetch every page, failing the whole call if any page fails.

        Raises:
            UpstreamError: From the first failing page; results already
                gathered are discarded.
        """
        page_numbers = list(page_numbers)
        pages: list[Page] = []
        for start in range(0, len(page_numbers), self.batch_size):
            batch = page_numbers[start:start + self.batch_size]
            logger.debug("Fetching pages %d-%d", batch[0], batch[-1])
            pages.extend(await asyncio.gather(*(self._fetch_page(n) for n in batch)))
        return pages

    async def fetch_events(self, page_numbers: Iterable[int]) -> list[TimedEvent]:
        """All events of the given pages, concatenated in page order."""
        pages = await self.fetch_pages(page_numbers)
        return [event for page in pages for event in page.events]
