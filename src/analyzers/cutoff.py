"""Binary search for the page of a time-ordered listing that holds a cutoff.

Each probe looks only at the oldest and newest event of one page:

- empty page: past the end of data, search lower page numbers;
- newest <= cutoff: the whole page is out of window, search newer pages;
- oldest > cutoff: the whole page is in window, remember it and search
  older pages;
- otherwise the page straddles the cutoff and the search stops.

Comparisons are strict (an event at exactly the cutoff is out of window),
matching the final count in ``analyzers.velocity``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from analyzers.pagination import PageFetcher, ScanState
from models import Page, PageOrder
from utils.logging_config import get_logger

logger = get_logger("cutoff")


@dataclass
class CutoffSearch:
    """Outcome of a cutoff search.

    ``page`` is the in-window page nearest the cutoff: the straddling page
    when one exists, otherwise the oldest fully in-window page. It is None
    (state EXHAUSTED) when no page holds an in-window event.
    """

    page: Optional[int]
    state: ScanState
    probes: int = 0
    fetched: dict[int, Page] = field(default_factory=dict)


class CutoffLocator:
    """Locate the cutoff page with O(log P) page fetches."""

    def __init__(
        self,
        fetch_page: PageFetcher,
        total_pages: int,
        order: PageOrder = PageOrder.OLDEST_FIRST,
    ):
        self._fetch_page = fetch_page
        self.total_pages = total_pages
        self.order = order

    def _toward_newer(self, lo: int, hi: int, mid: int) -> tuple[int, int]:
        if self.order is PageOrder.OLDEST_FIRST:
            return mid + 1, hi
        return lo, mid - 1

    def _toward_older(self, lo: int, hi: int, mid: int) -> tuple[int, int]:
        if self.order is PageOrder.OLDEST_FIRST:
            return lo, mid - 1
        return mid + 1, hi

    async def locate(self, cutoff: datetime) -> CutoffSearch:
        lo, hi = 1, self.total_pages
        best: Optional[int] = None
        fetched: dict[int, Page] = {}
        state = ScanState.SCANNING

        while state is ScanState.SCANNING:
            if lo > hi:
                state = ScanState.FOUND_BOUNDARY if best is not None else ScanState.EXHAUSTED
                break

            mid = (lo + hi) // 2
            page = await self._fetch_page(mid)
            fetched[mid] = page

            if page.is_empty:
                hi = mid - 1
                continue

            if page.newest <= cutoff:
                lo, hi = self._toward_newer(lo, hi, mid)
            elif page.oldest > cutoff:
                best = mid
                lo, hi = self._toward_older(lo, hi, mid)
            else:
                best = mid
                state = ScanState.FOUND_BOUNDARY
                break

            # Nothing lies past a short page.
            if page.is_short:
                hi = min(hi, mid)

        logger.debug(
            "Cutoff search over %d pages: page=%s state=%s probes=%d",
            self.total_pages, best, state.value, len(fetched),
        )
        return CutoffSearch(page=best, state=state, probes=len(fetched), fetched=fetched)
