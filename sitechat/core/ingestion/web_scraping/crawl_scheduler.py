"""Crawl scheduler - bounded breadth-first crawl of a single website."""

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, List, Optional, Set

import structlog

from sitechat.core.ingestion.web_scraping.content_extractor import ContentExtractor
from sitechat.core.ingestion.web_scraping.page_fetcher import FetchedPage, PageFetcher
from sitechat.core.ingestion.web_scraping.url_utils import base_of, normalize_url
from sitechat.db.models.page_record import PageRecord
from sitechat.utils.exceptions import FetchError, RenderError

logger = structlog.get_logger(__name__)


class CrawlState(str, Enum):
    """Lifecycle of a crawl."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    FINISHED = "finished"


@dataclass
class CrawlConfig:
    """Crawl policy."""

    max_pages: int = 20
    delay_ms: int = 500
    time_budget_seconds: Optional[float] = None
    min_content_length: int = 50
    render_seed: bool = True


@dataclass
class CrawlResult:
    """Outcome of a crawl."""

    seed_url: str
    state: CrawlState
    records: List[PageRecord] = field(default_factory=list)
    visited: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    timed_out: bool = False

    @property
    def pages_scanned(self) -> List[str]:
        """URLs of the pages that produced a record, in crawl order."""
        return [record.url for record in self.records]

    @property
    def succeeded(self) -> bool:
        return bool(self.records)


class CrawlScheduler:
    """Breadth-first crawl driven one page at a time.

    The frontier, visited set and page cap are explicit state, so a crawl can be
    stepped, paused and resumed with ``run()``, or cancelled. Fetches are strictly
    sequential with a politeness delay between them.

    Only the seed page is rendered in a headless browser (to pick up links that a
    script-driven page builds at runtime); every other page uses a static fetch.
    """

    def __init__(
        self,
        seed_url: str,
        fetcher: PageFetcher,
        extractor: Optional[ContentExtractor] = None,
        config: Optional[CrawlConfig] = None,
    ):
        """Initialize a crawl rooted at ``seed_url``."""
        self.seed_url = seed_url.strip()
        self.fetcher = fetcher
        self.extractor = extractor or ContentExtractor()
        self.config = config or CrawlConfig()

        self.origin = base_of(self.seed_url)
        self._seed_key = normalize_url(self.seed_url)

        self.frontier: Deque[str] = deque([self.seed_url])
        self.queued: Set[str] = {self._seed_key}
        self.visited: Set[str] = set()
        self.visit_order: List[str] = []
        self.records: List[PageRecord] = []
        self.failures: Dict[str, str] = {}

        self.state = CrawlState.IDLE
        self.timed_out = False
        self._fetch_count = 0
        self._elapsed = 0.0
        self._pause_requested = False

    @property
    def is_exhausted(self) -> bool:
        """No more pages may be visited: empty frontier or page cap reached."""
        return not self.frontier or len(self.visited) >= self.config.max_pages

    def pause(self) -> None:
        """Stop ``run()`` after the page currently being processed."""
        if self.state == CrawlState.RUNNING:
            self._pause_requested = True

    def cancel(self) -> None:
        """Stop the crawl permanently after the page currently being processed."""
        if self.state not in (CrawlState.FINISHED, CrawlState.CANCELLED):
            logger.info("crawl_cancel_requested", seed_url=self.seed_url)
            self.state = CrawlState.CANCELLED

    def result(self) -> CrawlResult:
        return CrawlResult(
            seed_url=self.seed_url,
            state=self.state,
            records=list(self.records),
            visited=list(self.visit_order),
            failures=dict(self.failures),
            timed_out=self.timed_out,
        )

    async def run(self) -> CrawlResult:
        """Crawl until the frontier is exhausted, the cap or time budget is hit,
        or the crawl is paused or cancelled.

        Returns:
            CrawlResult snapshot; call ``run()`` again to resume a paused crawl
        """
        if self.state in (CrawlState.FINISHED, CrawlState.CANCELLED):
            return self.result()

        self.state = CrawlState.RUNNING
        self._pause_requested = False
        resumed_at = time.monotonic()
        logger.info("crawl_started", seed_url=self.seed_url, max_pages=self.config.max_pages)

        try:
            while self.state == CrawlState.RUNNING:
                if self.is_exhausted:
                    self.state = CrawlState.FINISHED
                    break

                remaining = self._remaining_budget(resumed_at)
                if remaining is not None and remaining <= 0:
                    self._finish_out_of_time()
                    break

                try:
                    await asyncio.wait_for(self.step(), timeout=remaining)
                except asyncio.TimeoutError:
                    self._finish_out_of_time()
                    break

                if self._pause_requested and self.state == CrawlState.RUNNING:
                    self.state = CrawlState.PAUSED
        finally:
            self._elapsed += time.monotonic() - resumed_at

        logger.info(
            "crawl_stopped",
            seed_url=self.seed_url,
            state=self.state.value,
            visited=len(self.visited),
            records=len(self.records),
            failures=len(self.failures),
            timed_out=self.timed_out,
        )
        return self.result()

    async def step(self) -> Optional[PageRecord]:
        """Process the next frontier entry.

        Returns:
            The PageRecord produced, or None if the page was skipped, failed or too short
        """
        if self.is_exhausted or self.state == CrawlState.CANCELLED:
            return None

        url = self.frontier.popleft()
        key = normalize_url(url)
        self.queued.discard(key)
        if key in self.visited:
            return None

        self.visited.add(key)
        self.visit_order.append(key)

        if self._fetch_count and self.config.delay_ms:
            await asyncio.sleep(self.config.delay_ms / 1000)
        self._fetch_count += 1

        is_seed = key == self._seed_key
        page = await self._fetch(url, is_seed)
        if page is None:
            return None

        extracted = self.extractor.extract(page.final_url, page.html, self.origin)
        links = list(extracted.links)
        if page.rendered:
            links.extend(
                self.extractor.filter_links(page.discovered_links, page.final_url, self.origin)
            )

        content = extracted.content
        record = None
        if len(content) > self.config.min_content_length:
            record = PageRecord(url=url, title=extracted.title, content=content)
            self.records.append(record)
            logger.info("crawl_page_recorded", url=url, content_length=len(content))
        else:
            logger.debug("crawl_page_too_short", url=url, content_length=len(content))

        # A rendered seed always seeds the frontier, even when its own text is thin
        if record is not None or page.rendered:
            self._enqueue(links)

        return record

    async def _fetch(self, url: str, is_seed: bool) -> Optional[FetchedPage]:
        if is_seed and self.config.render_seed and self.fetcher.can_render:
            try:
                return await self.fetcher.fetch_rendered(url)
            except RenderError as e:
                logger.warning("crawl_render_failed_using_static", url=url, error=str(e))

        try:
            return await self.fetcher.fetch_static(url)
        except FetchError as e:
            self.failures[url] = e.reason
            logger.warning("crawl_page_fetch_failed", url=url, reason=e.reason)
            return None

    def _enqueue(self, links: List[str]) -> None:
        added = 0
        for link in links:
            key = normalize_url(link)
            if key in self.visited or key in self.queued:
                continue
            self.queued.add(key)
            self.frontier.append(key)
            added += 1
        if added:
            logger.debug("crawl_links_enqueued", added=added, frontier=len(self.frontier))

    def _remaining_budget(self, resumed_at: float) -> Optional[float]:
        if self.config.time_budget_seconds is None:
            return None
        spent = self._elapsed + (time.monotonic() - resumed_at)
        return self.config.time_budget_seconds - spent

    def _finish_out_of_time(self) -> None:
        logger.warning(
            "crawl_time_budget_exhausted",
            seed_url=self.seed_url,
            budget_seconds=self.config.time_budget_seconds,
        )
        self.timed_out = True
        self.state = CrawlState.FINISHED
