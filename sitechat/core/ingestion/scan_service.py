"""Website scan service - runs a crawl and records the outcome on the Website."""

import asyncio
from collections.abc import Callable, Coroutine
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sitechat.config import Settings, settings
from sitechat.core.ingestion.web_scraping.browser_pool import BrowserPool
from sitechat.core.ingestion.web_scraping.crawl_scheduler import (
    CrawlConfig,
    CrawlScheduler,
)
from sitechat.core.ingestion.web_scraping.page_fetcher import FetchConfig, PageFetcher
from sitechat.core.ingestion.web_scraping.url_utils import validate_site_url
from sitechat.db.models.website import Website, WebsiteStatus
from sitechat.db.repositories.website_repository import WebsiteRepository
from sitechat.utils.exceptions import InvalidUrlError, NotFoundError

logger = structlog.get_logger(__name__)

FetcherFactory = Callable[[], PageFetcher]


@dataclass
class ScanOptions:
    """Policy for a single scan."""

    crawl: CrawlConfig
    fetch: FetchConfig

    @classmethod
    def from_settings(cls, config: Settings) -> "ScanOptions":
        return cls(
            crawl=CrawlConfig(
                max_pages=config.crawl_max_pages,
                delay_ms=config.crawl_delay_ms,
                time_budget_seconds=config.crawl_time_budget_seconds,
                min_content_length=config.min_page_content_length,
                render_seed=config.render_seed_page,
            ),
            fetch=FetchConfig(
                user_agent=config.user_agent,
                timeout_seconds=config.fetch_timeout_seconds,
                render_timeout_ms=config.render_timeout_ms,
                render_grace_ms=config.render_grace_ms,
            ),
        )


class ScanCoordinator:
    """Serializes scans per Website and tracks scans running in the background.

    Two scans of the same Website never interleave their status writes: the
    second waits for the first to finish. A Website can have several background
    tasks at once (one crawling, others queued on its lock); cancelling the
    Website cancels all of them.
    """

    def __init__(self) -> None:
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._lock_users: dict[UUID, int] = {}
        self._tasks: dict[UUID, set[asyncio.Task]] = {}  # type: ignore[type-arg]

    @asynccontextmanager
    async def exclusive(self, website_id: UUID) -> AsyncIterator[None]:
        """Hold the scan lock of one Website.

        The lock is dropped once no scan holds it or waits for it.
        """
        lock = self._locks.setdefault(website_id, asyncio.Lock())
        self._lock_users[website_id] = self._lock_users.get(website_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[website_id] -= 1
            if not self._lock_users[website_id]:
                del self._lock_users[website_id]
                del self._locks[website_id]

    def _pending(self, website_id: UUID) -> list[asyncio.Task]:  # type: ignore[type-arg]
        return [task for task in self._tasks.get(website_id, ()) if not task.done()]

    def is_running(self, website_id: UUID) -> bool:
        return bool(self._pending(website_id))

    @property
    def active_scans(self) -> int:
        """Number of Websites with a background scan running or queued."""
        return sum(1 for website_id in self._tasks if self._pending(website_id))

    def start(self, website_id: UUID, coro_factory: Callable[[], Coroutine[Any, Any, None]]) -> None:
        """Run a scan in a background task."""
        task = asyncio.create_task(coro_factory())
        tasks = self._tasks.setdefault(website_id, set())
        tasks.add(task)

        def _forget(finished: asyncio.Task) -> None:  # type: ignore[type-arg]
            tasks.discard(finished)
            if not tasks and self._tasks.get(website_id) is tasks:
                del self._tasks[website_id]

        task.add_done_callback(_forget)

    def cancel(self, website_id: UUID) -> bool:
        """Cancel every background scan of a Website, running or queued.

        Returns:
            True if at least one scan was cancelled
        """
        pending = self._pending(website_id)
        for task in pending:
            task.cancel()
        if pending:
            logger.info("scan_cancel_requested", website_id=str(website_id), tasks=len(pending))
        return bool(pending)

    async def shutdown(self) -> None:
        """Cancel all background scans and wait for them to finish."""
        tasks = [task for website_id in list(self._tasks) for task in self._pending(website_id)]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


class ScanService:
    """Scan websites for a user.

    Re-submitting a URL the user already scanned reuses the same Website and
    overwrites its status and content.
    """

    def __init__(
        self,
        session: AsyncSession,
        coordinator: ScanCoordinator,
        browser_pool: Optional[BrowserPool] = None,
        options: Optional[ScanOptions] = None,
        fetcher_factory: Optional[FetcherFactory] = None,
    ):
        """Initialize scan service.

        Args:
            session: Database session
            coordinator: Per-website lock and background task registry
            browser_pool: Pool for rendering the seed page (None disables rendering)
            options: Crawl and fetch policy; defaults to application settings
            fetcher_factory: Builds a fresh PageFetcher per crawl
        """
        self.session = session
        self.coordinator = coordinator
        self.browser_pool = browser_pool
        self.options = options or ScanOptions.from_settings(settings)
        self.fetcher_factory = fetcher_factory or self._default_fetcher
        self.websites = WebsiteRepository(session)

    def _default_fetcher(self) -> PageFetcher:
        return PageFetcher(self.options.fetch, browser_pool=self.browser_pool)

    async def prepare(self, owner_id: str, url: str) -> Website:
        """Validate the URL and find or create the Website for (owner, url).

        Raises:
            InvalidUrlError: If the URL is not an absolute http(s) URL
        """
        valid_url = validate_site_url(url)
        if valid_url is None:
            logger.warning("scan_rejected_invalid_url", url=url)
            raise InvalidUrlError(f"Invalid website URL: {url!r}")

        website = await self.websites.get_by_owner_and_url(owner_id, valid_url)
        if website is None:
            website = await self.websites.create_website(owner_id, valid_url)
            logger.info("website_created", website_id=str(website.id), url=valid_url)
        else:
            logger.info("website_rescan", website_id=str(website.id), url=valid_url)
        return website

    async def scan_website(self, owner_id: str, url: str) -> Website:
        """Scan a website and wait for the crawl to finish.

        Args:
            owner_id: Owning user ID
            url: Seed URL

        Returns:
            The Website in ``completed`` or ``failed`` state

        Raises:
            InvalidUrlError: If the URL is malformed (before any network activity)
        """
        website = await self.prepare(owner_id, url)
        async with self.coordinator.exclusive(website.id):
            return await self.run_scan(website)

    async def run_scan(self, website: Website) -> Website:
        """Crawl a prepared Website and store the outcome.

        Crawl errors never propagate: they resolve to ``failed``. Cancellation
        marks the Website failed and is re-raised.
        """
        await self.websites.set_status(website, WebsiteStatus.SCANNING)
        await self.session.commit()

        log = logger.bind(website_id=str(website.id), url=website.url)
        log.info("scan_started")

        try:
            async with self.fetcher_factory() as fetcher:
                scheduler = CrawlScheduler(website.url, fetcher, config=self.options.crawl)
                result = await scheduler.run()
        except asyncio.CancelledError:
            log.warning("scan_cancelled")
            await self.websites.store_scan_result(website, [], WebsiteStatus.FAILED)
            await self.session.commit()
            raise
        except Exception as e:
            log.error("scan_failed", error=str(e), error_type=type(e).__name__)
            website = await self.websites.store_scan_result(website, [], WebsiteStatus.FAILED)
            await self.session.commit()
            return website

        if result.succeeded:
            status = WebsiteStatus.COMPLETED
            log.info(
                "scan_completed",
                pages=len(result.records),
                visited=len(result.visited),
                failures=len(result.failures),
                timed_out=result.timed_out,
            )
        else:
            status = WebsiteStatus.FAILED
            log.warning("scan_produced_no_pages", visited=len(result.visited), failures=len(result.failures))

        website = await self.websites.store_scan_result(website, result.records, status)
        await self.session.commit()
        return website

    async def start_background_scan(
        self, owner_id: str, url: str, session_factory: async_sessionmaker[AsyncSession]
    ) -> Website:
        """Mark the Website as scanning and crawl it in a background task.

        The background task uses its own database session.

        Returns:
            The Website in ``scanning`` state
        """
        website = await self.prepare(owner_id, url)
        website = await self.websites.set_status(website, WebsiteStatus.SCANNING)
        await self.session.commit()
        website_id = website.id

        async def _background() -> None:
            async with self.coordinator.exclusive(website_id):
                async with session_factory() as session:
                    service = ScanService(
                        session,
                        self.coordinator,
                        browser_pool=self.browser_pool,
                        options=self.options,
                        fetcher_factory=self.fetcher_factory,
                    )
                    target = await service.websites.get_by_id(website_id)
                    if target is None:
                        logger.warning("scan_target_deleted", website_id=str(website_id))
                        return
                    await service.run_scan(target)

        self.coordinator.start(website_id, _background)
        return website

    async def cancel_scan(self, owner_id: str, website_id: UUID) -> Website:
        """Cancel a background scan of one of the user's websites.

        Raises:
            NotFoundError: If the website does not exist for this user
        """
        website = await self.get_website(owner_id, website_id)
        self.coordinator.cancel(website_id)
        return website

    async def get_website(self, owner_id: str, website_id: UUID) -> Website:
        """
        Get one of the user's websites.

        Raises:
            NotFoundError: If it does not exist or belongs to someone else
        """
        website = await self.websites.get_owned(website_id, owner_id)
        if website is None:
            raise NotFoundError("Website", website_id)
        return website

    async def list_websites(self, owner_id: str) -> list[Website]:
        return await self.websites.list_by_owner(owner_id)

    async def delete_website(self, owner_id: str, website_id: UUID) -> None:
        """Delete a website, stopping its background scan if one is running."""
        website = await self.get_website(owner_id, website_id)
        self.coordinator.cancel(website_id)
        await self.websites.delete_website(website)
        logger.info("website_deleted", website_id=str(website_id))
