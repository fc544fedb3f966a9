"""Pytest configuration and fixtures."""

import os

# Test configuration must be in place before sitechat.config is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RENDER_SEED_PAGE"] = "false"
os.environ["CRAWL_DELAY_MS"] = "0"
os.environ["REQUIRE_API_KEY"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"

from collections.abc import AsyncGenerator, Callable, Mapping  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

import sitechat.db.models  # noqa: E402, F401
from sitechat.core.ingestion.scan_service import ScanCoordinator, ScanOptions  # noqa: E402
from sitechat.core.ingestion.web_scraping.crawl_scheduler import CrawlConfig  # noqa: E402
from sitechat.core.ingestion.web_scraping.page_fetcher import (  # noqa: E402
    FetchConfig,
    PageFetcher,
)
from sitechat.core.ingestion.web_scraping.url_utils import normalize_url  # noqa: E402

SiteMap = Mapping[str, str | int | Exception]


def _site_transport(pages: SiteMap) -> httpx.MockTransport:
    """
    Serve a fake website.

    Args:
        pages: Absolute URL -> HTML body, HTTP status code, or exception to raise.
            Unknown URLs answer 404.
    """
    by_key = {normalize_url(url): page for url, page in pages.items()}

    def handler(request: httpx.Request) -> httpx.Response:
        page = by_key.get(normalize_url(str(request.url)))
        if isinstance(page, Exception):
            raise page
        if isinstance(page, int):
            return httpx.Response(page, request=request)
        if page is None:
            return httpx.Response(404, request=request)
        return httpx.Response(
            200, text=page, headers={"content-type": "text/html"}, request=request
        )

    return httpx.MockTransport(handler)


def _make_page(title: str, body: str, links: list[str] | None = None) -> str:
    """Small HTML document with a title, one paragraph and optional links."""
    anchors = "".join(f'<a href="{href}">More</a>' for href in links or [])
    return (
        f"<html><head><title>{title}</title></head>"
        f"<body><h1>{title}</h1><p>{body}</p><nav>{anchors}</nav></body></html>"
    )


@pytest.fixture
def fetch_config() -> FetchConfig:
    return FetchConfig(user_agent="sitechat-tests", timeout_seconds=5.0)


@pytest.fixture
def scan_options(fetch_config: FetchConfig) -> ScanOptions:
    """Fast crawl policy without rendering or politeness delay."""
    return ScanOptions(
        crawl=CrawlConfig(max_pages=20, delay_ms=0, time_budget_seconds=30.0, render_seed=False),
        fetch=fetch_config,
    )


@pytest.fixture
def fetcher_factory(fetch_config: FetchConfig) -> Callable[[SiteMap], Callable[[], PageFetcher]]:
    """Build a fetcher factory serving a fake website."""

    def build(pages: SiteMap) -> Callable[[], PageFetcher]:
        return lambda: PageFetcher(fetch_config, transport=_site_transport(pages))

    return build


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def coordinator() -> ScanCoordinator:
    return ScanCoordinator()


@pytest.fixture
def site_transport() -> Callable[[SiteMap], httpx.MockTransport]:
    return _site_transport


@pytest.fixture
def make_page() -> Callable[..., str]:
    return _make_page
