"""Unit tests for the bounded breadth-first crawl."""

import asyncio
from unittest.mock import AsyncMock, call

import httpx
import pytest

from sitechat.core.ingestion.web_scraping import crawl_scheduler
from sitechat.core.ingestion.web_scraping.crawl_scheduler import (
    CrawlConfig,
    CrawlScheduler,
    CrawlState,
)
from sitechat.core.ingestion.web_scraping.page_fetcher import FetchedPage, PageFetcher
from sitechat.utils.exceptions import RenderError

SEED = "https://example.com"
LONG_TEXT = "This paragraph has more than enough words to count as real page content."


class ScriptedFetcher:
    """Wraps a PageFetcher, recording calls and optionally rendering the seed."""

    def __init__(self, static: PageFetcher, rendered: FetchedPage | Exception | None = None):
        self.static = static
        self.rendered = rendered
        self.static_calls: list[str] = []
        self.render_calls: list[str] = []
        self.on_fetch = None

    @property
    def can_render(self) -> bool:
        return self.rendered is not None

    async def fetch_rendered(self, url: str) -> FetchedPage:
        self.render_calls.append(url)
        if isinstance(self.rendered, Exception):
            raise self.rendered
        return self.rendered

    async def fetch_static(self, url: str) -> FetchedPage:
        self.static_calls.append(url)
        if self.on_fetch is not None:
            await self.on_fetch(url)
        return await self.static.fetch_static(url)


def config(**overrides) -> CrawlConfig:
    values = {"max_pages": 20, "delay_ms": 0, "render_seed": False}
    values.update(overrides)
    return CrawlConfig(**values)


@pytest.mark.asyncio
async def test_single_page_site(fetcher_factory, make_page):
    pages = {SEED: make_page("Example Domain", LONG_TEXT)}
    async with fetcher_factory(pages)() as fetcher:
        result = await CrawlScheduler(SEED, fetcher, config=config()).run()

    assert result.state == CrawlState.FINISHED
    assert len(result.records) == 1
    assert result.records[0].url == SEED
    assert result.records[0].title == "Example Domain"
    assert LONG_TEXT in result.records[0].content
    assert result.pages_scanned == [SEED]
    assert result.succeeded is True


@pytest.mark.asyncio
async def test_breadth_first_order_and_deduplication(fetcher_factory, make_page):
    pages = {
        SEED: make_page("Home", LONG_TEXT, ["/a", "/b", "/a/#top", "https://other.com/x"]),
        "https://example.com/a": make_page("A", LONG_TEXT, ["/c", "/"]),
        "https://example.com/b": make_page("B", LONG_TEXT, ["/a", "/c"]),
        "https://example.com/c": make_page("C", LONG_TEXT),
    }
    async with fetcher_factory(pages)() as fetcher:
        result = await CrawlScheduler(SEED, fetcher, config=config()).run()

    assert result.visited == [
        "https://example.com/",
        "https://example.com/a",
        "https://example.com/b",
        "https://example.com/c",
    ]
    assert [r.title for r in result.records] == ["Home", "A", "B", "C"]


@pytest.mark.asyncio
async def test_page_cap_bounds_distinct_visits(fetcher_factory, make_page):
    links = [f"/page-{i}" for i in range(30)]
    pages = {SEED: make_page("Home", LONG_TEXT, links)}
    pages.update({f"{SEED}/page-{i}": make_page(f"Page {i}", LONG_TEXT) for i in range(30)})

    async with fetcher_factory(pages)() as fetcher:
        result = await CrawlScheduler(SEED, fetcher, config=config(max_pages=5)).run()

    assert len(result.visited) == 5
    assert len(set(result.visited)) == 5
    assert len(result.records) == 5


@pytest.mark.asyncio
async def test_short_pages_are_dropped_and_not_expanded(fetcher_factory, make_page):
    pages = {
        SEED: make_page("Home", LONG_TEXT, ["/thin"]),
        "https://example.com/thin": "<html><body><p>Tiny</p><a href='/hidden'>x</a></body></html>",
        "https://example.com/hidden": make_page("Hidden", LONG_TEXT),
    }
    async with fetcher_factory(pages)() as fetcher:
        result = await CrawlScheduler(SEED, fetcher, config=config()).run()

    assert [r.title for r in result.records] == ["Home"]
    assert "https://example.com/hidden" not in result.visited
    assert all(len(r.content) > 50 for r in result.records)


@pytest.mark.asyncio
async def test_fetch_failures_are_skipped(fetcher_factory, make_page):
    pages = {
        SEED: make_page("Home", LONG_TEXT, ["/broken", "/missing", "/ok"]),
        "https://example.com/broken": 500,
        "https://example.com/ok": make_page("OK", LONG_TEXT),
    }
    async with fetcher_factory(pages)() as fetcher:
        result = await CrawlScheduler(SEED, fetcher, config=config()).run()

    assert [r.title for r in result.records] == ["Home", "OK"]
    assert result.failures == {
        "https://example.com/broken": "HTTP 500",
        "https://example.com/missing": "HTTP 404",
    }


@pytest.mark.asyncio
async def test_unreachable_site_produces_no_records(fetcher_factory):
    async with fetcher_factory({SEED: httpx.ConnectTimeout("timed out")})() as fetcher:
        result = await CrawlScheduler(SEED, fetcher, config=config()).run()

    assert result.records == []
    assert result.succeeded is False
    assert result.failures == {SEED: "timeout"}


@pytest.mark.asyncio
async def test_rendered_seed_contributes_script_links(fetcher_factory, make_page):
    pages = {
        "https://example.com/pricing": make_page("Pricing", LONG_TEXT),
        "https://example.com/docs": make_page("Docs", LONG_TEXT),
    }
    rendered = FetchedPage(
        url=SEED,
        final_url=SEED + "/",
        html="<html><body><div id='root'></div></body></html>",
        discovered_links=["/pricing", "https://example.com/docs", "mailto:x@example.com"],
        rendered=True,
    )
    async with fetcher_factory(pages)() as static:
        fetcher = ScriptedFetcher(static, rendered=rendered)
        result = await CrawlScheduler(SEED, fetcher, config=config(render_seed=True)).run()

    assert fetcher.render_calls == [SEED]
    # The thin rendered seed still seeds the frontier
    assert [r.title for r in result.records] == ["Pricing", "Docs"]
    assert fetcher.static_calls == ["https://example.com/pricing", "https://example.com/docs"]


@pytest.mark.asyncio
async def test_render_failure_falls_back_to_static(fetcher_factory, make_page):
    pages = {SEED: make_page("Home", LONG_TEXT)}
    async with fetcher_factory(pages)() as static:
        fetcher = ScriptedFetcher(static, rendered=RenderError("browser missing"))
        result = await CrawlScheduler(SEED, fetcher, config=config(render_seed=True)).run()

    assert fetcher.render_calls == [SEED]
    assert fetcher.static_calls == [SEED]
    assert [r.title for r in result.records] == ["Home"]


@pytest.mark.asyncio
async def test_render_disabled_uses_static_fetch(fetcher_factory, make_page):
    pages = {SEED: make_page("Home", LONG_TEXT)}
    rendered = FetchedPage(url=SEED, final_url=SEED, html="", rendered=True)
    async with fetcher_factory(pages)() as static:
        fetcher = ScriptedFetcher(static, rendered=rendered)
        await CrawlScheduler(SEED, fetcher, config=config(render_seed=False)).run()

    assert fetcher.render_calls == []


@pytest.mark.asyncio
async def test_time_budget_stops_crawl(fetcher_factory, make_page):
    links = [f"/page-{i}" for i in range(10)]
    pages = {SEED: make_page("Home", LONG_TEXT, links)}
    pages.update({f"{SEED}/page-{i}": make_page(f"Page {i}", LONG_TEXT) for i in range(10)})

    async def slow(url: str) -> None:
        await asyncio.sleep(0.1)

    async with fetcher_factory(pages)() as static:
        fetcher = ScriptedFetcher(static)
        fetcher.on_fetch = slow
        result = await CrawlScheduler(
            SEED, fetcher, config=config(time_budget_seconds=0.35)
        ).run()

    assert result.timed_out is True
    assert result.state == CrawlState.FINISHED
    assert 1 <= len(result.records) < 11


@pytest.mark.asyncio
async def test_step_processes_one_page(fetcher_factory, make_page):
    pages = {
        SEED: make_page("Home", LONG_TEXT, ["/a"]),
        "https://example.com/a": make_page("A", LONG_TEXT),
    }
    async with fetcher_factory(pages)() as fetcher:
        scheduler = CrawlScheduler(SEED, fetcher, config=config())
        record = await scheduler.step()

        assert record is not None
        assert record.title == "Home"
        assert list(scheduler.frontier) == ["https://example.com/a"]
        assert scheduler.visited == {"https://example.com/"}


@pytest.mark.asyncio
async def test_pause_and_resume(fetcher_factory, make_page):
    pages = {
        SEED: make_page("Home", LONG_TEXT, ["/a", "/b"]),
        "https://example.com/a": make_page("A", LONG_TEXT),
        "https://example.com/b": make_page("B", LONG_TEXT),
    }
    async with fetcher_factory(pages)() as static:
        fetcher = ScriptedFetcher(static)
        scheduler = CrawlScheduler(SEED, fetcher, config=config())

        async def pause_on_a(url: str) -> None:
            if url.endswith("/a"):
                scheduler.pause()

        fetcher.on_fetch = pause_on_a
        paused = await scheduler.run()

        assert paused.state == CrawlState.PAUSED
        assert [r.title for r in paused.records] == ["Home", "A"]

        fetcher.on_fetch = None
        finished = await scheduler.run()

    assert finished.state == CrawlState.FINISHED
    assert [r.title for r in finished.records] == ["Home", "A", "B"]


@pytest.mark.asyncio
async def test_cancel_stops_after_current_page(fetcher_factory, make_page):
    pages = {
        SEED: make_page("Home", LONG_TEXT, ["/a", "/b"]),
        "https://example.com/a": make_page("A", LONG_TEXT),
        "https://example.com/b": make_page("B", LONG_TEXT),
    }
    async with fetcher_factory(pages)() as static:
        fetcher = ScriptedFetcher(static)
        scheduler = CrawlScheduler(SEED, fetcher, config=config())

        async def cancel_on_seed(url: str) -> None:
            scheduler.cancel()

        fetcher.on_fetch = cancel_on_seed
        result = await scheduler.run()

        assert result.state == CrawlState.CANCELLED
        assert [r.title for r in result.records] == ["Home"]

        # A cancelled crawl cannot be resumed
        again = await scheduler.run()
        assert again.state == CrawlState.CANCELLED
        assert fetcher.static_calls == [SEED]


def test_default_politeness_delay_is_half_a_second():
    assert CrawlConfig().delay_ms == 500


@pytest.mark.asyncio
async def test_politeness_delay_between_fetches_only(fetcher_factory, make_page, monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr(crawl_scheduler.asyncio, "sleep", sleep)
    pages = {
        SEED: make_page("Home", LONG_TEXT, ["/a", "/b"]),
        "https://example.com/a": make_page("A", LONG_TEXT),
        "https://example.com/b": make_page("B", LONG_TEXT),
    }
    async with fetcher_factory(pages)() as fetcher:
        result = await CrawlScheduler(SEED, fetcher, config=config(delay_ms=500)).run()

    assert len(result.visited) == 3
    # No pause before the first fetch, one before each later fetch
    assert sleep.await_args_list == [call(0.5), call(0.5)]
