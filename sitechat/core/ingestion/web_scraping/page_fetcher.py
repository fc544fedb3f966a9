"""Page fetching - static HTTP fetch and headless-browser rendering."""

from dataclasses import dataclass, field
from types import TracebackType
from typing import List, Optional

import httpx
import structlog

from sitechat.core.ingestion.web_scraping.browser_pool import BrowserPool
from sitechat.utils.exceptions import FetchError, RenderError

logger = structlog.get_logger(__name__)

# Raw hrefs from the rendered DOM, including anchors injected by client-side scripts
_ANCHOR_HREFS_JS = """
() => Array.from(document.querySelectorAll('a[href]')).map(a => a.getAttribute('href'))
"""


@dataclass
class FetchConfig:
    """Configuration for page fetching."""

    user_agent: str
    timeout_seconds: float = 15.0
    render_timeout_ms: int = 30000
    render_grace_ms: int = 2000


@dataclass
class FetchedPage:
    """Result of fetching one page, independent of the strategy used."""

    url: str
    final_url: str
    html: str
    discovered_links: List[str] = field(default_factory=list)
    rendered: bool = False


class PageFetcher:
    """Fetch pages with a plain HTTP GET or by rendering them in a headless browser.

    Use as an async context manager so the HTTP client is closed when the crawl ends.
    Neither strategy retries: a failure is final for that URL within one crawl.
    """

    def __init__(
        self,
        config: FetchConfig,
        browser_pool: Optional[BrowserPool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize fetcher.

        Args:
            config: Fetch configuration
            browser_pool: Pool used for rendered fetches; without one rendering is unavailable
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self.config = config
        self.browser_pool = browser_pool
        self._client = httpx.AsyncClient(
            headers={
                "User-Agent": config.user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.9",
            },
            timeout=httpx.Timeout(config.timeout_seconds),
            follow_redirects=True,
            transport=transport,
        )

    @property
    def can_render(self) -> bool:
        return self.browser_pool is not None

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_static(self, url: str) -> FetchedPage:
        """Fetch a page with a single HTTP GET.

        Links are not parsed here; the content extractor discovers them from the HTML.

        Raises:
            FetchError: On network errors, timeouts and non-2xx responses
        """
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise FetchError(url, "timeout") from e
        except httpx.HTTPError as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise FetchError(url, f"HTTP {response.status_code}", status_code=response.status_code)

        logger.debug("static_fetch_complete", url=url, status_code=response.status_code)
        return FetchedPage(url=url, final_url=str(response.url), html=response.text)

    async def fetch_rendered(self, url: str) -> FetchedPage:
        """Render a page in an isolated browser context and read the final DOM.

        Waits for the network to go idle plus a short grace period so
        client-side rendering can finish.

        Raises:
            RenderError: If no browser is available, it fails to launch, or navigation fails
        """
        if self.browser_pool is None:
            raise RenderError("No browser pool configured")

        try:
            async with self.browser_pool.page() as page:
                response = await page.goto(
                    url, wait_until="networkidle", timeout=self.config.render_timeout_ms
                )
                if response is not None and response.status >= 400:
                    raise RenderError(f"HTTP {response.status} while rendering {url}")

                await page.wait_for_timeout(self.config.render_grace_ms)

                html = await page.content()
                hrefs = await page.evaluate(_ANCHOR_HREFS_JS)
                final_url = page.url
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f"Rendering {url} failed: {e}") from e

        logger.debug("rendered_fetch_complete", url=url, links=len(hrefs))
        return FetchedPage(
            url=url,
            final_url=final_url,
            html=html,
            discovered_links=[h for h in hrefs if isinstance(h, str)],
            rendered=True,
        )
