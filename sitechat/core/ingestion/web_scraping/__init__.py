"""Website scraping module for SiteChat.

This module provides the knowledge-ingestion pipeline:
- Domain classification and URL normalization
- Static HTTP fetching and headless-browser rendering of the seed page
- Multi-signal text extraction from HTML
- Bounded breadth-first crawl scheduling
"""

from sitechat.core.ingestion.web_scraping.browser_pool import BrowserPool
from sitechat.core.ingestion.web_scraping.content_extractor import (
    ContentExtractor,
    ExtractedPage,
    ExtractionConfig,
)
from sitechat.core.ingestion.web_scraping.crawl_scheduler import (
    CrawlConfig,
    CrawlResult,
    CrawlScheduler,
    CrawlState,
)
from sitechat.core.ingestion.web_scraping.page_fetcher import (
    FetchConfig,
    FetchedPage,
    PageFetcher,
)
from sitechat.core.ingestion.web_scraping.url_utils import (
    base_of,
    is_in_domain,
    normalize_url,
    validate_site_url,
)

__all__ = [
    "BrowserPool",
    "ContentExtractor",
    "ExtractedPage",
    "ExtractionConfig",
    "CrawlConfig",
    "CrawlResult",
    "CrawlScheduler",
    "CrawlState",
    "FetchConfig",
    "FetchedPage",
    "PageFetcher",
    "base_of",
    "is_in_domain",
    "normalize_url",
    "validate_site_url",
]
