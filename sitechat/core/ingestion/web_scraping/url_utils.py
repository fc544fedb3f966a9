"""URL classification and normalization for domain-bounded crawling."""

import logging
from urllib.parse import urljoin, urlparse, urlunparse

logger = logging.getLogger(__name__)

EXCLUDED_SCHEMES = ("javascript:", "mailto:", "tel:")


def base_of(url: str) -> str:
    """Return the origin (scheme + host) of a URL.

    The origin is the crawl's domain boundary.

    Args:
        url: Absolute URL

    Returns:
        Origin such as ``https://example.com``, or an empty string for malformed URLs
    """
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return ""
    if not parsed.scheme or not parsed.netloc:
        return ""
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


def is_in_domain(href: str | None, origin: str, page_url: str | None = None) -> bool:
    """Decide whether a link stays inside the crawl's domain.

    Args:
        href: Raw href attribute value
        origin: Crawl origin produced by :func:`base_of`
        page_url: URL of the page the link was found on (relative hrefs resolve against it)

    Returns:
        True only if the resolved host equals the origin's host
    """
    if not href:
        return False

    href = href.strip()
    if not href or href.startswith("#"):
        return False
    if href.lower().startswith(EXCLUDED_SCHEMES):
        return False

    try:
        resolved = urlparse(urljoin(page_url or origin, href))
        origin_host = urlparse(origin).netloc.lower()
    except ValueError:
        return False

    if resolved.scheme.lower() not in ("http", "https"):
        return False
    return bool(origin_host) and resolved.netloc.lower() == origin_host


def normalize_url(href: str, page_url: str | None = None) -> str:
    """Canonicalize a link so equal pages share one deduplication key.

    Resolves against ``page_url``, drops the fragment, lowercases scheme and host,
    and removes trailing slashes from the path. The origin root is always
    rendered as ``scheme://host/``.

    Args:
        href: Raw or absolute URL
        page_url: URL of the page the link was found on

    Returns:
        Canonical absolute URL, or ``href`` unchanged if it cannot be parsed
    """
    try:
        absolute = urljoin(page_url, href.strip()) if page_url else href.strip()
        parsed = urlparse(absolute)
    except ValueError:
        logger.debug(f"Leaving malformed URL unnormalized: {href!r}")
        return href

    if not parsed.scheme or not parsed.netloc:
        return href

    path = parsed.path.rstrip("/") or "/"

    return urlunparse(
        (
            parsed.scheme.lower(),
            parsed.netloc.lower(),
            path,
            parsed.params,
            parsed.query,
            "",
        )
    )


def validate_site_url(url: str) -> str | None:
    """Check that a submitted URL can seed a crawl.

    Args:
        url: User-submitted website URL

    Returns:
        The stripped URL if it is an absolute http(s) URL, otherwise None
    """
    if not url:
        return None
    url = url.strip()
    try:
        parsed = urlparse(url)
        # Accessing .port validates the port component
        parsed.port
    except ValueError:
        return None
    if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
        return None
    if any(ch.isspace() for ch in url):
        return None
    return url
