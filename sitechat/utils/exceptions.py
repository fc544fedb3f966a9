"""Custom exceptions for SiteChat application."""


class SiteChatError(Exception):
    """Base exception for all SiteChat errors."""

    pass


class FetchError(SiteChatError):
    """Exception raised when a single page cannot be fetched.

    Page-scoped: the crawl skips the page and continues.
    """

    def __init__(self, url: str, reason: str, status_code: int | None = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class RenderError(SiteChatError):
    """Exception raised when headless-browser rendering fails.

    The crawl falls back to a static fetch for the affected page.
    """

    pass


class InvalidUrlError(SiteChatError):
    """Exception raised when a submitted website URL is malformed."""

    pass


class NotFoundError(SiteChatError):
    """Exception raised when a website or chatbot does not exist for the caller."""

    def __init__(self, resource: str, resource_id: object):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} not found")
