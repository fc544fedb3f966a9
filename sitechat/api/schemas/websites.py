"""Pydantic schemas for website scan endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from sitechat.api.schemas.base import CamelModel
from sitechat.db.models.page_record import PageRecord
from sitechat.db.models.website import WebsiteStatus


class ScanRequest(CamelModel):
    """Request to scan a website."""

    url: str = Field(..., min_length=1, max_length=2048, description="Website URL to crawl")

    model_config = {
        "json_schema_extra": {"examples": [{"url": "https://example.com"}]},
    }


class WebsiteResponse(CamelModel):
    """Website with its scan status and extracted content."""

    id: UUID
    owner_id: str
    url: str
    status: WebsiteStatus
    pages_scanned: list[str]
    content: list[PageRecord]
    created_at: datetime
    updated_at: datetime


class WebsiteSummary(CamelModel):
    """Website without its content, for list responses."""

    id: UUID
    url: str
    status: WebsiteStatus
    pages_scanned: list[str]
    created_at: datetime
    updated_at: datetime
