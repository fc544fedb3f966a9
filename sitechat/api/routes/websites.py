"""Website scan endpoints."""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Response, status

from sitechat.api.dependencies import get_scan_service
from sitechat.api.schemas.websites import ScanRequest, WebsiteResponse, WebsiteSummary
from sitechat.api.security import get_owner_id, verify_api_key
from sitechat.config import settings
from sitechat.core.ingestion.scan_service import ScanService
from sitechat.db.session import AsyncSessionLocal

logger = structlog.get_logger(__name__)
router = APIRouter(
    prefix="/websites",
    tags=["websites"],
    dependencies=[Depends(verify_api_key)],
)


@router.post(
    "",
    response_model=WebsiteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Scan a website",
    description="Crawl a website and store its text content",
    responses={
        401: {"description": "Unauthorized (missing user or invalid API key)"},
        422: {"description": "Malformed website URL"},
    },
)
async def scan_website(
    request: ScanRequest,
    owner_id: str = Depends(get_owner_id),  # noqa: B008
    service: ScanService = Depends(get_scan_service),  # noqa: B008
) -> WebsiteResponse:
    """
    Scan a website for the calling user.

    Waits for the crawl and returns the Website in ``completed`` or ``failed``
    state. With background scanning enabled it returns immediately with status
    ``scanning``; poll ``GET /websites/{id}`` for the outcome.
    """
    logger.info("scan_website_request", url=request.url, background=settings.scan_in_background)

    if settings.scan_in_background:
        website = await service.start_background_scan(owner_id, request.url, AsyncSessionLocal)
    else:
        website = await service.scan_website(owner_id, request.url)

    logger.info(
        "scan_website_complete",
        website_id=str(website.id),
        status=website.status.value,
        pages=len(website.pages_scanned),
    )
    return WebsiteResponse.model_validate(website)


@router.get(
    "",
    response_model=list[WebsiteSummary],
    summary="List websites",
    description="List the calling user's websites, oldest first",
)
async def list_websites(
    owner_id: str = Depends(get_owner_id),  # noqa: B008
    service: ScanService = Depends(get_scan_service),  # noqa: B008
) -> list[WebsiteSummary]:
    websites = await service.list_websites(owner_id)
    return [WebsiteSummary.model_validate(website) for website in websites]


@router.get(
    "/{website_id}",
    response_model=WebsiteResponse,
    summary="Get website",
    description="Retrieve a website with its scan status and extracted content",
    responses={404: {"description": "Website not found"}},
)
async def get_website(
    website_id: UUID,
    owner_id: str = Depends(get_owner_id),  # noqa: B008
    service: ScanService = Depends(get_scan_service),  # noqa: B008
) -> WebsiteResponse:
    website = await service.get_website(owner_id, website_id)
    return WebsiteResponse.model_validate(website)


@router.post(
    "/{website_id}/cancel",
    response_model=WebsiteSummary,
    summary="Cancel scan",
    description="Cancel a scan running in the background",
    responses={404: {"description": "Website not found"}},
)
async def cancel_scan(
    website_id: UUID,
    owner_id: str = Depends(get_owner_id),  # noqa: B008
    service: ScanService = Depends(get_scan_service),  # noqa: B008
) -> WebsiteSummary:
    logger.info("cancel_scan_request", website_id=str(website_id))
    website = await service.cancel_scan(owner_id, website_id)
    return WebsiteSummary.model_validate(website)


@router.delete(
    "/{website_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete website",
    responses={404: {"description": "Website not found"}},
)
async def delete_website(
    website_id: UUID,
    owner_id: str = Depends(get_owner_id),  # noqa: B008
    service: ScanService = Depends(get_scan_service),  # noqa: B008
) -> Response:
    """Delete a website. Chatbots built from it keep their knowledge base."""
    logger.info("delete_website_request", website_id=str(website_id))
    await service.delete_website(owner_id, website_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
