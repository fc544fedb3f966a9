"""FastAPI dependencies for route handlers."""

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from sitechat.config import settings
from sitechat.core.chat.chat_service import ChatService
from sitechat.core.chat.chatbot_service import ChatbotService
from sitechat.core.ingestion.scan_service import ScanCoordinator, ScanService
from sitechat.core.ingestion.web_scraping.browser_pool import BrowserPool
from sitechat.db.session import get_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide async database session to route handlers.

    Commits on success and rolls back on error.

    Yields:
        AsyncSession: Database session for the request
    """
    async for session in get_session():
        yield session


def get_browser_pool(request: Request) -> BrowserPool | None:
    """Browser pool created in the application lifespan, if rendering is enabled."""
    return getattr(request.app.state, "browser_pool", None)


def get_scan_coordinator(request: Request) -> ScanCoordinator:
    """Scan coordinator shared by all requests of the application."""
    coordinator = getattr(request.app.state, "scan_coordinator", None)
    if coordinator is None:
        coordinator = ScanCoordinator()
        request.app.state.scan_coordinator = coordinator
    return coordinator


def get_scan_service(
    db: AsyncSession = Depends(get_db),  # noqa: B008
    coordinator: ScanCoordinator = Depends(get_scan_coordinator),  # noqa: B008
    browser_pool: BrowserPool | None = Depends(get_browser_pool),  # noqa: B008
) -> ScanService:
    return ScanService(
        db,
        coordinator,
        browser_pool=browser_pool if settings.render_seed_page else None,
    )


def get_chatbot_service(db: AsyncSession = Depends(get_db)) -> ChatbotService:  # noqa: B008
    return ChatbotService(db)


def get_chat_service(db: AsyncSession = Depends(get_db)) -> ChatService:  # noqa: B008
    return ChatService(db)
