"""Health check endpoint for monitoring and deployment verification."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from sitechat.api.dependencies import get_browser_pool, get_db, get_scan_coordinator
from sitechat.core.ingestion.scan_service import ScanCoordinator
from sitechat.core.ingestion.web_scraping.browser_pool import BrowserPool
from sitechat.version import __version__

router = APIRouter()


def browser_state(pool: BrowserPool | None) -> str:
    """``disabled`` without a pool, else whether Chromium is currently launched."""
    if pool is None:
        return "disabled"
    return "running" if pool.is_running else "idle"


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),  # noqa: B008
    browser_pool: BrowserPool | None = Depends(get_browser_pool),  # noqa: B008
    coordinator: ScanCoordinator = Depends(get_scan_coordinator),  # noqa: B008
) -> dict[str, str | int]:
    """
    Report database connectivity, headless browser state and background scans.

    The browser is launched lazily, so ``idle`` is a healthy state.

    Raises:
        HTTPException: 503 if database is unavailable
    """
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        raise HTTPException(status_code=503, detail="Database unavailable") from e
    return {
        "status": "healthy",
        "database": "connected",
        "browser": browser_state(browser_pool),
        "background_scans": coordinator.active_scans,
        "version": __version__,
    }
