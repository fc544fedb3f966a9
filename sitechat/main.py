"""FastAPI application for the SiteChat API."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from sitechat.api.middleware import RequestLoggingMiddleware
from sitechat.api.routes import api_v1_router, health
from sitechat.config import settings
from sitechat.core.ingestion.scan_service import ScanCoordinator
from sitechat.core.ingestion.web_scraping.browser_pool import BrowserPool
from sitechat.db.session import close_db, init_db
from sitechat.utils.exceptions import InvalidUrlError, NotFoundError
from sitechat.utils.logging import configure_logging
from sitechat.version import __version__

configure_logging(log_level=settings.log_level, environment=settings.environment)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan events."""
    logger.info("application_startup", version=__version__)
    if settings.auto_create_tables:
        await init_db()

    app.state.scan_coordinator = ScanCoordinator()
    # The browser itself launches on first use
    app.state.browser_pool = (
        BrowserPool(
            max_contexts=settings.browser_max_contexts,
            headless=settings.browser_headless,
            user_agent=settings.user_agent,
        )
        if settings.render_seed_page
        else None
    )

    yield

    await app.state.scan_coordinator.shutdown()
    if app.state.browser_pool is not None:
        await app.state.browser_pool.close()
    await close_db()
    logger.info("application_shutdown")


app = FastAPI(
    title="SiteChat API",
    description="Website crawling and keyword chatbots for embeddable chat widgets",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)  # Health check (no version prefix)
app.include_router(api_v1_router)


@app.exception_handler(NotFoundError)
async def not_found_exception_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Map missing or foreign resources to 404."""
    logger.warning("resource_not_found", resource=exc.resource, resource_id=str(exc.resource_id))
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidUrlError)
async def invalid_url_exception_handler(request: Request, exc: InvalidUrlError) -> JSONResponse:
    """Reject malformed website URLs."""
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """Handle database errors with appropriate logging and response."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error("database_error", error=str(exc), request_id=request_id)
    return JSONResponse(status_code=500, content={"detail": "Database error occurred"})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors."""
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all unhandled exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error("unhandled_exception", error=str(exc), request_id=request_id)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
