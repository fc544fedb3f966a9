"""API route initialization and versioning."""

from fastapi import APIRouter

from sitechat.api.routes import chat, chatbots, websites

# API v1 router - all versioned endpoints go under /api/v1
api_v1_router = APIRouter(prefix="/api/v1")

api_v1_router.include_router(websites.router)
api_v1_router.include_router(chatbots.router)
api_v1_router.include_router(chat.router)
