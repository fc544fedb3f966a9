"""Pydantic schemas for chatbot management endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from sitechat.api.schemas.base import CamelModel
from sitechat.db.models.chatbot import GreetingType
from sitechat.db.models.page_record import PageRecord


class ChatbotCreateRequest(CamelModel):
    """Request to create a chatbot."""

    name: str = Field(..., min_length=1, max_length=255)
    website_id: UUID | None = None
    greeting_type: GreetingType = GreetingType.CUSTOM
    greeting_messages: list[str] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Support Bot",
                    "websiteId": "123e4567-e89b-12d3-a456-426614174000",
                    "greetingType": "custom",
                    "greetingMessages": ["Hello! How can I help you today?"],
                }
            ]
        }
    }


class ChatbotUpdateRequest(CamelModel):
    """Partial update of chatbot settings."""

    name: str | None = Field(None, min_length=1, max_length=255)
    greeting_type: GreetingType | None = None
    greeting_messages: list[str] | None = None
    is_active: bool | None = None


class AttachKnowledgeRequest(CamelModel):
    """Request to copy a website's content into a chatbot."""

    website_id: UUID


class ChatbotResponse(CamelModel):
    """Full chatbot for its owner."""

    id: UUID
    owner_id: str
    website_id: UUID | None
    name: str
    greeting_type: str
    greeting_messages: list[str]
    knowledge_base: list[PageRecord]
    is_active: bool
    test_url: str | None
    embed_code: str | None
    created_at: datetime
    updated_at: datetime
