"""Pydantic schemas for the public chat endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from sitechat.api.schemas.base import CamelModel


class ChatbotInfo(CamelModel):
    """Public view of a chatbot for widgets."""

    id: UUID
    name: str
    greeting_messages: list[str]
    is_active: bool


class SendMessageRequest(CamelModel):
    """A user message from a widget."""

    message: str = Field(..., min_length=1, max_length=4000)
    session_id: str = Field(..., min_length=1, max_length=100)


class SendMessageResponse(CamelModel):
    """Assistant reply."""

    response: str
    message_id: UUID


class ChatMessageItem(CamelModel):
    """One logged message."""

    id: UUID
    role: str
    content: str
    created_at: datetime


class ChatHistoryResponse(CamelModel):
    """Messages of one conversation in order."""

    session_id: str
    messages: list[ChatMessageItem]
