"""Chat message model - append-only conversation log."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from sitechat.db.models.timestamps import timestamp_column, utc_now


class MessageRole(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(SQLModel, table=True):
    """One message in a (chatbot, session) conversation."""

    __tablename__ = "chat_messages"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        nullable=False,
    )
    chatbot_id: UUID = Field(nullable=False, index=True)
    session_id: str = Field(nullable=False, index=True)
    role: str = Field(nullable=False)
    content: str = Field(nullable=False)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=timestamp_column(index=True),
    )
