"""Chatbot model with its point-in-time knowledge base snapshot."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from sitechat.db.models.page_record import PageRecord, load_records
from sitechat.db.models.timestamps import timestamp_column, utc_now


class GreetingType(str, Enum):
    """How the chatbot's greeting was produced."""

    CUSTOM = "custom"
    AI = "ai"


class Chatbot(SQLModel, table=True):
    """Chatbot owned by a user.

    ``knowledge_base`` is a copy of a website's content taken when the chatbot is
    created or when knowledge is attached. Later scans of the website do not
    change it. ``website_id`` is a weak reference and may point nowhere.
    """

    __tablename__ = "chatbots"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        nullable=False,
    )
    owner_id: str = Field(nullable=False, index=True)
    website_id: UUID | None = Field(default=None, index=True)
    name: str = Field(nullable=False)

    greeting_type: str = Field(default=GreetingType.CUSTOM.value, nullable=False)
    greeting_messages: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    knowledge_base: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    is_active: bool = Field(default=False, nullable=False)
    test_url: str | None = Field(default=None)
    embed_code: str | None = Field(default=None)

    # Timestamps
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=timestamp_column(),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=timestamp_column(),
    )

    @property
    def knowledge_records(self) -> list[PageRecord]:
        return load_records(self.knowledge_base)
