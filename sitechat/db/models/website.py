"""Website model for a scanned site and its extracted knowledge."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, Enum as SQLAlchemyEnum
from sqlmodel import Field, SQLModel

from sitechat.db.models.page_record import PageRecord, load_records
from sitechat.db.models.timestamps import timestamp_column, utc_now


class WebsiteStatus(str, Enum):
    """Scan status of a website."""

    PENDING = "pending"
    SCANNING = "scanning"
    COMPLETED = "completed"
    FAILED = "failed"


class Website(SQLModel, table=True):
    """Website submitted by a user for scanning.

    ``pages_scanned`` and ``content`` are replaced together at the end of every
    scan, so they always have the same length.
    """

    __tablename__ = "websites"

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        nullable=False,
    )
    owner_id: str = Field(nullable=False, index=True)
    url: str = Field(nullable=False, index=True)

    status: WebsiteStatus = Field(
        default=WebsiteStatus.PENDING,
        sa_column=Column(
            SQLAlchemyEnum(
                WebsiteStatus,
                name="website_status",
                create_constraint=True,
                values_callable=lambda x: [e.value for e in x],
            ),
            nullable=False,
            index=True,
        ),
    )

    pages_scanned: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    content: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

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
    def page_records(self) -> list[PageRecord]:
        return load_records(self.content)
