"""PageRecord - one crawled page in a website's or chatbot's knowledge base."""

from pydantic import BaseModel, ConfigDict


class PageRecord(BaseModel):
    """Text extracted from a single page.

    Stored inside JSON columns (``websites.content``, ``chatbots.knowledge_base``)
    and validated through this schema on the way in and out.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    title: str
    content: str


def dump_records(records: list[PageRecord]) -> list[dict[str, str]]:
    """Serialize records for a JSON column."""
    return [record.model_dump() for record in records]


def load_records(raw: list[dict[str, str]] | None) -> list[PageRecord]:
    """Validate records read from a JSON column."""
    return [PageRecord.model_validate(item) for item in raw or []]
