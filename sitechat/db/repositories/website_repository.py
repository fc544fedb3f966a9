"""Website repository for database operations."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sitechat.db.models.chatbot import Chatbot
from sitechat.db.models.page_record import PageRecord, dump_records
from sitechat.db.models.website import Website, WebsiteStatus
from sitechat.db.repositories.base_repository import BaseRepository


class WebsiteRepository(BaseRepository[Website]):
    """Repository for Website model operations."""

    def __init__(self, session: AsyncSession):
        """Initialize website repository."""
        super().__init__(Website, session)

    async def create_website(self, owner_id: str, url: str) -> Website:
        """
        Create a pending website record.

        Args:
            owner_id: Owning user ID
            url: Seed URL

        Returns:
            Created Website instance
        """
        return await self.create(Website(owner_id=owner_id, url=url))

    async def get_by_owner_and_url(self, owner_id: str, url: str) -> Website | None:
        """
        Get the website a user already submitted for this URL.

        Args:
            owner_id: Owning user ID
            url: Seed URL exactly as submitted

        Returns:
            Website instance or None
        """
        result = await self.session.execute(
            select(Website)
            .where(Website.owner_id == owner_id, Website.url == url)  # type: ignore[arg-type]
            .order_by(Website.created_at)  # type: ignore[arg-type]
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def set_status(self, website: Website, status: WebsiteStatus) -> Website:
        """Set a website's scan status."""
        website.status = status
        return await self.update(website)

    async def store_scan_result(
        self, website: Website, records: list[PageRecord], status: WebsiteStatus
    ) -> Website:
        """
        Replace a website's scanned pages and content in one write.

        Args:
            website: Website being scanned
            records: Records produced by the crawl, in crawl order
            status: Final status

        Returns:
            Updated Website instance
        """
        # Fresh lists so the JSON columns are flagged as changed
        website.pages_scanned = [record.url for record in records]
        website.content = dump_records(records)
        website.status = status
        return await self.update(website)

    async def delete_website(self, website: Website) -> None:
        """
        Delete a website and detach chatbots that referenced it.

        The chatbots keep their copied knowledge base.
        """
        await self.session.execute(
            update(Chatbot)
            .where(Chatbot.website_id == website.id)  # type: ignore[arg-type]
            .values(website_id=None)
        )
        await self.delete(website)
