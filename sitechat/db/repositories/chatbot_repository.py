"""Chatbot repository for database operations."""

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from sitechat.db.models.chat_message import ChatMessage
from sitechat.db.models.chatbot import Chatbot
from sitechat.db.models.page_record import PageRecord, dump_records
from sitechat.db.repositories.base_repository import BaseRepository


class ChatbotRepository(BaseRepository[Chatbot]):
    """Repository for Chatbot model operations."""

    def __init__(self, session: AsyncSession):
        """Initialize chatbot repository."""
        super().__init__(Chatbot, session)

    async def replace_knowledge(self, chatbot: Chatbot, records: list[PageRecord]) -> Chatbot:
        """
        Replace a chatbot's knowledge base with a copy of ``records``.

        Args:
            chatbot: Chatbot to update
            records: Records to copy in

        Returns:
            Updated Chatbot instance
        """
        chatbot.knowledge_base = dump_records(records)
        return await self.update(chatbot)

    async def delete_chatbot(self, chatbot: Chatbot) -> None:
        """Delete a chatbot together with its conversation log."""
        await self.session.execute(
            delete(ChatMessage).where(ChatMessage.chatbot_id == chatbot.id)  # type: ignore[arg-type]
        )
        await self.delete(chatbot)
