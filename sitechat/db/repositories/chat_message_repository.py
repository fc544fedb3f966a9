"""Chat message repository for database operations."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sitechat.db.models.chat_message import ChatMessage, MessageRole
from sitechat.db.repositories.base_repository import BaseRepository


class ChatMessageRepository(BaseRepository[ChatMessage]):
    """Repository for ChatMessage model operations."""

    def __init__(self, session: AsyncSession):
        """Initialize chat message repository."""
        super().__init__(ChatMessage, session)

    async def append(
        self, chatbot_id: UUID, session_id: str, role: MessageRole, content: str
    ) -> ChatMessage:
        """
        Append a message to a conversation.

        Args:
            chatbot_id: Chatbot UUID
            session_id: Client-chosen conversation ID
            role: Message author
            content: Message text

        Returns:
            Created ChatMessage instance
        """
        message = ChatMessage(
            chatbot_id=chatbot_id,
            session_id=session_id,
            role=role.value,
            content=content,
        )
        return await self.create(message)

    async def list_session(self, chatbot_id: UUID, session_id: str) -> list[ChatMessage]:
        """
        Get a conversation in creation order.

        Args:
            chatbot_id: Chatbot UUID
            session_id: Conversation ID

        Returns:
            List of ChatMessage instances
        """
        result = await self.session.execute(
            select(ChatMessage)
            .where(
                ChatMessage.chatbot_id == chatbot_id,  # type: ignore[arg-type]
                ChatMessage.session_id == session_id,  # type: ignore[arg-type]
            )
            .order_by(ChatMessage.created_at)  # type: ignore[arg-type]
        )
        return list(result.scalars().all())
