"""Public chat entry point used by embedded widgets and test pages."""

from dataclasses import dataclass
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from sitechat.core.chat.answer_engine import answer
from sitechat.db.models.chat_message import ChatMessage, MessageRole
from sitechat.db.models.chatbot import Chatbot
from sitechat.db.repositories.chat_message_repository import ChatMessageRepository
from sitechat.db.repositories.chatbot_repository import ChatbotRepository
from sitechat.utils.exceptions import NotFoundError

logger = structlog.get_logger(__name__)


@dataclass
class ChatReply:
    """Answer to one user message."""

    response: str
    message_id: UUID


class ChatService:
    """Answer messages and keep the conversation log."""

    def __init__(self, session: AsyncSession):
        """Initialize chat service."""
        self.session = session
        self.chatbots = ChatbotRepository(session)
        self.messages = ChatMessageRepository(session)

    async def get_chatbot(self, chatbot_id: UUID) -> Chatbot:
        """
        Get a chatbot by ID regardless of owner.

        Raises:
            NotFoundError: If it does not exist
        """
        chatbot = await self.chatbots.get_by_id(chatbot_id)
        if chatbot is None:
            raise NotFoundError("Chatbot", chatbot_id)
        return chatbot

    async def send_message(self, chatbot_id: UUID, session_id: str, message: str) -> ChatReply:
        """
        Log the user's message, answer it, and log the answer.

        The user message is persisted before the answer is computed, and the
        answer before it is returned.

        Args:
            chatbot_id: Chatbot UUID
            session_id: Conversation ID chosen by the client
            message: User message

        Returns:
            ChatReply with the response text and the logged assistant message ID

        Raises:
            NotFoundError: If the chatbot does not exist
        """
        chatbot = await self.get_chatbot(chatbot_id)

        await self.messages.append(chatbot.id, session_id, MessageRole.USER, message)
        await self.session.commit()

        response = answer(message, chatbot.knowledge_records, chatbot.greeting_messages)

        reply = await self.messages.append(chatbot.id, session_id, MessageRole.ASSISTANT, response)
        await self.session.commit()

        logger.info(
            "chat_message_answered",
            chatbot_id=str(chatbot.id),
            session_id=session_id,
            response_length=len(response),
        )
        return ChatReply(response=response, message_id=reply.id)

    async def history(self, chatbot_id: UUID, session_id: str) -> list[ChatMessage]:
        """Messages of one conversation in creation order."""
        chatbot = await self.get_chatbot(chatbot_id)
        return await self.messages.list_session(chatbot.id, session_id)
