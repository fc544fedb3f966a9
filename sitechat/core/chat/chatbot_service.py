"""Chatbot management - creation, knowledge snapshots, settings."""

from dataclasses import dataclass
from uuid import UUID, uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from sitechat.config import settings
from sitechat.db.models.chatbot import Chatbot, GreetingType
from sitechat.db.repositories.chatbot_repository import ChatbotRepository
from sitechat.db.repositories.website_repository import WebsiteRepository
from sitechat.utils.exceptions import NotFoundError

logger = structlog.get_logger(__name__)


@dataclass
class ChatbotUpdate:
    """Fields that may change on an existing chatbot; None means unchanged."""

    name: str | None = None
    greeting_type: GreetingType | None = None
    greeting_messages: list[str] | None = None
    is_active: bool | None = None


def build_embed_code(chatbot_id: UUID, base_url: str) -> str:
    """Script tag that loads the chat widget for a chatbot."""
    return f'<script src="{base_url.rstrip("/")}/embed/{chatbot_id}.js"></script>'


def build_test_url(chatbot_id: UUID) -> str:
    return f"/chat/test/{chatbot_id}"


class ChatbotService:
    """Owner-scoped chatbot operations."""

    def __init__(self, session: AsyncSession, base_url: str | None = None):
        """Initialize chatbot service."""
        self.session = session
        self.base_url = base_url or settings.base_url
        self.chatbots = ChatbotRepository(session)
        self.websites = WebsiteRepository(session)

    async def get_chatbot(self, owner_id: str, chatbot_id: UUID) -> Chatbot:
        """
        Get one of the user's chatbots.

        Raises:
            NotFoundError: If it does not exist or belongs to someone else
        """
        chatbot = await self.chatbots.get_owned(chatbot_id, owner_id)
        if chatbot is None:
            raise NotFoundError("Chatbot", chatbot_id)
        return chatbot

    async def list_chatbots(self, owner_id: str) -> list[Chatbot]:
        return await self.chatbots.list_by_owner(owner_id)

    async def create_chatbot(
        self,
        owner_id: str,
        name: str,
        website_id: UUID | None = None,
        greeting_type: GreetingType = GreetingType.CUSTOM,
        greeting_messages: list[str] | None = None,
    ) -> Chatbot:
        """
        Create a chatbot, copying the website's current content when one is given.

        Args:
            owner_id: Owning user ID
            name: Display name
            website_id: Optional source website (must belong to the user)
            greeting_type: How the greeting was produced
            greeting_messages: Greeting messages, first one is used

        Returns:
            Created Chatbot instance

        Raises:
            NotFoundError: If ``website_id`` does not name one of the user's websites
        """
        knowledge_base: list[dict[str, str]] = []
        if website_id is not None:
            website = await self.websites.get_owned(website_id, owner_id)
            if website is None:
                raise NotFoundError("Website", website_id)
            # Validated copy of the website's content at this moment
            knowledge_base = [record.model_dump() for record in website.page_records]

        chatbot_id = uuid4()
        chatbot = Chatbot(
            id=chatbot_id,
            owner_id=owner_id,
            website_id=website_id,
            name=name,
            greeting_type=greeting_type.value,
            greeting_messages=list(greeting_messages or []),
            knowledge_base=knowledge_base,
            is_active=False,
            test_url=build_test_url(chatbot_id),
            embed_code=build_embed_code(chatbot_id, self.base_url),
        )
        chatbot = await self.chatbots.create(chatbot)

        logger.info(
            "chatbot_created",
            chatbot_id=str(chatbot.id),
            website_id=str(website_id) if website_id else None,
            knowledge_pages=len(knowledge_base),
        )
        return chatbot

    async def attach_knowledge(self, owner_id: str, chatbot_id: UUID, website_id: UUID) -> Chatbot:
        """
        Replace a chatbot's knowledge base with the website's current content.

        Raises:
            NotFoundError: If the chatbot or website does not exist for the user
        """
        chatbot = await self.get_chatbot(owner_id, chatbot_id)
        website = await self.websites.get_owned(website_id, owner_id)
        if website is None:
            raise NotFoundError("Website", website_id)

        records = website.page_records
        chatbot.website_id = website.id
        chatbot = await self.chatbots.replace_knowledge(chatbot, records)

        logger.info(
            "chatbot_knowledge_attached",
            chatbot_id=str(chatbot.id),
            website_id=str(website.id),
            knowledge_pages=len(records),
        )
        return chatbot

    async def update_chatbot(
        self, owner_id: str, chatbot_id: UUID, changes: ChatbotUpdate
    ) -> Chatbot:
        """Apply settings changes to a chatbot."""
        chatbot = await self.get_chatbot(owner_id, chatbot_id)

        if changes.name is not None:
            chatbot.name = changes.name
        if changes.greeting_type is not None:
            chatbot.greeting_type = changes.greeting_type.value
        if changes.greeting_messages is not None:
            chatbot.greeting_messages = list(changes.greeting_messages)
        if changes.is_active is not None:
            chatbot.is_active = changes.is_active

        chatbot = await self.chatbots.update(chatbot)
        logger.info("chatbot_updated", chatbot_id=str(chatbot.id))
        return chatbot

    async def delete_chatbot(self, owner_id: str, chatbot_id: UUID) -> None:
        """Delete a chatbot and its conversation log."""
        chatbot = await self.get_chatbot(owner_id, chatbot_id)
        await self.chatbots.delete_chatbot(chatbot)
        logger.info("chatbot_deleted", chatbot_id=str(chatbot_id))
