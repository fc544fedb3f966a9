"""Database repositories for SiteChat."""

from sitechat.db.repositories.base_repository import BaseRepository
from sitechat.db.repositories.chat_message_repository import ChatMessageRepository
from sitechat.db.repositories.chatbot_repository import ChatbotRepository
from sitechat.db.repositories.website_repository import WebsiteRepository

__all__ = [
    "BaseRepository",
    "ChatbotRepository",
    "ChatMessageRepository",
    "WebsiteRepository",
]
