"""Database models for SiteChat."""

from sitechat.db.models.chat_message import ChatMessage, MessageRole
from sitechat.db.models.chatbot import Chatbot, GreetingType
from sitechat.db.models.page_record import PageRecord
from sitechat.db.models.website import Website, WebsiteStatus

__all__ = [
    "Website",
    "WebsiteStatus",
    "Chatbot",
    "GreetingType",
    "ChatMessage",
    "MessageRole",
    "PageRecord",
]
