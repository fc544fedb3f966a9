"""Chatbots and the answer engine."""

from sitechat.core.chat.answer_engine import answer
from sitechat.core.chat.chat_service import ChatReply, ChatService
from sitechat.core.chat.chatbot_service import ChatbotService, ChatbotUpdate

__all__ = [
    "answer",
    "ChatReply",
    "ChatService",
    "ChatbotService",
    "ChatbotUpdate",
]
