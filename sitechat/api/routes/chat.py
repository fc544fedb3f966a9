"""Public chat endpoints used by embedded widgets and test pages."""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status

from sitechat.api.dependencies import get_chat_service
from sitechat.api.schemas.chat import (
    ChatbotInfo,
    ChatHistoryResponse,
    ChatMessageItem,
    SendMessageRequest,
    SendMessageResponse,
)
from sitechat.core.chat.chat_service import ChatService

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/chat", tags=["chat"])


@router.get(
    "/{chatbot_id}/info",
    response_model=ChatbotInfo,
    summary="Chatbot widget info",
    responses={404: {"description": "Chatbot not found"}},
)
async def chatbot_info(
    chatbot_id: UUID,
    service: ChatService = Depends(get_chat_service),  # noqa: B008
) -> ChatbotInfo:
    chatbot = await service.get_chatbot(chatbot_id)
    return ChatbotInfo.model_validate(chatbot)


@router.post(
    "/{chatbot_id}/message",
    response_model=SendMessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Send a chat message",
    description="Answer a visitor's message from the chatbot's knowledge base",
    responses={
        404: {"description": "Chatbot not found"},
        422: {"description": "Validation error (missing message or session)"},
    },
)
async def send_message(
    chatbot_id: UUID,
    request: SendMessageRequest,
    service: ChatService = Depends(get_chat_service),  # noqa: B008
) -> SendMessageResponse:
    """
    Answer one message.

    Both the visitor's message and the reply are logged under the session ID.
    """
    logger.info("chat_message_request", chatbot_id=str(chatbot_id), session_id=request.session_id)
    reply = await service.send_message(chatbot_id, request.session_id, request.message)
    return SendMessageResponse(response=reply.response, message_id=reply.message_id)


@router.get(
    "/{chatbot_id}/messages",
    response_model=ChatHistoryResponse,
    summary="Conversation history",
    responses={404: {"description": "Chatbot not found"}},
)
async def chat_history(
    chatbot_id: UUID,
    session_id: str = Query(..., min_length=1, description="Conversation ID"),
    service: ChatService = Depends(get_chat_service),  # noqa: B008
) -> ChatHistoryResponse:
    messages = await service.history(chatbot_id, session_id)
    return ChatHistoryResponse(
        session_id=session_id,
        messages=[ChatMessageItem.model_validate(message) for message in messages],
    )
