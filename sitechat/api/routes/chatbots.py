"""Chatbot management endpoints for the owning user."""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Response, status

from sitechat.api.dependencies import get_chatbot_service
from sitechat.api.schemas.chatbots import (
    AttachKnowledgeRequest,
    ChatbotCreateRequest,
    ChatbotResponse,
    ChatbotUpdateRequest,
)
from sitechat.api.security import get_owner_id, verify_api_key
from sitechat.core.chat.chatbot_service import ChatbotService, ChatbotUpdate

logger = structlog.get_logger(__name__)
router = APIRouter(
    prefix="/chatbots",
    tags=["chatbots"],
    dependencies=[Depends(verify_api_key)],
)


@router.post(
    "",
    response_model=ChatbotResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create chatbot",
    description="Create a chatbot, optionally seeded with a scanned website's content",
    responses={404: {"description": "Website not found"}},
)
async def create_chatbot(
    request: ChatbotCreateRequest,
    owner_id: str = Depends(get_owner_id),  # noqa: B008
    service: ChatbotService = Depends(get_chatbot_service),  # noqa: B008
) -> ChatbotResponse:
    """
    Create a chatbot for the calling user.

    The knowledge base is a copy of the website's content at creation time;
    later re-scans do not change it.
    """
    logger.info("create_chatbot_request", website_id=str(request.website_id) if request.website_id else None)
    chatbot = await service.create_chatbot(
        owner_id,
        request.name,
        website_id=request.website_id,
        greeting_type=request.greeting_type,
        greeting_messages=request.greeting_messages,
    )
    return ChatbotResponse.model_validate(chatbot)


@router.get("", response_model=list[ChatbotResponse], summary="List chatbots")
async def list_chatbots(
    owner_id: str = Depends(get_owner_id),  # noqa: B008
    service: ChatbotService = Depends(get_chatbot_service),  # noqa: B008
) -> list[ChatbotResponse]:
    chatbots = await service.list_chatbots(owner_id)
    return [ChatbotResponse.model_validate(chatbot) for chatbot in chatbots]


@router.get(
    "/{chatbot_id}",
    response_model=ChatbotResponse,
    summary="Get chatbot",
    responses={404: {"description": "Chatbot not found"}},
)
async def get_chatbot(
    chatbot_id: UUID,
    owner_id: str = Depends(get_owner_id),  # noqa: B008
    service: ChatbotService = Depends(get_chatbot_service),  # noqa: B008
) -> ChatbotResponse:
    chatbot = await service.get_chatbot(owner_id, chatbot_id)
    return ChatbotResponse.model_validate(chatbot)


@router.patch(
    "/{chatbot_id}",
    response_model=ChatbotResponse,
    summary="Update chatbot",
    description="Change name, greetings or activation; omitted fields are unchanged",
    responses={404: {"description": "Chatbot not found"}},
)
async def update_chatbot(
    chatbot_id: UUID,
    request: ChatbotUpdateRequest,
    owner_id: str = Depends(get_owner_id),  # noqa: B008
    service: ChatbotService = Depends(get_chatbot_service),  # noqa: B008
) -> ChatbotResponse:
    logger.info("update_chatbot_request", chatbot_id=str(chatbot_id))
    changes = ChatbotUpdate(
        name=request.name,
        greeting_type=request.greeting_type,
        greeting_messages=request.greeting_messages,
        is_active=request.is_active,
    )
    chatbot = await service.update_chatbot(owner_id, chatbot_id, changes)
    return ChatbotResponse.model_validate(chatbot)


@router.post(
    "/{chatbot_id}/knowledge",
    response_model=ChatbotResponse,
    summary="Attach website knowledge",
    description="Replace the knowledge base with a website's current content",
    responses={404: {"description": "Chatbot or website not found"}},
)
async def attach_knowledge(
    chatbot_id: UUID,
    request: AttachKnowledgeRequest,
    owner_id: str = Depends(get_owner_id),  # noqa: B008
    service: ChatbotService = Depends(get_chatbot_service),  # noqa: B008
) -> ChatbotResponse:
    logger.info(
        "attach_knowledge_request", chatbot_id=str(chatbot_id), website_id=str(request.website_id)
    )
    chatbot = await service.attach_knowledge(owner_id, chatbot_id, request.website_id)
    return ChatbotResponse.model_validate(chatbot)


@router.delete(
    "/{chatbot_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete chatbot",
    responses={404: {"description": "Chatbot not found"}},
)
async def delete_chatbot(
    chatbot_id: UUID,
    owner_id: str = Depends(get_owner_id),  # noqa: B008
    service: ChatbotService = Depends(get_chatbot_service),  # noqa: B008
) -> Response:
    logger.info("delete_chatbot_request", chatbot_id=str(chatbot_id))
    await service.delete_chatbot(owner_id, chatbot_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
