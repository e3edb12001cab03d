"""
Messages API endpoints for Chatline.

Contacts, conversation history and durable sends. A successful send is also
pushed to the receiver's live connections as `receiveMessage`.
"""

import uuid

from fastapi import APIRouter, Depends, Request, status

from ..auth.dependencies import get_current_user, get_gateway, get_message_service
from ..models.user import User
from ..realtime.gateway import RealtimeGateway
from ..schemas.auth import UserPublic
from ..schemas.common import ApiResponse
from ..schemas.message import MessagePublic, SendMessageRequest
from ..services.message_service import MessageService
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

messages_router = APIRouter(prefix="/api/v1/messages", tags=["messages"])


@messages_router.get("/all-contacts", response_model=ApiResponse[list[UserPublic]])
async def get_all_contacts(
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
) -> ApiResponse[list[UserPublic]]:
    users = await messages.list_contacts(current_user.id)
    return ApiResponse[list[UserPublic]](data=[UserPublic.model_validate(u) for u in users])


@messages_router.get("/chat-contacts", response_model=ApiResponse[list[UserPublic]])
async def get_chat_contacts(
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
) -> ApiResponse[list[UserPublic]]:
    """Users the caller has talked to, most recent conversation first."""
    users = await messages.list_chat_partners(current_user.id)
    return ApiResponse[list[UserPublic]](data=[UserPublic.model_validate(u) for u in users])


@messages_router.get("/{user_id}", response_model=ApiResponse[list[MessagePublic]])
async def get_conversation(
    user_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
) -> ApiResponse[list[MessagePublic]]:
    history = await messages.get_conversation(current_user.id, user_id)
    return ApiResponse[list[MessagePublic]](data=[MessagePublic.model_validate(m) for m in history])


@messages_router.post(
    "/send/{receiver_id}",
    response_model=ApiResponse[MessagePublic],
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    receiver_id: uuid.UUID,
    body: SendMessageRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    messages: MessageService = Depends(get_message_service),
    gateway: RealtimeGateway = Depends(get_gateway),
) -> ApiResponse[MessagePublic]:
    """
    Persist a message and push it to the receiver if they are connected.

    Delivery is best effort; an offline receiver picks the message up from
    the conversation endpoint.
    """
    message = await messages.send_message(current_user.id, receiver_id, text=body.text, image=body.image)
    public = MessagePublic.model_validate(message)

    delivered = await gateway.deliver_message(str(receiver_id), public.model_dump(by_alias=True, mode="json"))
    logger.debug(
        "Message pushed to live connections",
        message_id=str(message.id),
        receiver_id=str(receiver_id),
        connections=delivered,
        path=request.url.path,
    )
    return ApiResponse[MessagePublic](message="Message sent", data=public)
