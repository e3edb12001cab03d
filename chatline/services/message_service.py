"""Message service: contacts, conversations and durable sends."""

import uuid

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..error_types import ErrorMessages
from ..exceptions import ResourceNotFoundError, ValidationError
from ..models.message import MAX_TEXT_LENGTH, Message
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class MessageService:
    """Message operations bound to one database session."""

    def __init__(self, session: AsyncSession, max_text_length: int = MAX_TEXT_LENGTH) -> None:
        self.session = session
        self.max_text_length = max_text_length

    async def list_contacts(self, user_id: uuid.UUID) -> list[User]:
        """Every user except the caller, alphabetically."""
        stmt = select(User).where(User.id != user_id, User.is_active.is_(True)).order_by(User.username)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_chat_partners(self, user_id: uuid.UUID) -> list[User]:
        """Users the caller has exchanged messages with, most recent conversation first."""
        partner_id = case((Message.sender_id == user_id, Message.receiver_id), else_=Message.sender_id)
        latest = (
            select(partner_id.label("partner_id"), func.max(Message.created_at).label("last_message_at"))
            .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
            .group_by(partner_id)
            .subquery()
        )
        stmt = select(User).join(latest, User.id == latest.c.partner_id).order_by(latest.c.last_message_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_conversation(self, user_id: uuid.UUID, other_id: uuid.UUID) -> list[Message]:
        """Both directions between the two users, oldest first."""
        stmt = (
            select(Message)
            .where(
                or_(
                    and_(Message.sender_id == user_id, Message.receiver_id == other_id),
                    and_(Message.sender_id == other_id, Message.receiver_id == user_id),
                )
            )
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def send_message(
        self,
        sender_id: uuid.UUID,
        receiver_id: uuid.UUID,
        text: str | None = None,
        image: str | None = None,
    ) -> Message:
        """
        Persist a message.

        Raises:
            ValidationError: No content, text too long, or sending to oneself
            ResourceNotFoundError: The receiver does not exist
        """
        text = text.strip() if text else None
        image = image.strip() if image else None
        text = text or None
        image = image or None

        if text is None and image is None:
            raise ValidationError(ErrorMessages.MESSAGE_EMPTY, field="text")
        if text is not None and len(text) > self.max_text_length:
            raise ValidationError(
                f"Message text cannot exceed {self.max_text_length} characters",
                field="text",
                details={"max_length": self.max_text_length},
            )
        if sender_id == receiver_id:
            raise ValidationError(ErrorMessages.MESSAGE_TO_SELF, field="receiver_id")

        receiver = await self.session.get(User, receiver_id)
        if receiver is None:
            raise ResourceNotFoundError(
                ErrorMessages.USER_NOT_FOUND, resource_type="user", resource_id=str(receiver_id)
            )

        message = Message(sender_id=sender_id, receiver_id=receiver_id, text=text, image=image)
        self.session.add(message)
        await self.session.commit()
        await self.session.refresh(message)

        logger.info(
            "Message stored",
            message_id=str(message.id),
            sender_id=str(sender_id),
            receiver_id=str(receiver_id),
            has_image=image is not None,
        )
        return message
