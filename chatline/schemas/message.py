"""Pydantic schemas for the messages API."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_serializer

from ..utils.time_utils import isoformat_z
from .common import CAMEL_CONFIG


class SendMessageRequest(BaseModel):
    """Body of POST /messages/send/{id}. Content rules are enforced by the message service."""

    text: str | None = Field(None, description="Message text")
    image: str | None = Field(None, description="Image URL")


class MessagePublic(BaseModel):
    """A persisted message as returned to clients and relayed as `receiveMessage`."""

    id: uuid.UUID = Field(..., alias="_id")
    sender_id: uuid.UUID
    receiver_id: uuid.UUID
    text: str | None = None
    image: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = CAMEL_CONFIG

    @field_serializer("created_at", "updated_at")
    def serialize_timestamps(self, value: datetime) -> str:
        return isoformat_z(value)


class OnlineUsers(BaseModel):
    user_ids: list[str] = Field(default_factory=list)

    model_config = CAMEL_CONFIG
