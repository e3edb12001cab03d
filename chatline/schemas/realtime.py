"""
Pydantic schemas for inbound realtime event payloads.

Only the fields the gateway reads are declared; anything else a client
sends is ignored.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_INBOUND_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _require_id(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("identifier must not be empty")
    return value


class TypingPayload(BaseModel):
    """`typing`: tell the receiver whether the sender is typing."""

    receiver_id: str = Field(..., max_length=64)
    is_typing: bool

    model_config = _INBOUND_CONFIG

    @field_validator("receiver_id")
    @classmethod
    def validate_receiver_id(cls, v: str) -> str:
        return _require_id(v)


class ReceiptPayload(BaseModel):
    """`messageDelivered` / `messageRead`: acknowledge a message."""

    message_id: str = Field(..., max_length=64)
    sender_id: str | None = Field(None, max_length=64)

    model_config = _INBOUND_CONFIG

    @field_validator("message_id")
    @classmethod
    def validate_message_id(cls, v: str) -> str:
        return _require_id(v)


class SendMessagePayload(BaseModel):
    """`sendMessage`: live relay to the receiver, no persistence."""

    receiver_id: str = Field(..., max_length=64)
    text: str | None = None
    image: str | None = Field(None, max_length=2048)

    model_config = _INBOUND_CONFIG

    @field_validator("receiver_id")
    @classmethod
    def validate_receiver_id(cls, v: str) -> str:
        return _require_id(v)

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None
