"""Request and response bodies for the HTTP API.

Bodies use camelCase keys; Python attributes stay snake_case.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..domain.models import Chat, Message


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatCreate(CamelModel):
    """Body of ``POST /chats``. The owner comes from the request header."""

    assistant_id: str = ""
    title: str = ""
    voice_style: str = ""
    topic: str = ""
    instructions: Optional[str] = None


class ChatSettingsUpdate(CamelModel):
    title: Optional[str] = None
    voice_style: Optional[str] = None
    topic: Optional[str] = None
    instructions: Optional[str] = None


class MessageCreate(CamelModel):
    """Body of ``POST /chats/{id}/messages``. Values are checked by the use case."""

    content: str = ""
    role: str = "user"
    type: str = "text"
    audio_url: Optional[str] = None
    duration: Optional[float] = None


class MessageResponse(CamelModel):
    id: str
    chat_id: str
    role: str
    content: str
    type: str
    timestamp: datetime
    audio_url: Optional[str] = None
    duration: Optional[float] = None

    @classmethod
    def from_entity(cls, message: Message) -> "MessageResponse":
        return cls(
            id=str(message.id),
            chat_id=message.chat_id,
            role=message.role,
            content=message.content,
            type=message.type,
            timestamp=message.timestamp,
            audio_url=message.audio_url,
            duration=message.duration,
        )


class ChatSummary(CamelModel):
    id: str
    user_id: str
    assistant_id: str
    title: str
    voice_style: str
    topic: str
    instructions: str
    created_at: datetime
    updated_at: datetime
    message_count: int

    @classmethod
    def _fields_from(cls, chat: Chat) -> dict:
        return dict(
            id=str(chat.id),
            user_id=chat.user_id,
            assistant_id=chat.assistant_id,
            title=chat.title,
            voice_style=chat.voice_style,
            topic=chat.topic,
            instructions=chat.instructions,
            created_at=chat.created_at,
            updated_at=chat.updated_at,
            message_count=chat.get_message_count(),
        )

    @classmethod
    def from_entity(cls, chat: Chat) -> "ChatSummary":
        return cls(**cls._fields_from(chat))


class ChatListItem(ChatSummary):
    last_message: str

    @classmethod
    def from_entity(cls, chat: Chat) -> "ChatListItem":
        last = chat.get_last_message()
        return cls(**cls._fields_from(chat), last_message=last.content if last else "")


class ChatDetail(ChatSummary):
    messages: List[MessageResponse]

    @classmethod
    def from_entity(cls, chat: Chat) -> "ChatDetail":
        return cls(
            **cls._fields_from(chat),
            messages=[MessageResponse.from_entity(m) for m in chat.messages],
        )


class ErrorResponse(BaseModel):
    error: str
    code: str
    details: Optional[list] = None
