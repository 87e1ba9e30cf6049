"""Domain models for the chat application."""

import math
from datetime import datetime, timezone
from typing import List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from .errors import ValidationError
from .identifiers import ChatId, MessageId

Role = Literal["user", "assistant"]
MessageType = Literal["text", "voice"]

TITLE_MAX_LENGTH = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Message(BaseModel):
    """A single turn in a chat. Immutable once created.

    New messages come from the ``create_*`` factories, which assign the id,
    role, type and timestamp. Persisted messages come back through
    ``reconstitute``. Calling the constructor directly skips the voice checks.
    """

    model_config = ConfigDict(frozen=True)

    id: MessageId
    chat_id: str
    role: Role
    content: str
    type: MessageType
    timestamp: datetime
    audio_url: Optional[str] = None
    duration: Optional[float] = Field(default=None, allow_inf_nan=False)

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @classmethod
    def create_user_text_message(cls, chat_id: str, content: str) -> "Message":
        return cls(
            id=MessageId.generate(),
            chat_id=chat_id,
            role="user",
            content=content,
            type="text",
            timestamp=utcnow(),
        )

    @classmethod
    def create_user_voice_message(
        cls, chat_id: str, content: str, audio_url: str, duration: float
    ) -> "Message":
        """Create a user message that carries a recording."""
        if not audio_url:
            raise ValidationError("Voice messages require an audio URL")
        if duration is None or not math.isfinite(duration) or duration <= 0:
            raise ValidationError("Voice messages require a positive duration")
        return cls(
            id=MessageId.generate(),
            chat_id=chat_id,
            role="user",
            content=content,
            type="voice",
            timestamp=utcnow(),
            audio_url=audio_url,
            duration=duration,
        )

    @classmethod
    def create_assistant_message(cls, chat_id: str, content: str) -> "Message":
        return cls(
            id=MessageId.generate(),
            chat_id=chat_id,
            role="assistant",
            content=content,
            type="text",
            timestamp=utcnow(),
        )

    @classmethod
    def reconstitute(
        cls,
        id: MessageId,
        chat_id: str,
        role: Role,
        content: str,
        type: MessageType,
        timestamp: datetime,
        audio_url: Optional[str] = None,
        duration: Optional[float] = None,
    ) -> "Message":
        """Rebuild a message from persisted state."""
        return cls(
            id=id,
            chat_id=chat_id,
            role=role,
            content=content,
            type=type,
            timestamp=timestamp,
            audio_url=audio_url,
            duration=duration,
        )


class Chat(BaseModel):
    """Chat aggregate root.

    Owns an append-only sequence of messages. Settings change only through
    ``update_settings`` and every mutation refreshes ``updated_at``.
    """

    id: ChatId = Field(frozen=True)
    user_id: str = Field(frozen=True)
    assistant_id: str = Field(frozen=True)
    title: str
    voice_style: str
    topic: str
    instructions: str
    created_at: datetime = Field(frozen=True)
    updated_at: datetime

    _messages: List[Message] = PrivateAttr(default_factory=list)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _timestamps_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @classmethod
    def create(
        cls,
        user_id: str,
        assistant_id: str,
        title: str,
        voice_style: str,
        topic: str,
        instructions: str = "",
    ) -> "Chat":
        """Create a new chat, enforcing the creation rules."""
        if not user_id:
            raise ValidationError("User ID is required")
        if not assistant_id:
            raise ValidationError("Assistant ID is required")
        if not title or not title.strip():
            raise ValidationError("Chat title is required")

        now = utcnow()
        return cls(
            id=ChatId.generate(),
            user_id=user_id,
            assistant_id=assistant_id,
            title=title,
            voice_style=voice_style,
            topic=topic,
            instructions=instructions,
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def reconstitute(
        cls,
        id: ChatId,
        user_id: str,
        assistant_id: str,
        title: str,
        voice_style: str,
        topic: str,
        instructions: str,
        created_at: datetime,
        updated_at: datetime,
        messages: Sequence[Message] = (),
    ) -> "Chat":
        """Rebuild a chat from persisted state without business validation."""
        chat = cls(
            id=id,
            user_id=user_id,
            assistant_id=assistant_id,
            title=title,
            voice_style=voice_style,
            topic=topic,
            instructions=instructions,
            created_at=created_at,
            updated_at=updated_at,
        )
        chat._messages = list(messages)
        return chat

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    def add_message(self, message: Message) -> None:
        """Append a message that belongs to this chat."""
        if message.chat_id != str(self.id):
            raise ValidationError("Message does not belong to this chat")

        self._messages.append(message)
        self._touch()

    def update_settings(
        self,
        title: Optional[str] = None,
        voice_style: Optional[str] = None,
        topic: Optional[str] = None,
        instructions: Optional[str] = None,
    ) -> None:
        """Apply a partial settings update. ``None`` leaves a field unchanged."""
        if title is not None and not title.strip():
            raise ValidationError("Title cannot be empty")

        if title is not None:
            self.title = title
        if voice_style is not None:
            self.voice_style = voice_style
        if topic is not None:
            self.topic = topic
        if instructions is not None:
            self.instructions = instructions

        self._touch()

    def get_last_message(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def get_message_count(self) -> int:
        return len(self._messages)

    def _touch(self) -> None:
        # updated_at never moves backwards, even if the clock does
        self.updated_at = max(utcnow(), self.updated_at)
