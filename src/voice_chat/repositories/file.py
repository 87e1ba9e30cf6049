"""JSON-file repository implementation.

All chats live in one JSON array. Every operation reads the whole file,
works on the records and writes the whole file back. There is no locking:
concurrent writers race and the last write wins.
"""

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic.alias_generators import to_camel

from ..domain.errors import ChatAlreadyExistsError, NotFoundError
from ..domain.identifiers import ChatId, MessageId
from ..domain.models import Chat, Message, MessageType, Role
from .base import ChatRepository

logger = structlog.get_logger()


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageRecord(_Record):
    id: str
    chat_id: str
    role: Role
    content: str
    type: MessageType
    timestamp: datetime
    audio_url: Optional[str] = None
    duration: Optional[float] = None


class ChatRecord(_Record):
    id: str
    user_id: str
    assistant_id: str
    title: str
    voice_style: str
    topic: str
    instructions: str
    created_at: datetime
    updated_at: datetime
    messages: List[MessageRecord] = []


_records = TypeAdapter(List[ChatRecord])


def dehydrate(chat: Chat) -> ChatRecord:
    """Map a Chat aggregate to its stored record shape."""
    return ChatRecord(
        id=str(chat.id),
        user_id=chat.user_id,
        assistant_id=chat.assistant_id,
        title=chat.title,
        voice_style=chat.voice_style,
        topic=chat.topic,
        instructions=chat.instructions,
        created_at=chat.created_at,
        updated_at=chat.updated_at,
        messages=[
            MessageRecord(
                id=str(message.id),
                chat_id=message.chat_id,
                role=message.role,
                content=message.content,
                type=message.type,
                timestamp=message.timestamp,
                audio_url=message.audio_url,
                duration=message.duration,
            )
            for message in chat.messages
        ],
    )


def hydrate(record: ChatRecord) -> Chat:
    """Rebuild a Chat aggregate from a stored record."""
    messages = [
        Message.reconstitute(
            id=MessageId.from_string(message.id),
            chat_id=message.chat_id,
            role=message.role,
            content=message.content,
            type=message.type,
            timestamp=message.timestamp,
            audio_url=message.audio_url,
            duration=message.duration,
        )
        for message in record.messages
    ]
    return Chat.reconstitute(
        id=ChatId.from_string(record.id),
        user_id=record.user_id,
        assistant_id=record.assistant_id,
        title=record.title,
        voice_style=record.voice_style,
        topic=record.topic,
        instructions=record.instructions,
        created_at=record.created_at,
        updated_at=record.updated_at,
        messages=messages,
    )


class FileSystemChatRepository(ChatRepository):
    """Chat storage backed by a single JSON file."""

    def __init__(self, data_file: Union[str, Path]) -> None:
        self.data_file = Path(data_file)
        logger.info("repository_initialized", backend="file", data_file=str(self.data_file))

    def _ensure_store(self) -> None:
        self.data_file.parent.mkdir(parents=True, exist_ok=True)
        if not self.data_file.exists():
            self.data_file.write_text("[]", encoding="utf-8")
            logger.info("chat_store_created", data_file=str(self.data_file))

    def _read_records(self) -> List[ChatRecord]:
        self._ensure_store()
        raw = self.data_file.read_text(encoding="utf-8")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("chat_store_unreadable", data_file=str(self.data_file))
            return []
        return _records.validate_python(data)

    def _write_records(self, records: List[ChatRecord]) -> None:
        self._ensure_store()
        payload = [
            record.model_dump(mode="json", by_alias=True, exclude_none=True)
            for record in records
        ]
        self.data_file.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    async def _read_all(self) -> List[ChatRecord]:
        return await asyncio.to_thread(self._read_records)

    async def _write_all(self, records: List[ChatRecord]) -> None:
        await asyncio.to_thread(self._write_records, records)

    async def find_by_id(self, chat_id: ChatId) -> Optional[Chat]:
        records = await self._read_all()
        for record in records:
            if record.id == str(chat_id):
                return hydrate(record)
        logger.debug("chat_not_found", chat_id=str(chat_id))
        return None

    async def find_by_user_id(self, user_id: str) -> List[Chat]:
        records = await self._read_all()
        return [hydrate(record) for record in records if record.user_id == user_id]

    async def find_by_assistant_id(self, assistant_id: str) -> List[Chat]:
        records = await self._read_all()
        return [
            hydrate(record) for record in records
            if record.assistant_id == assistant_id
        ]

    async def save(self, chat: Chat) -> None:
        records = await self._read_all()
        key = str(chat.id)
        if any(record.id == key for record in records):
            raise ChatAlreadyExistsError(key)
        records.append(dehydrate(chat))
        await self._write_all(records)
        logger.info("chat_saved", chat_id=key)

    async def update(self, chat: Chat) -> None:
        records = await self._read_all()
        key = str(chat.id)
        for index, record in enumerate(records):
            if record.id == key:
                records[index] = dehydrate(chat)
                break
        else:
            logger.error("chat_not_found_for_update", chat_id=key)
            raise NotFoundError("Chat", key)
        await self._write_all(records)

    async def delete(self, chat_id: ChatId) -> None:
        records = await self._read_all()
        remaining = [record for record in records if record.id != str(chat_id)]
        await self._write_all(remaining)

    async def exists(self, chat_id: ChatId) -> bool:
        records = await self._read_all()
        return any(record.id == str(chat_id) for record in records)
