"""In-memory repository implementation."""

import asyncio
from typing import Dict, List, Optional

import structlog

from ..domain.errors import ChatAlreadyExistsError, NotFoundError
from ..domain.identifiers import ChatId
from ..domain.models import Chat
from .base import ChatRepository

logger = structlog.get_logger()


class InMemoryChatRepository(ChatRepository):
    """Process-local chat storage for tests and development.

    Data is lost when the process exits.
    """

    def __init__(self) -> None:
        self._chats: Dict[str, Chat] = {}
        self._async_lock = asyncio.Lock()
        logger.info("repository_initialized", backend="memory")

    async def find_by_id(self, chat_id: ChatId) -> Optional[Chat]:
        async with self._async_lock:
            chat = self._chats.get(str(chat_id))
            if chat is None:
                logger.debug("chat_not_found", chat_id=str(chat_id))
            return chat

    async def find_by_user_id(self, user_id: str) -> List[Chat]:
        async with self._async_lock:
            return [chat for chat in self._chats.values() if chat.user_id == user_id]

    async def find_by_assistant_id(self, assistant_id: str) -> List[Chat]:
        async with self._async_lock:
            return [
                chat for chat in self._chats.values()
                if chat.assistant_id == assistant_id
            ]

    async def save(self, chat: Chat) -> None:
        async with self._async_lock:
            key = str(chat.id)
            if key in self._chats:
                raise ChatAlreadyExistsError(key)
            self._chats[key] = chat
            logger.info("chat_saved", chat_id=key)

    async def update(self, chat: Chat) -> None:
        async with self._async_lock:
            key = str(chat.id)
            if key not in self._chats:
                logger.error("chat_not_found_for_update", chat_id=key)
                raise NotFoundError("Chat", key)
            self._chats[key] = chat

    async def delete(self, chat_id: ChatId) -> None:
        async with self._async_lock:
            self._chats.pop(str(chat_id), None)

    async def exists(self, chat_id: ChatId) -> bool:
        async with self._async_lock:
            return str(chat_id) in self._chats
