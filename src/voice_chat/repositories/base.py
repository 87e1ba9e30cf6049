"""Base repository interface."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..domain.identifiers import ChatId
from ..domain.models import Chat


class ChatRepository(ABC):
    """Abstract base class for chat repositories."""

    @abstractmethod
    async def find_by_id(self, chat_id: ChatId) -> Optional[Chat]:
        """Retrieve a chat by ID, or None if it does not exist."""
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: str) -> List[Chat]:
        """List all chats owned by a user."""
        pass

    @abstractmethod
    async def find_by_assistant_id(self, assistant_id: str) -> List[Chat]:
        """List all chats that reference an assistant."""
        pass

    @abstractmethod
    async def save(self, chat: Chat) -> None:
        """Store a new chat. Raises ChatAlreadyExistsError on a duplicate id."""
        pass

    @abstractmethod
    async def update(self, chat: Chat) -> None:
        """Replace a stored chat. Raises NotFoundError if it is missing."""
        pass

    @abstractmethod
    async def delete(self, chat_id: ChatId) -> None:
        """Remove a chat if present."""
        pass

    @abstractmethod
    async def exists(self, chat_id: ChatId) -> bool:
        """Check whether a chat is stored."""
        pass
