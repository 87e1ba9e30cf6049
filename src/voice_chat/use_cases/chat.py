"""Chat use cases.

Each use case validates its input eagerly, talks to the repository port and
returns (or mutates) the Chat aggregate. Repository failures propagate
unchanged.
"""

from typing import Annotated, Any, List, Literal, Mapping, Optional, Type, TypeVar, Union

import structlog
from pydantic import AfterValidator, AnyUrl, BaseModel, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..assistants import AssistantCatalog
from ..domain.errors import AuthorizationError, NotFoundError, ValidationError
from ..domain.identifiers import ChatId
from ..domain.models import TITLE_MAX_LENGTH, Chat, Message
from ..repositories.base import ChatRepository

logger = structlog.get_logger()

MAX_CHATS_PER_USER = 50

_url = TypeAdapter(AnyUrl)


def _well_formed_url(value: str) -> str:
    # keep the caller's string, only check that it parses
    try:
        _url.validate_python(value)
    except PydanticValidationError:
        raise ValueError("Invalid URL") from None
    return value


Url = Annotated[str, AfterValidator(_well_formed_url)]
Title = Annotated[str, Field(min_length=1, max_length=TITLE_MAX_LENGTH)]
Required = Annotated[str, Field(min_length=1)]


class CreateChatInput(BaseModel):
    user_id: Required
    assistant_id: Required
    title: Title
    voice_style: Required
    topic: Required
    instructions: str = ""


class SendMessageInput(BaseModel):
    chat_id: Required
    role: Literal["user", "assistant"]
    content: Required
    type: Literal["text", "voice"]
    audio_url: Optional[Url] = None
    duration: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)


class UpdateChatSettingsInput(BaseModel):
    """Partial settings update. Fields left as None are not changed."""

    chat_id: Required
    title: Optional[Title] = None
    voice_style: Optional[str] = None
    topic: Optional[str] = None
    instructions: Optional[str] = None


InputT = TypeVar("InputT", bound=BaseModel)


def parse_input(schema: Type[InputT], dto: Union[InputT, Mapping[str, Any]], message: str) -> InputT:
    """Validate a DTO against its schema, raising the domain ValidationError."""
    try:
        return schema.model_validate(dto)
    except PydanticValidationError as e:
        raise ValidationError(
            message,
            e.errors(include_url=False, include_context=False, include_input=False),
        ) from e


def most_recent_first(chats: List[Chat]) -> List[Chat]:
    # sorted() is stable, so ties keep retrieval order
    return sorted(chats, key=lambda chat: chat.updated_at, reverse=True)


class CreateChatUseCase:
    """Create a new chat for a user."""

    def __init__(
        self,
        chat_repository: ChatRepository,
        max_chats_per_user: int = MAX_CHATS_PER_USER,
        assistants: Optional[AssistantCatalog] = None,
    ) -> None:
        self.chat_repository = chat_repository
        self.max_chats_per_user = max_chats_per_user
        self.assistants = assistants

    async def execute(self, dto: Union[CreateChatInput, Mapping[str, Any]]) -> Chat:
        data = parse_input(CreateChatInput, dto, "Invalid chat data")

        if self.assistants is not None and len(self.assistants) and data.assistant_id not in self.assistants:
            raise ValidationError(f"Unknown assistant '{data.assistant_id}'")

        user_chats = await self.chat_repository.find_by_user_id(data.user_id)
        if len(user_chats) >= self.max_chats_per_user:
            logger.warning("chat_limit_reached", user_id=data.user_id, limit=self.max_chats_per_user)
            raise ValidationError(
                f"Maximum chat limit reached ({self.max_chats_per_user}). "
                "Please delete some chats before creating new ones."
            )

        chat = Chat.create(
            user_id=data.user_id,
            assistant_id=data.assistant_id,
            title=data.title,
            voice_style=data.voice_style,
            topic=data.topic,
            instructions=data.instructions,
        )
        await self.chat_repository.save(chat)
        logger.info("chat_created", chat_id=str(chat.id), user_id=chat.user_id)
        return chat


class GetUserChatsUseCase:
    """List a user's chats, most recently updated first."""

    def __init__(self, chat_repository: ChatRepository) -> None:
        self.chat_repository = chat_repository

    async def execute(self, user_id: str) -> List[Chat]:
        if not user_id or not user_id.strip():
            raise ValidationError("User ID is required")

        chats = await self.chat_repository.find_by_user_id(user_id)
        return most_recent_first(chats)


class GetAssistantChatsUseCase:
    """List a user's chats with one assistant, most recently updated first."""

    def __init__(self, chat_repository: ChatRepository) -> None:
        self.chat_repository = chat_repository

    async def execute(self, user_id: str, assistant_id: str) -> List[Chat]:
        if not user_id or not user_id.strip():
            raise ValidationError("User ID is required")
        if not assistant_id or not assistant_id.strip():
            raise ValidationError("Assistant ID is required")

        chats = await self.chat_repository.find_by_assistant_id(assistant_id)
        return most_recent_first([chat for chat in chats if chat.user_id == user_id])


class GetChatByIdUseCase:
    def __init__(self, chat_repository: ChatRepository) -> None:
        self.chat_repository = chat_repository

    async def execute(self, chat_id: str) -> Chat:
        chat = await self.chat_repository.find_by_id(ChatId.from_string(chat_id))
        if chat is None:
            raise NotFoundError("Chat", chat_id)
        return chat


class SendMessageUseCase:
    """Append a message to an existing chat."""

    def __init__(self, chat_repository: ChatRepository) -> None:
        self.chat_repository = chat_repository

    async def execute(self, dto: Union[SendMessageInput, Mapping[str, Any]]) -> Chat:
        data = parse_input(SendMessageInput, dto, "Invalid message data")

        chat = await self.chat_repository.find_by_id(ChatId.from_string(data.chat_id))
        if chat is None:
            raise NotFoundError("Chat", data.chat_id)

        if data.role == "user":
            if data.type == "voice" and data.audio_url and data.duration:
                message = Message.create_user_voice_message(
                    data.chat_id, data.content, data.audio_url, data.duration
                )
            else:
                message = Message.create_user_text_message(data.chat_id, data.content)
        else:
            message = Message.create_assistant_message(data.chat_id, data.content)

        chat.add_message(message)
        await self.chat_repository.update(chat)
        logger.info(
            "message_added",
            chat_id=data.chat_id,
            message_role=message.role,
            message_type=message.type,
        )
        return chat


class UpdateChatSettingsUseCase:
    """Apply a partial settings update to a chat."""

    def __init__(self, chat_repository: ChatRepository) -> None:
        self.chat_repository = chat_repository

    async def execute(self, dto: Union[UpdateChatSettingsInput, Mapping[str, Any]]) -> Chat:
        data = parse_input(UpdateChatSettingsInput, dto, "Invalid chat settings data")

        chat = await self.chat_repository.find_by_id(ChatId.from_string(data.chat_id))
        if chat is None:
            raise NotFoundError("Chat", data.chat_id)

        chat.update_settings(
            title=data.title,
            voice_style=data.voice_style,
            topic=data.topic,
            instructions=data.instructions,
        )
        await self.chat_repository.update(chat)
        logger.info("chat_settings_updated", chat_id=data.chat_id)
        return chat


class DeleteChatUseCase:
    """Delete a chat on behalf of its owner."""

    def __init__(self, chat_repository: ChatRepository) -> None:
        self.chat_repository = chat_repository

    async def execute(self, chat_id: str, user_id: str) -> None:
        chat_key = ChatId.from_string(chat_id)
        chat = await self.chat_repository.find_by_id(chat_key)
        if chat is None:
            raise NotFoundError("Chat", chat_id)

        if chat.user_id != user_id:
            logger.warning("chat_delete_forbidden", chat_id=chat_id, user_id=user_id)
            raise AuthorizationError("You can only delete your own chats")

        await self.chat_repository.delete(chat_key)
        logger.info("chat_deleted", chat_id=chat_id, user_id=user_id)
