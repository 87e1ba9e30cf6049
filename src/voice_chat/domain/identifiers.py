"""Identifier value objects for chats and messages."""

from uuid import uuid4

from pydantic import BaseModel, ConfigDict, field_validator

from .errors import ValidationError


class Identifier(BaseModel):
    """Opaque, immutable identifier wrapping a non-empty string."""

    model_config = ConfigDict(frozen=True)

    value: str

    @field_validator("value")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        # ValidationError is not a ValueError, so pydantic lets it through
        if not value or not value.strip():
            raise ValidationError(f"{cls.__name__} cannot be empty")
        return value

    @classmethod
    def generate(cls):
        """Create a fresh random identifier."""
        return cls(value=str(uuid4()))

    @classmethod
    def from_string(cls, value: str):
        """Wrap an existing identifier, e.g. one loaded from storage."""
        return cls(value=value)

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


class ChatId(Identifier):
    """Identifier of a Chat aggregate."""


class MessageId(Identifier):
    """Identifier of a Message within a Chat."""
