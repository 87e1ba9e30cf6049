"""Domain error taxonomy.

These are business-logic errors, not HTTP errors. The API layer translates
them into status codes.
"""

from typing import Any, List, Optional


class ChatError(Exception):
    """Base class for errors raised by the chat core."""

    code = "CHAT_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ChatError):
    """Input failed schema or business-rule checks."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: Optional[List[Any]] = None) -> None:
        super().__init__(message)
        self.details = details


class NotFoundError(ChatError):
    """A referenced resource does not exist."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Optional[str] = None) -> None:
        if identifier:
            message = f"{resource} with id '{identifier}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(message)
        self.resource = resource
        self.identifier = identifier


class AuthorizationError(ChatError):
    """The requester does not own the resource."""

    code = "FORBIDDEN"


class ChatAlreadyExistsError(ChatError):
    """A chat with the same id is already stored."""

    code = "CONFLICT"

    def __init__(self, chat_id: str) -> None:
        super().__init__(f"Chat with id '{chat_id}' already exists")
        self.chat_id = chat_id
