"""Shared fixtures."""

import os

# The app module wires its composition root at import time
os.environ.setdefault("VOICE_CHAT_REPOSITORY_BACKEND", "memory")

from datetime import datetime, timedelta, timezone

import pytest

from voice_chat.assistants import Assistant, AssistantCatalog
from voice_chat.domain.identifiers import ChatId
from voice_chat.domain.models import Chat
from voice_chat.repositories.file import FileSystemChatRepository
from voice_chat.repositories.memory import InMemoryChatRepository

BASE_TIME = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def make_chat(user_id="u1", assistant_id="aria", title="Morning Chat", minutes=0, messages=()):
    """Build a persisted-looking chat with a fixed update time."""
    stamp = BASE_TIME + timedelta(minutes=minutes)
    return Chat.reconstitute(
        id=ChatId.generate(),
        user_id=user_id,
        assistant_id=assistant_id,
        title=title,
        voice_style="Calm",
        topic="Reflection",
        instructions="",
        created_at=BASE_TIME,
        updated_at=stamp,
        messages=messages,
    )


@pytest.fixture
def memory_repository():
    return InMemoryChatRepository()


@pytest.fixture
def file_repository(tmp_path):
    return FileSystemChatRepository(tmp_path / "store" / "chats.json")


@pytest.fixture(params=["memory", "file"])
def repository(request, tmp_path):
    """Runs a test against both repository implementations."""
    if request.param == "memory":
        return InMemoryChatRepository()
    return FileSystemChatRepository(tmp_path / "chats.json")


@pytest.fixture
def catalog():
    return AssistantCatalog(
        [
            Assistant(id="aria", name="Aria", voice_tag="alloy"),
            Assistant(id="milo", name="Milo", voice_tag="echo"),
        ]
    )
