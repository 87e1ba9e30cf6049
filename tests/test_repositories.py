"""Test suite for the chat repositories."""

import json

import pytest

from conftest import make_chat
from voice_chat.domain.errors import ChatAlreadyExistsError, NotFoundError
from voice_chat.domain.identifiers import ChatId
from voice_chat.domain.models import Message
from voice_chat.repositories.file import dehydrate, hydrate


@pytest.mark.asyncio
async def test_save_and_find(repository):
    """Test a saved chat can be found by id, user and assistant."""
    chat = make_chat(user_id="u1", assistant_id="aria")
    other = make_chat(user_id="u2", assistant_id="milo")
    await repository.save(chat)
    await repository.save(other)

    found = await repository.find_by_id(chat.id)
    assert found is not None
    assert found.id == chat.id
    assert found.title == chat.title

    assert [c.id for c in await repository.find_by_user_id("u1")] == [chat.id]
    assert [c.id for c in await repository.find_by_assistant_id("milo")] == [other.id]
    assert await repository.find_by_user_id("nobody") == []


@pytest.mark.asyncio
async def test_find_missing_returns_none(repository):
    assert await repository.find_by_id(ChatId.generate()) is None
    assert await repository.exists(ChatId.generate()) is False


@pytest.mark.asyncio
async def test_save_rejects_duplicate_id(repository):
    chat = make_chat()
    await repository.save(chat)
    with pytest.raises(ChatAlreadyExistsError):
        await repository.save(chat)


@pytest.mark.asyncio
async def test_update_replaces_record(repository):
    """Test update stores the new state of an existing chat."""
    chat = make_chat()
    await repository.save(chat)

    chat.update_settings(title="Renamed")
    chat.add_message(Message.create_user_text_message(str(chat.id), "Hello"))
    await repository.update(chat)

    stored = await repository.find_by_id(chat.id)
    assert stored.title == "Renamed"
    assert stored.get_message_count() == 1
    assert stored.get_last_message().content == "Hello"


@pytest.mark.asyncio
async def test_update_missing_chat(repository):
    with pytest.raises(NotFoundError):
        await repository.update(make_chat())


@pytest.mark.asyncio
async def test_delete_is_idempotent(repository):
    """Test delete removes the chat and tolerates a second call."""
    chat = make_chat()
    await repository.save(chat)
    assert await repository.exists(chat.id) is True

    await repository.delete(chat.id)
    await repository.delete(chat.id)

    assert await repository.exists(chat.id) is False
    assert await repository.find_by_id(chat.id) is None


@pytest.mark.asyncio
async def test_file_store_created_lazily(file_repository):
    """Test the directory and empty store appear on first access."""
    assert not file_repository.data_file.exists()

    assert await file_repository.find_by_user_id("u1") == []

    assert file_repository.data_file.exists()
    assert json.loads(file_repository.data_file.read_text()) == []


@pytest.mark.asyncio
async def test_file_record_layout(file_repository):
    """Test the stored JSON uses the camelCase record shape."""
    chat = make_chat()
    chat.add_message(Message.create_user_text_message(str(chat.id), "Hello"))
    chat.add_message(
        Message.create_user_voice_message(str(chat.id), "Voice", "https://cdn.test/v.webm", 3.0)
    )
    await file_repository.save(chat)

    records = json.loads(file_repository.data_file.read_text())
    assert len(records) == 1
    record = records[0]
    assert set(record) == {
        "id", "userId", "assistantId", "title", "voiceStyle", "topic",
        "instructions", "createdAt", "updatedAt", "messages",
    }
    text, voice = record["messages"]
    assert set(text) == {"id", "chatId", "role", "content", "type", "timestamp"}
    assert voice["audioUrl"] == "https://cdn.test/v.webm"
    assert voice["duration"] == 3.0
    assert record["createdAt"].startswith("2024-05-01T08:00:00")


@pytest.mark.asyncio
async def test_file_reads_existing_records(file_repository):
    """Test records written by another process are hydrated."""
    file_repository.data_file.parent.mkdir(parents=True)
    file_repository.data_file.write_text(json.dumps([
        {
            "id": "chat-1",
            "userId": "u1",
            "assistantId": "aria",
            "title": "Imported",
            "voiceStyle": "Calm",
            "topic": "Reflection",
            "instructions": "",
            "createdAt": "2024-01-01T10:00:00.000Z",
            "updatedAt": "2024-01-01T10:05:00.000Z",
            "messages": [
                {
                    "id": "m-1",
                    "chatId": "chat-1",
                    "role": "user",
                    "content": "Hi",
                    "type": "text",
                    "timestamp": "2024-01-01T10:05:00.000Z",
                }
            ],
        }
    ]))

    chat = await file_repository.find_by_id(ChatId.from_string("chat-1"))
    assert chat.title == "Imported"
    assert chat.updated_at.isoformat() == "2024-01-01T10:05:00+00:00"
    assert chat.get_last_message().content == "Hi"


@pytest.mark.asyncio
async def test_file_unparseable_store_reads_empty(file_repository):
    file_repository.data_file.parent.mkdir(parents=True)
    file_repository.data_file.write_text("{not json")

    assert await file_repository.find_by_user_id("u1") == []


def test_dehydrate_hydrate_round_trip():
    """Test serialisation preserves every field and message order."""
    chat = make_chat(minutes=5)
    chat.add_message(Message.create_user_text_message(str(chat.id), "one"))
    chat.add_message(
        Message.create_user_voice_message(str(chat.id), "two", "https://cdn.test/2.webm", 1.25)
    )
    chat.add_message(Message.create_assistant_message(str(chat.id), "three"))

    restored = hydrate(dehydrate(chat))

    for field in (
        "id", "user_id", "assistant_id", "title", "voice_style",
        "topic", "instructions", "created_at", "updated_at",
    ):
        assert getattr(restored, field) == getattr(chat, field)
    assert restored.messages == chat.messages
