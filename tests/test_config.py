"""Test suite for settings and the assistant catalog."""

import json

from voice_chat.api.app import build_repository
from voice_chat.assistants import AssistantCatalog
from voice_chat.config import Settings
from voice_chat.repositories.file import FileSystemChatRepository
from voice_chat.repositories.memory import InMemoryChatRepository


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("VOICE_CHAT_REPOSITORY_BACKEND", "file")
    monkeypatch.setenv("VOICE_CHAT_DATA_FILE", str(tmp_path / "chats.json"))
    monkeypatch.setenv("VOICE_CHAT_MAX_CHATS_PER_USER", "5")
    monkeypatch.setenv("VOICE_CHAT_TRUST_USER_HEADER", "false")

    settings = Settings(_env_file=None)

    assert settings.max_chats_per_user == 5
    assert settings.trust_user_header is False
    repository = build_repository(settings)
    assert isinstance(repository, FileSystemChatRepository)
    assert repository.data_file == tmp_path / "chats.json"


def test_memory_backend(monkeypatch):
    monkeypatch.setenv("VOICE_CHAT_REPOSITORY_BACKEND", "memory")
    assert isinstance(build_repository(Settings(_env_file=None)), InMemoryChatRepository)


def test_catalog_load(tmp_path):
    path = tmp_path / "assistants.json"
    path.write_text(json.dumps({
        "assistants": [
            {"id": "aria", "name": "Aria", "voiceTag": "alloy", "accentColor": "#fff", "avatarColor": "#000"},
        ]
    }))

    catalog = AssistantCatalog.load(path)

    assert len(catalog) == 1
    assert "aria" in catalog
    assert catalog.get("aria").voice_tag == "alloy"
    assert catalog.get("ghost") is None


def test_catalog_missing_file(tmp_path):
    catalog = AssistantCatalog.load(tmp_path / "nope.json")
    assert len(catalog) == 0
    assert catalog.all() == []
