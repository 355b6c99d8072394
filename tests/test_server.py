"""Tests for the MCP tool functions, called directly."""

import json
from pathlib import Path

import pytest

from chatrecall import client as client_module
from chatrecall import server
from chatrecall.config import DataPaths
from chatrecall.library import ImportList
from chatrecall.models import ChatImport

from .conftest import FakeClient, make_chunk


@pytest.fixture()
def paths(tmp_path: Path):
    paths = DataPaths(tmp_path / "data")
    server.configure(paths, "files")
    ImportList(paths.imports_path).add(
        ChatImport(name="family", chunks=[make_chunk(f"0{d}/03/2024") for d in range(1, 4)])
    )
    yield paths
    server.configure(paths, "files")


@pytest.fixture()
def fake_client(monkeypatch: pytest.MonkeyPatch) -> FakeClient:
    fake = FakeClient()
    monkeypatch.setattr(client_module, "OpenRouterClient", lambda config: fake)
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    return fake


class TestTools:
    def test_list_chats(self, paths: DataPaths):
        assert json.loads(server.list_chats()) == [{"name": "family", "days": 3, "analyzed": 0}]

    def test_process_window_then_load(self, paths: DataPaths, fake_client: FakeClient):
        result = json.loads(server.process_chat("family", start=1, count=5))

        assert result == {"choices": [{"summary": "ok"}, {"summary": "ok"}]}
        assert len(fake_client.calls) == 2
        assert json.loads(server.load_cache("family")) == [{"summary": "ok"}] * 2
        assert json.loads(server.list_chats())[0]["analyzed"] == 2

    def test_process_without_key(self, paths: DataPaths):
        assert server.process_chat("family").startswith("Configuration error")

    def test_process_unknown_chat(self, paths: DataPaths, fake_client: FakeClient):
        assert server.process_chat("nobody") == "Chat not found: nobody"
        assert fake_client.calls == []

    def test_delete_chat(self, paths: DataPaths, fake_client: FakeClient):
        server.process_chat("family")

        assert server.delete_chat("family") == "Deleted family"
        assert json.loads(server.load_cache("family")) == []
        assert json.loads(server.list_chats()) == []

    def test_saved_memories(self, paths: DataPaths):
        assert json.loads(server.load_analysis()) == {"saved_memories": {}}

        server.save_memory("2024-03-01", "Coffee at Luigi's.")

        assert json.loads(server.load_analysis()) == {
            "saved_memories": {"2024-03-01": ["Coffee at Luigi's."]}
        }

    @pytest.mark.parametrize("start, count", [(-1, 10), (0, 0)])
    def test_process_rejects_bad_window(self, paths: DataPaths, fake_client, start, count):
        assert server.process_chat("family", start=start, count=count).startswith("Error:")
        assert fake_client.calls == []

    def test_empty_name_is_reported(self, paths: DataPaths):
        assert server.load_cache("").startswith("Error:")
        assert server.delete_chat("").startswith("Error:")
