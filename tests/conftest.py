from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest

from chatrecall.cache import ChunkCache
from chatrecall.errors import ExternalServiceError
from chatrecall.models import ChatBatch, DayChunk, Message
from chatrecall.storage import DirectoryChunkStore

FENCED_SUMMARY = '```json\n{"summary":"ok"}\n```'

WHATSAPP_IOS = (
    "[01/03/2024, 09:15:02] Messages and calls are end-to-end encrypted.\n"
    "[01/03/2024, 09:15:02] Alice: Morning! Coffee at Luigi's?\n"
    "[01/03/2024, 09:16:40] Bob: Sure, 10am\n"
    "[02/03/2024, 20:01:00] Alice: The hike was great\n"
    "and the view from the top even better\n"
    "[02/03/2024, 20:05:13] Bob: \u200eimage omitted\n"
)


class FakeClient:
    """Analysis client double: returns queued completions, counts calls.

    Queue entries that are exceptions are raised instead of returned.
    """

    def __init__(self, *responses: str | Exception, default: str = FENCED_SUMMARY):
        self.responses = list(responses)
        self.default = default
        self.calls: list[tuple[str, str]] = []

    def complete(self, system_prompt: str, user_content: str) -> str:
        self.calls.append((system_prompt, user_content))
        if self.responses:
            response = self.responses.pop(0)
        else:
            response = self.default
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        pass


def make_chunk(date: str, *texts: str) -> DayChunk:
    texts = texts or ("hello",)
    return DayChunk(
        date=date,
        messages=[Message(date=date, time="12:00", author="Alice", text=t) for t in texts],
    )


def make_batch(name: str, start: int, size: int) -> ChatBatch:
    return ChatBatch(
        name=name,
        start=start,
        chunks=[make_chunk(f"{i + 1:02d}/01/2024", f"day {start + i}") for i in range(size)],
    )


def build_zip(files: dict[str, bytes | str]) -> bytes:
    """Create an in-memory zip archive from a dict of {path: content}."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in files.items():
            if isinstance(data, str):
                data = data.encode("utf-8")
            zf.writestr(name, data)
    return buf.getvalue()


@pytest.fixture()
def cache(tmp_path: Path) -> ChunkCache:
    return ChunkCache(DirectoryChunkStore(tmp_path / "cache"))


@pytest.fixture()
def failing_second_call() -> FakeClient:
    return FakeClient(FENCED_SUMMARY, ExternalServiceError("OpenRouter API error", status=502))


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Keep tests independent of the developer's environment and .env files."""
    for var in (
        "OPENROUTER_API_KEY",
        "VITE_OPENROUTER_API_KEY",
        "OPENROUTER_BASE_URL",
        "VITE_OPENROUTER_BASE_URL",
        "OPENROUTER_MODEL",
        "VITE_OPENROUTER_MODEL",
        "SITE_URL",
        "VITE_SITE_URL",
        "SITE_NAME",
        "VITE_SITE_NAME",
        "CHATRECALL_DATA_DIR",
        "CHATRECALL_CACHE_BACKEND",
        "CHATRECALL_REQUEST_TIMEOUT",
        "CHATRECALL_SYSTEM_PROMPT_FILE",
    ):
        monkeypatch.delenv(var, raising=False)
    workdir = tmp_path / "cwd" / "app"
    workdir.mkdir(parents=True)
    monkeypatch.chdir(workdir)
