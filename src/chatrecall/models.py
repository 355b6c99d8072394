"""Data models for imported chats, batches and saved analysis."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .config import MAX_BATCH_CHUNKS

# Whatever the analysis service returned for one chunk: any JSON value
AnalysisResult = Any


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str
    time: str
    author: str
    text: str


class DayChunk(BaseModel):
    """One day's worth of messages, the unit sent for analysis."""

    model_config = ConfigDict(frozen=True)

    date: str
    messages: list[Message] = []


class ChatBatch(BaseModel):
    """A contiguous slice of a chat's day-chunks.

    ``name`` identifies the chat; ``start`` is the global index of
    ``chunks[0]`` within the full chat.
    """

    name: str
    start: int = Field(default=0, ge=0)
    chunks: list[DayChunk] = Field(default_factory=list, max_length=MAX_BATCH_CHUNKS)

    def global_index(self, position: int) -> int:
        return self.start + position


class ChatImport(BaseModel):
    """An imported chat with its full list of day-chunks."""

    name: str
    chunks: list[DayChunk] = []


class AnalysisData(BaseModel):
    """Saved recall sentences keyed by date (yyyy-MM-dd)."""

    saved_memories: dict[str, list[str]] = {}
