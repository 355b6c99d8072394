"""Group parsed messages into day-chunks and slice chats into batches."""

from __future__ import annotations

from collections.abc import Iterator

from .config import MAX_BATCH_CHUNKS
from .models import ChatBatch, ChatImport, DayChunk, Message


def chunk_by_day(messages: list[Message]) -> list[DayChunk]:
    """Split messages into runs that share a date.

    Runs are consecutive: a date that shows up again after another day
    starts a new chunk rather than being merged into the earlier one.
    """
    chunks: list[DayChunk] = []
    current: list[Message] = []

    for msg in messages:
        if current and msg.date != current[0].date:
            chunks.append(DayChunk(date=current[0].date, messages=current))
            current = []
        current.append(msg)

    if current:
        chunks.append(DayChunk(date=current[0].date, messages=current))

    return chunks


def iter_batches(
    chat: ChatImport,
    size: int = MAX_BATCH_CHUNKS,
    start: int = 0,
    stop: int | None = None,
) -> Iterator[ChatBatch]:
    """Yield consecutive batches covering ``chat.chunks[start:stop]``.

    Each batch carries the global index of its first chunk.
    """
    if start < 0:
        raise ValueError(f"Start index must not be negative, got {start}")
    if not 1 <= size <= MAX_BATCH_CHUNKS:
        raise ValueError(f"Batch size must be between 1 and {MAX_BATCH_CHUNKS}, got {size}")

    end = len(chat.chunks) if stop is None else min(stop, len(chat.chunks))

    for batch_start in range(start, end, size):
        batch_end = min(batch_start + size, end)
        yield ChatBatch(
            name=chat.name,
            start=batch_start,
            chunks=chat.chunks[batch_start:batch_end],
        )
