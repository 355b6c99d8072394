"""Batch processing: cache first, analysis service on a miss.

For every chunk in a batch, in order:

1. Look up ``(chat, global index)`` in the cache. A hit is returned as
   stored, with no service call and no rewrite.
2. On a miss, send the chunk as compact JSON with the system prompt.
3. Normalize the completion text into a JSON value.
4. Store it, then append it to the output.

Batches are not atomic. If the service fails halfway, the chunks before
the failure stay cached and the error propagates; resubmitting the same
batch picks up where it stopped without repeating finished calls.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .cache import MISSING, ChunkCache
from .chunker import iter_batches
from .config import MAX_BATCH_CHUNKS
from .models import AnalysisResult, ChatBatch, ChatImport, DayChunk
from .normalizer import normalize
from .prompt import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


def serialize_chunk(chunk: DayChunk) -> str:
    return chunk.model_dump_json()


class BatchProcessor:
    """Runs batches through the cache and an analysis client.

    *client* is anything with ``complete(system_prompt, user_content) -> str``
    that raises ExternalServiceError on failure (see OpenRouterClient).
    """

    def __init__(self, cache: ChunkCache, client, system_prompt: str = SYSTEM_PROMPT):
        self.cache = cache
        self.client = client
        self.system_prompt = system_prompt

    def process_chunk(self, name: str, index: int, chunk: DayChunk) -> AnalysisResult:
        cached = self.cache.lookup(name, index, default=MISSING)
        if cached is not MISSING:
            logger.debug("Cache hit for %r chunk %d", name, index)
            return cached

        logger.info(
            "Analyzing %r chunk %d (%s, %d messages)", name, index, chunk.date, len(chunk.messages)
        )
        completion = self.client.complete(self.system_prompt, serialize_chunk(chunk))
        result = normalize(completion)

        # Stored before returning; a later failure in the batch keeps it
        self.cache.store(name, index, result)
        return result

    def process(self, batch: ChatBatch) -> list[AnalysisResult]:
        """Return one result per chunk, in input order."""
        results: list[AnalysisResult] = []
        for position, chunk in enumerate(batch.chunks):
            index = batch.global_index(position)
            results.append(self.process_chunk(batch.name, index, chunk))
        return results

    def process_chat(
        self,
        chat: ChatImport,
        batch_size: int = MAX_BATCH_CHUNKS,
        start: int = 0,
        stop: int | None = None,
        on_batch: Callable[[ChatBatch, list[AnalysisResult]], None] | None = None,
    ) -> list[AnalysisResult]:
        """Process ``chat.chunks[start:stop]`` batch by batch.

        ``on_batch`` is called after each batch completes. Errors propagate
        with the same partial-commit behaviour as ``process``.
        """
        results: list[AnalysisResult] = []
        for batch in iter_batches(chat, size=batch_size, start=start, stop=stop):
            batch_results = self.process(batch)
            results.extend(batch_results)
            if on_batch is not None:
                on_batch(batch, batch_results)
        return results
