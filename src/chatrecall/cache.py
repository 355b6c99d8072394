"""Per-chat cache of analysis results, keyed by global chunk index.

Each chat gets its own partition; each chunk's result is stored under its
position in the chat, not its date, since dates repeat and may be out of
order. Entries are written once and returned verbatim afterwards. The only
way to remove them is to purge the whole chat.

Example:
    >>> cache = ChunkCache(DirectoryChunkStore(Path("data/cache")))
    >>> cache.store("family/group", 0, {"scenes": []})
    >>> cache.lookup("family/group", 0)
    {'scenes': []}
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3

from .config import DataPaths
from .errors import StorageError
from .models import AnalysisResult
from .storage import ChunkStore, DirectoryChunkStore, SqliteChunkStore

logger = logging.getLogger(__name__)

# Sentinel for lookup misses when None itself may be a cached value
MISSING = object()

_UNSAFE_RE = re.compile(r'[/\\:*?"<>|\x00-\x1f]')


def sanitize_name(name: str) -> str:
    """Map a chat name to a filesystem-safe partition name.

    Every cache operation goes through this, so the same chat name always
    lands in the same partition.
    """
    if not name:
        raise StorageError("Chat name must not be empty")
    safe = _UNSAFE_RE.sub("_", name)
    if safe in (".", ".."):
        safe = "_" * len(safe)
    return safe


class ChunkCache:
    """Lookup, write-through and bulk deletion of chunk results."""

    def __init__(self, store: ChunkStore):
        self._store = store

    @classmethod
    def open(cls, paths: DataPaths, backend: str = "files") -> ChunkCache:
        """Open the cache under *paths* with the named backend."""
        if backend == "sqlite":
            try:
                return cls(SqliteChunkStore(paths.sqlite_path))
            except (OSError, sqlite3.Error) as e:
                raise StorageError(f"Failed to open cache database {paths.sqlite_path}: {e}") from e
        return cls(DirectoryChunkStore(paths.cache_dir))

    def lookup(self, name: str, index: int, default: object = None) -> AnalysisResult:
        """Return the cached result, or *default* on a miss.

        A miss is not an error; a present but unreadable entry is. Pass
        ``default=MISSING`` to tell a miss apart from a cached JSON ``null``.
        """
        partition = sanitize_name(name)
        try:
            text = self._store.read(partition, index)
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Cache read error: {e}", key=(name, index)) from e

        if text is None:
            return default

        try:
            return json.loads(text)
        except ValueError as e:
            raise StorageError(f"Cache JSON parse error: {e}", key=(name, index)) from e

    def store(self, name: str, index: int, result: AnalysisResult) -> None:
        """Persist *result* under (name, index)."""
        partition = sanitize_name(name)
        try:
            text = json.dumps(result, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Result is not JSON-serializable: {e}", key=(name, index)) from e

        try:
            self._store.write(partition, index, text)
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Failed to write cache entry: {e}", key=(name, index)) from e

        logger.debug("Cached chunk %d of %r", index, name)

    def indices(self, name: str) -> list[int]:
        """Cached global indices for a chat, ascending."""
        partition = sanitize_name(name)
        try:
            return self._store.indices(partition)
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Cache dir read error for {name!r}: {e}") from e

    def list_ordered(self, name: str) -> list[AnalysisResult]:
        """Every cached result for a chat, ordered by global index.

        A chat without a partition yields an empty list.
        """
        results: list[AnalysisResult] = []
        for index in self.indices(name):
            value = self.lookup(name, index, default=MISSING)
            if value is not MISSING:
                results.append(value)
        return results

    def purge(self, name: str) -> None:
        """Delete all cached results for a chat. Purging an unknown chat is a no-op."""
        partition = sanitize_name(name)
        try:
            self._store.drop(partition)
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Failed to remove cache for {name!r}: {e}") from e
        logger.info("Purged cache for %r", name)

    def conversations(self) -> list[str]:
        """Partition names currently in the cache (sanitized form)."""
        try:
            return self._store.partitions()
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Cache dir read error: {e}") from e

    def close(self) -> None:
        self._store.close()
