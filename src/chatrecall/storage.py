"""Key-value stores for cached chunk results.

Keys are ``(partition, index)`` pairs: one partition per chat, one record per
global chunk index. Values are JSON text. Backends raise ``OSError`` /
``sqlite3.Error`` as-is; ``ChunkCache`` turns them into ``StorageError``.
"""

from __future__ import annotations

import os
import shutil
import sqlite3
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path


class ChunkStore(ABC):
    """Abstract key-value store addressed by (partition, index)."""

    @abstractmethod
    def read(self, partition: str, index: int) -> str | None:
        """Return the stored text, or None if the key is absent."""
        ...

    @abstractmethod
    def write(self, partition: str, index: int, data: str) -> None:
        """Store *data*, creating the partition if needed."""
        ...

    @abstractmethod
    def indices(self, partition: str) -> list[int]:
        """All indices stored in *partition*, ascending."""
        ...

    @abstractmethod
    def drop(self, partition: str) -> None:
        """Delete the whole partition. Missing partitions are ignored."""
        ...

    @abstractmethod
    def partitions(self) -> list[str]:
        ...

    def close(self) -> None:
        pass


class DirectoryChunkStore(ChunkStore):
    """One directory per partition, one ``<index>.json`` file per entry."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _partition_dir(self, partition: str) -> Path:
        return self.root / partition

    def _entry_path(self, partition: str, index: int) -> Path:
        return self._partition_dir(partition) / f"{index}.json"

    def read(self, partition: str, index: int) -> str | None:
        path = self._entry_path(partition, index)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, partition: str, index: int, data: str) -> None:
        directory = self._partition_dir(partition)
        directory.mkdir(parents=True, exist_ok=True)

        # Temp file in the same directory, then rename: readers never see half a file
        fd, temp_path = tempfile.mkstemp(dir=directory, suffix=".tmp", prefix=".chunk_")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            Path(temp_path).replace(self._entry_path(partition, index))
        except BaseException:
            Path(temp_path).unlink(missing_ok=True)
            raise

    def indices(self, partition: str) -> list[int]:
        directory = self._partition_dir(partition)
        if not directory.is_dir():
            return []

        found: list[int] = []
        for path in directory.glob("*.json"):
            # Only numeric stems are entries
            if path.stem.isdigit():
                found.append(int(path.stem))
        return sorted(found)

    def drop(self, partition: str) -> None:
        directory = self._partition_dir(partition)
        if directory.exists():
            shutil.rmtree(directory)

    def partitions(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_dir())


class SqliteChunkStore(ChunkStore):
    """SQLite-backed store: a single table keyed by (partition, chunk_index)."""

    def __init__(self, db_path: Path):
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._migrate()

    def _migrate(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS chunk_cache (
                partition TEXT NOT NULL,
                chunk_index INTEGER NOT NULL,
                payload TEXT NOT NULL,
                created_at TEXT NOT NULL,
                PRIMARY KEY (partition, chunk_index)
            );
        """)
        self.conn.commit()

    def read(self, partition: str, index: int) -> str | None:
        row = self.conn.execute(
            "SELECT payload FROM chunk_cache WHERE partition = ? AND chunk_index = ?",
            (partition, index),
        ).fetchone()
        return row["payload"] if row else None

    def write(self, partition: str, index: int, data: str) -> None:
        self.conn.execute(
            """INSERT OR REPLACE INTO chunk_cache (partition, chunk_index, payload, created_at)
               VALUES (?, ?, ?, ?)""",
            (partition, index, data, datetime.now(timezone.utc).isoformat()),
        )
        self.conn.commit()

    def indices(self, partition: str) -> list[int]:
        rows = self.conn.execute(
            "SELECT chunk_index FROM chunk_cache WHERE partition = ? ORDER BY chunk_index",
            (partition,),
        ).fetchall()
        return [r["chunk_index"] for r in rows]

    def drop(self, partition: str) -> None:
        self.conn.execute("DELETE FROM chunk_cache WHERE partition = ?", (partition,))
        self.conn.commit()

    def partitions(self) -> list[str]:
        rows = self.conn.execute(
            "SELECT DISTINCT partition FROM chunk_cache ORDER BY partition"
        ).fetchall()
        return [r["partition"] for r in rows]

    def close(self):
        self.conn.close()
