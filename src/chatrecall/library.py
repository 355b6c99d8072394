"""JSON persistence for the import list and saved recall memories."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from .errors import StorageError
from .models import AnalysisData, ChatImport

logger = logging.getLogger(__name__)

_IMPORTS_ADAPTER = TypeAdapter(list[ChatImport])


def _write_text(path: Path, text: str):
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Failed to write {path}: {e}") from e


class ImportList:
    """The list of imported chats, stored as a JSON array."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> list[ChatImport]:
        """Return all imports; a missing file means none yet."""
        if not self.path.exists():
            return []
        try:
            data = self.path.read_text(encoding="utf-8")
            return _IMPORTS_ADAPTER.validate_json(data)
        except OSError as e:
            raise StorageError(f"Failed to read imports file: {e}") from e
        except ValidationError as e:
            raise StorageError(f"Failed to parse imports JSON: {e}") from e

    def save(self, imports: list[ChatImport]):
        text = _IMPORTS_ADAPTER.dump_json(imports, indent=2).decode("utf-8")
        _write_text(self.path, text)

    def names(self) -> list[str]:
        return [c.name for c in self.load()]

    def get(self, name: str) -> ChatImport | None:
        for chat in self.load():
            if chat.name == name:
                return chat
        return None

    def add(self, chat: ChatImport, replace: bool = True) -> bool:
        """Add a chat, replacing a same-named entry when *replace* is set.

        Returns False if the chat already existed and was left alone.
        """
        imports = self.load()
        for i, existing in enumerate(imports):
            if existing.name == chat.name:
                if not replace:
                    return False
                imports[i] = chat
                break
        else:
            imports.append(chat)
        self.save(imports)
        return True

    def remove(self, name: str) -> bool:
        imports = self.load()
        kept = [c for c in imports if c.name != name]
        if len(kept) == len(imports):
            return False
        self.save(kept)
        return True


class AnalysisFile:
    """Saved recall sentences, keyed by date."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> AnalysisData:
        if not self.path.exists():
            return AnalysisData()
        try:
            return AnalysisData.model_validate_json(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StorageError(f"Failed to read analysis file: {e}") from e
        except ValidationError as e:
            raise StorageError(f"Failed to parse analysis JSON: {e}") from e

    def save(self, data: AnalysisData):
        _write_text(self.path, json.dumps(data.model_dump(), indent=2, ensure_ascii=False))

    def save_memory(self, date_key: str, memory: str) -> AnalysisData:
        """Append *memory* to the sentences saved under *date_key*."""
        data = self.load()
        data.saved_memories.setdefault(date_key, []).append(memory)
        self.save(data)
        logger.debug("Saved memory for %s", date_key)
        return data
