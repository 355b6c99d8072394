"""FastMCP server exposing chat processing, cache and saved-memory tools."""

from __future__ import annotations

import json
import logging
import sys

from mcp.server.fastmcp import FastMCP

from .cache import ChunkCache
from .config import (
    MAX_BATCH_CHUNKS,
    DataPaths,
    load_service_config,
    resolve_cache_backend,
    resolve_data_dir,
)
from .errors import ChatRecallError, ConfigurationError
from .library import AnalysisFile, ImportList

# Logging to stderr only: stdout is the MCP JSON-RPC transport
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "chatrecall",
    instructions=(
        "Analyze and browse the user's imported WhatsApp chats. "
        "Use list_chats to see imported chats and how much of each is analyzed. "
        "Use process_chat to analyze a window of day-chunks (cached results are reused). "
        "Use load_cache to read the analysis results of a chat. "
        "Use save_memory / load_analysis to manage saved recall sentences."
    ),
)

# Singletons, reused across tool calls
_paths: DataPaths | None = None
_backend: str | None = None
_cache: ChunkCache | None = None


def configure(paths: DataPaths, backend: str):
    """Point the server at a data directory; resets any open cache."""
    global _paths, _backend, _cache
    if _cache is not None:
        _cache.close()
    _paths, _backend, _cache = paths, backend, None


def _get_paths() -> DataPaths:
    global _paths
    if _paths is None:
        _paths = DataPaths(resolve_data_dir())
    return _paths


def _get_cache() -> ChunkCache:
    global _cache, _backend
    if _cache is None:
        if _backend is None:
            _backend = resolve_cache_backend()
        _cache = ChunkCache.open(_get_paths(), _backend)
    return _cache


def _imports() -> ImportList:
    return ImportList(_get_paths().imports_path)


@mcp.tool()
def list_chats() -> str:
    """List imported chats with their number of days and how many are analyzed."""
    try:
        imports = _imports().load()
        cache = _get_cache()
        rows = [
            {"name": c.name, "days": len(c.chunks), "analyzed": len(cache.indices(c.name))}
            for c in imports
        ]
    except ChatRecallError as e:
        return f"Error: {e}"
    return json.dumps(rows, indent=2, ensure_ascii=False)


@mcp.tool()
def process_chat(name: str, start: int = 0, count: int = MAX_BATCH_CHUNKS) -> str:
    """Analyze up to `count` day-chunks of a chat starting at index `start`.

    Already analyzed days come from the cache without calling the model.

    Args:
        name: Chat name (from list_chats)
        start: Index of the first day-chunk
        count: Number of day-chunks to analyze (default 10)
    """
    from .client import OpenRouterClient
    from .processor import BatchProcessor
    from .prompt import load_system_prompt

    if start < 0 or count < 1:
        return f"Error: start must be >= 0 and count >= 1 (got start={start}, count={count})"

    try:
        config = load_service_config()
        system_prompt = load_system_prompt()
    except ConfigurationError as e:
        return f"Configuration error: {e}"

    try:
        chat = _imports().get(name)
        if chat is None:
            return f"Chat not found: {name}"

        client = OpenRouterClient(config)
        try:
            processor = BatchProcessor(_get_cache(), client, system_prompt=system_prompt)
            results = processor.process_chat(chat, start=start, stop=start + count)
        finally:
            client.close()
    except ChatRecallError as e:
        logger.warning("process_chat failed for %r: %s", name, e)
        return f"Error: {e}"

    return json.dumps({"choices": results}, indent=2, ensure_ascii=False)


@mcp.tool()
def load_cache(name: str) -> str:
    """Return all cached analysis results of a chat, ordered by day-chunk index.

    Args:
        name: Chat name
    """
    try:
        results = _get_cache().list_ordered(name)
    except ChatRecallError as e:
        return f"Error: {e}"
    return json.dumps(results, indent=2, ensure_ascii=False)


@mcp.tool()
def delete_chat(name: str) -> str:
    """Delete all cached analysis results of a chat and remove it from the import list.

    Args:
        name: Chat name
    """
    try:
        _get_cache().purge(name)
        _imports().remove(name)
    except ChatRecallError as e:
        return f"Error: {e}"
    return f"Deleted {name}"


@mcp.tool()
def load_analysis() -> str:
    """Return the saved recall sentences, keyed by date."""
    try:
        data = AnalysisFile(_get_paths().analysis_path).load()
    except ChatRecallError as e:
        return f"Error: {e}"
    return data.model_dump_json(indent=2)


@mcp.tool()
def save_memory(date: str, memory: str) -> str:
    """Save a recalled sentence under a date.

    Args:
        date: Date key (yyyy-MM-dd)
        memory: The sentence to save
    """
    try:
        AnalysisFile(_get_paths().analysis_path).save_memory(date, memory)
    except ChatRecallError as e:
        return f"Error: {e}"
    return f"Saved memory for {date}"
