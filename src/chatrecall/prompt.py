"""System prompt sent with every day-chunk."""

from __future__ import annotations

from pathlib import Path

from .config import resolve_setting
from .errors import ConfigurationError

SYSTEM_PROMPT = """\
You analyze one day of a personal chat log. The user message is a JSON object
{"date": ..., "messages": [{"date", "time", "author", "text"}, ...]}.

Split the day into scenes: short runs of messages about one thing that
happened, was planned or was remembered. For every scene write one
self-contained sentence in the past tense that someone could later try to
recall, and list the named entities it mentions.

Reply with JSON only, no prose and no code fences, in exactly this shape:
{"scenes": [{"id": 1, "memory": "<sentence>",
             "entities": [{"text": "<entity>", "type": "person|place|organization|event|object|misc"}]}]}

If nothing memorable happened that day, reply {"scenes": []}.
"""


def load_system_prompt() -> str:
    """Return the prompt, or the contents of CHATRECALL_SYSTEM_PROMPT_FILE if set."""
    path = resolve_setting("CHATRECALL_SYSTEM_PROMPT_FILE")
    if not path:
        return SYSTEM_PROMPT
    try:
        return Path(path).expanduser().read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read system prompt file {path}: {e}") from e
