"""Import pipeline: WhatsApp export → parsing → day-chunking → import list."""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path

import click

from .chunker import chunk_by_day
from .library import ImportList
from .models import ChatImport
from .parser import parse_chat_text

logger = logging.getLogger(__name__)


def _read_chat_text(export: Path) -> str:
    """Return the chat transcript from a .zip export or a bare .txt file."""
    if export.suffix.lower() == ".txt":
        return export.read_text(encoding="utf-8", errors="replace")

    if not zipfile.is_zipfile(str(export)):
        raise click.ClickException(f"Not a valid ZIP or .txt file: {export}")

    with zipfile.ZipFile(str(export), "r") as zf:
        texts = [n for n in zf.namelist() if n.lower().endswith(".txt")]
        if not texts:
            raise click.ClickException(
                "No chat transcript found in ZIP. "
                "Make sure this is a WhatsApp export (Chat → More → Export chat)."
            )
        # Prefer the canonical _chat.txt when attachments ship other text files
        name = next((n for n in texts if Path(n).name == "_chat.txt"), texts[0])
        with zf.open(name) as f:
            return f.read().decode("utf-8", errors="replace")


def load_whatsapp_export(path: str, name: str | None = None) -> ChatImport:
    """Parse a WhatsApp export into a ChatImport named after the file."""
    export = Path(path)
    if not export.exists():
        raise click.ClickException(f"File not found: {path}")

    text = _read_chat_text(export)
    messages = parse_chat_text(text)
    if not messages:
        raise click.ClickException(f"No messages found in {export.name}")

    chunks = chunk_by_day(messages)
    logger.info("Parsed %d messages into %d day-chunks", len(messages), len(chunks))
    return ChatImport(name=name or export.stem, chunks=chunks)


def import_whatsapp_export(
    path: str,
    imports: ImportList,
    name: str | None = None,
    force: bool = False,
) -> ChatImport | None:
    """Import a WhatsApp export into the import list.

    Returns the new ChatImport, or None if a chat with the same name was
    already imported and *force* is not set.
    """
    chat = load_whatsapp_export(path, name=name)
    if not imports.add(chat, replace=force):
        return None
    return chat
