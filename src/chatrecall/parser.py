"""Parse WhatsApp chat exports (_chat.txt) into flat message lists."""

from __future__ import annotations

import logging
import re

from .models import Message

logger = logging.getLogger(__name__)

_DATE = r"(?P<date>\d{1,4}[./-]\d{1,2}[./-]\d{1,4})"
_TIME = r"(?P<time>\d{1,2}:\d{2}(?::\d{2})?(?:\s?[APap]\.?[Mm]\.?)?)"

# iOS:     [12/03/2021, 14:22:05] Alice: text
_BRACKETED_RE = re.compile(rf"^\[{_DATE},?\s+{_TIME}\]\s+(?P<rest>.*)$")

# Android: 12/03/2021, 14:22 - Alice: text
_DASHED_RE = re.compile(rf"^{_DATE},?\s+{_TIME}\s+-\s+(?P<rest>.*)$")

# Direction marks and no-break spaces WhatsApp sprinkles into exports
_INVISIBLE = dict.fromkeys(map(ord, "\u200e\u200f\u202a\u202c\ufeff"), None)
_SPACES = {ord("\u202f"): " ", ord("\u00a0"): " "}


def _clean(line: str) -> str:
    return line.translate(_INVISIBLE).translate(_SPACES).rstrip("\r\n")


def _match_header(line: str) -> re.Match[str] | None:
    return _BRACKETED_RE.match(line) or _DASHED_RE.match(line)


def parse_chat_text(text: str) -> list[Message]:
    """Parse the full text of a WhatsApp export.

    Lines without a timestamp header continue the previous message. System
    notices (no ``Author:`` part, e.g. the encryption banner) are skipped.
    """
    messages: list[Message] = []
    pending: dict[str, str] | None = None
    skipped = 0

    for raw_line in text.splitlines():
        line = _clean(raw_line)
        header = _match_header(line)

        if header is None:
            # Continuation of a multi-line message
            if pending is not None:
                pending["text"] += "\n" + line
            continue

        if pending is not None:
            messages.append(Message(**pending))
            pending = None

        author, sep, body = header.group("rest").partition(": ")
        if not sep:
            skipped += 1
            continue

        pending = {
            "date": header.group("date"),
            "time": header.group("time"),
            "author": author.strip(),
            "text": body,
        }

    if pending is not None:
        messages.append(Message(**pending))

    if skipped:
        logger.debug("Skipped %d system lines", skipped)
    return messages
