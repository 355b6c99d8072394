"""Turn raw completion text into a structured value.

Models often wrap JSON in Markdown code fences or prefix it with a stray
``json`` label. ``normalize`` strips that noise and parses what is left.
When the text still isn't valid JSON the trimmed text itself is returned
and stored as a string.
"""

from __future__ import annotations

import json
import logging
import re

from .models import AnalysisResult

logger = logging.getLogger(__name__)

FENCE = "```"

# Language tag on its own opening fence line, e.g. ```json followed by a newline
_FENCE_TAG_RE = re.compile(r"[A-Za-z][\w+.-]*[ \t]*\r?\n")

# Bare label left over when only part of a fence survived
_LABEL_RE = re.compile(r"json(?=\s|[\[{]|$)\s*", re.IGNORECASE)


def strip_fences(text: str) -> str:
    """Remove a surrounding ``` fence pair and the opening fence's language tag."""
    text = text.strip()
    if len(text) < 2 * len(FENCE) or not (text.startswith(FENCE) and text.endswith(FENCE)):
        return text

    inner = text[len(FENCE) : -len(FENCE)]
    tag = _FENCE_TAG_RE.match(inner)
    if tag:
        inner = inner[tag.end() :]
    return inner


def strip_label(text: str) -> str:
    match = _LABEL_RE.match(text)
    if match:
        return text[match.end() :]
    return text


def normalize(raw: str) -> AnalysisResult:
    """Parse *raw* into a JSON value, falling back to the cleaned-up string."""
    text = strip_fences(raw).strip()
    text = strip_label(text).strip()

    try:
        return json.loads(text)
    except ValueError:
        logger.warning("Completion is not valid JSON, storing as text (%d chars)", len(text))
        return text
