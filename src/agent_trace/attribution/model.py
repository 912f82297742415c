"""Model identity resolution.

Cursor sends the model name in the hook payload.  Claude Code does not, so
the model is recovered from the session transcript (JSONL, one message per
line, model at ``message.model``).  Transcripts grow to many megabytes and
only the most recent model matters, so they are read from the tail.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, BinaryIO

logger = logging.getLogger(__name__)

# Ordered: first matching prefix wins.
_MODEL_PREFIXES: tuple[tuple[str, str], ...] = (
    ("claude-", "anthropic"),
    ("gpt-", "openai"),
    ("o1", "openai"),
    ("o3", "openai"),
    ("gemini-", "google"),
)

TAIL_WINDOW_BYTES = 4 * 1024


def normalize_model_id(model: str | None) -> str | None:
    """Convert a raw model string to ``provider/model`` form."""
    if not model:
        return None
    if "/" in model:
        return model
    for prefix, provider in _MODEL_PREFIXES:
        if model.startswith(prefix):
            return f"{provider}/{model}"
    return model


def get_model(entry: Any) -> str | None:
    """Return ``entry["message"]["model"]`` if it is a non-empty string."""
    if not isinstance(entry, dict):
        return None
    message = entry.get("message")
    if not isinstance(message, dict):
        return None
    model = message.get("model")
    if isinstance(model, str) and model:
        return model
    return None


def _read_tail(fh: BinaryIO, file_size: int, window: int) -> str:
    fh.seek(file_size - window)
    return fh.read(window).decode("utf-8", errors="replace")


def _latest_model_in(text: str) -> str | None:
    for line in reversed(text.split("\n")):
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except (ValueError, RecursionError):
            # Partial first line of the window, or a corrupt record.
            continue
        model = get_model(entry)
        if model:
            return model
    return None


def extract_model_from_transcript(
    transcript_path: str | os.PathLike[str],
    *,
    initial_window: int = TAIL_WINDOW_BYTES,
) -> str | None:
    """Return the most recently recorded model in a JSONL transcript.

    Reads a window from the end of the file and doubles it until a
    model-bearing line is found or the whole file has been scanned.
    Returns None when the file is unreadable or carries no model.
    """
    path = Path(transcript_path)
    try:
        with open(path, "rb") as fh:
            file_size = os.fstat(fh.fileno()).st_size
            window = min(file_size, max(1, initial_window))
            while True:
                model = _latest_model_in(_read_tail(fh, file_size, window))
                if model:
                    return model
                if window >= file_size:
                    break
                window = min(file_size, window * 2)
    except OSError as e:
        logger.debug("cannot read transcript %s: %s", path, e)
        return None

    logger.debug("no model found in transcript %s", path)
    return None


def resolve_model(model: str | None, transcript_path: str | None) -> str | None:
    """Payload model if present, else the latest model in the transcript."""
    if model:
        return model
    if transcript_path:
        return extract_model_from_transcript(transcript_path)
    return None
