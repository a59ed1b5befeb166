"""Reading assistant execution transcripts.

A transcript is the ordered list of SDK messages the assistant run produced.
On disk it is either one JSON array or JSONL (one message per line).
Messages may be plain dicts or objects with the same attributes.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Iterator


def load_transcript(path: str | Path) -> list[dict]:
    """Load all messages from a transcript file."""
    path = Path(path)
    raw = path.read_text(encoding="utf-8")
    stripped = raw.strip()
    if not stripped:
        return []

    if stripped.startswith("["):
        try:
            data = json.loads(stripped)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, list):
            return [m for m in data if isinstance(m, dict)]

    msgs = []
    for line in raw.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            msg = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(msg, dict):
            msgs.append(msg)
    return msgs


def _get(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def iter_assistant_texts(messages: Iterable[Any]) -> Iterator[str]:
    """Yield the text of every text segment in assistant messages, in order."""
    for message in messages:
        if _get(message, "type") != "assistant":
            continue
        body = _get(message, "message")
        if body is None:
            continue
        content = _get(body, "content")
        if not isinstance(content, list):
            continue
        for item in content:
            if _get(item, "type") != "text":
                continue
            text = _get(item, "text")
            if isinstance(text, str):
                yield text
