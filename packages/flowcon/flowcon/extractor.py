"""Pull ``<memories>`` blocks out of assistant text.

The assistant's output is untrusted free text, so anything that does not
parse or validate is dropped without a trace. ``extract_memories`` never
raises.
"""

from __future__ import annotations

import json
import re
from typing import Any

from .models import MemoryRecord

START_TAG = "<memories>"
END_TAG = "</memories>"

_BLOCK_RE = re.compile(re.escape(START_TAG) + r"(.*?)" + re.escape(END_TAG), re.DOTALL)


def _parse_block(block: str) -> list[MemoryRecord]:
    block = block.strip()
    if not block:
        return []
    try:
        parsed: Any = json.loads(block)
    except (ValueError, RecursionError):
        return []

    items = parsed if isinstance(parsed, list) else [parsed]
    records = []
    for item in items:
        record = MemoryRecord.parse(item)
        if record is not None:
            records.append(record)
    return records


def extract_memories(text: str) -> list[MemoryRecord]:
    """Return every valid memory record found in ``text``, in order."""
    if not isinstance(text, str) or START_TAG not in text:
        return []

    memories: list[MemoryRecord] = []
    for match in _BLOCK_RE.finditer(text):
        memories.extend(_parse_block(match.group(1)))
    return memories
