"""Capture orchestrator: transcript -> memory records -> FlowCon.

Called after the assistant has answered on a pull request. Non-blocking in
the workflow sense: nothing in here raises to the caller, and a failure on
one record never stops the rest of the batch.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Union

from pydantic import ValidationError

from .client import FlowConClient
from .config import FlowConConfig
from .errors import ConfigError
from .extractor import extract_memories
from .models import CaptureContext, DeliveryOutcome, MemoryRecord
from .transcript import iter_assistant_texts

log = logging.getLogger("flowcon.capture")

RecordResult = tuple[MemoryRecord, Union[DeliveryOutcome, Exception]]


def collect_memories(messages: Iterable[Any]) -> list[MemoryRecord]:
    """Extract every memory from the assistant text in ``messages``."""
    memories: list[MemoryRecord] = []
    for text in iter_assistant_texts(messages):
        memories.extend(extract_memories(text))
    return memories


def _resolve_config(config: FlowConConfig | None) -> FlowConConfig | None:
    if config is not None:
        return config
    try:
        return FlowConConfig.load()
    except ConfigError as exc:
        log.warning("FlowCon config unusable, skipping memory capture: %s", exc)
        return None


async def _deliver_all(
    client: FlowConClient, memories: list[MemoryRecord], context: CaptureContext
) -> list[RecordResult]:
    results: list[RecordResult] = []
    for memory in memories:
        try:
            enriched = memory.enrich(context)
            outcome = await client.send_memory(enriched)
        except Exception as exc:
            log.warning("Failed to send memory to FlowCon: %s", exc)
            results.append((memory, exc))
            continue
        results.append((enriched, outcome))
    return results


async def capture_memories(
    messages: Iterable[Any],
    context: CaptureContext | Mapping[str, Any],
    config: FlowConConfig | None = None,
) -> None:
    """Send memories found in the assistant's messages to FlowCon.

    Skips silently unless the server URL, PAT and group id are all
    configured. Each record is enriched with ``pr_reference`` and delivered
    one at a time, in transcript order.
    """
    config = _resolve_config(config)
    if config is None:
        return
    try:
        if not config.enabled:
            return
        client = FlowConClient(config.server_url, config.pat, timeout=config.timeout)
    except Exception as exc:
        log.warning("FlowCon config unusable, skipping memory capture: %s", exc)
        return

    try:
        if not isinstance(context, CaptureContext):
            context = CaptureContext.model_validate(context)
        memories = collect_memories(messages)
    except (ValidationError, TypeError) as exc:
        log.warning("Cannot capture memories: %s", exc)
        return

    if not memories:
        log.debug("no memories found in transcript")
        return

    results = await _deliver_all(client, memories, context)

    failed = sum(1 for _, outcome in results if isinstance(outcome, Exception))
    log.info(
        "processed %d memories for %s/%s#%s (%d failed)",
        len(results), context.repo_owner, context.repo_name, context.pr_number, failed,
    )
