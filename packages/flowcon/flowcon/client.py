"""FlowConClient: posts memory records to a FlowCon server.

Delivery is best effort. Each record gets up to ``MAX_ATTEMPTS`` POSTs with
exponential backoff between them. When every attempt fails the client still
reports success to its caller.
The retry loop works on an internal ``AttemptLog``; ``send_memory`` is the
only place that turns a failed log into a successful outcome.

HTTP goes through urllib (no deps) on a worker thread.
"""

from __future__ import annotations

import asyncio
import http.client
import json
import logging
from typing import Any, Mapping
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .errors import DeliveryError
from .models import AttemptLog, DeliveryOutcome, MemoryRecord
from .utils import DEFAULT_TIMEOUT, MAX_ATTEMPTS, MEMORIES_ENDPOINT, RETRY_DELAYS

log = logging.getLogger("flowcon.client")


class FlowConClient:
    """Thin async wrapper around ``POST /api/memories``."""

    def __init__(self, server_url: str, pat: str, timeout: float = DEFAULT_TIMEOUT):
        self.server_url = server_url.rstrip("/")
        self.pat = pat
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.server_url}{MEMORIES_ENDPOINT}"

    def _post(self, body: bytes) -> int:
        """Blocking single POST. Raises DeliveryError unless the status is 2xx."""
        req = Request(
            self.endpoint,
            data=body,
            method="POST",
            headers={
                "Authorization": f"Bearer {self.pat}",
                "Content-Type": "application/json",
            },
        )
        try:
            resp = urlopen(req, timeout=self.timeout)
        except HTTPError as exc:
            raise DeliveryError(f"HTTP {exc.code}", status=exc.code) from exc
        except (URLError, OSError, http.client.HTTPException) as exc:
            raise DeliveryError(f"request failed: {exc}") from exc

        status = resp.status
        resp.close()
        if not 200 <= status <= 299:
            raise DeliveryError(f"HTTP {status}", status=status)
        return status

    async def _send_with_retry(self, body: bytes) -> AttemptLog:
        attempts = AttemptLog()
        for attempt in range(MAX_ATTEMPTS):
            attempts.attempts += 1
            try:
                await asyncio.to_thread(self._post, body)
            except DeliveryError as exc:
                attempts.errors.append(str(exc))
                log.debug(
                    "memory POST attempt %d/%d failed: %s",
                    attempt + 1, MAX_ATTEMPTS, exc,
                )
                if attempt < MAX_ATTEMPTS - 1:
                    await asyncio.sleep(RETRY_DELAYS[attempt])
                continue
            attempts.delivered = True
            return attempts
        return attempts

    async def send_memory(self, record: MemoryRecord | Mapping[str, Any]) -> DeliveryOutcome:
        """Deliver one record. Always returns ``DeliveryOutcome(success=True)``."""
        payload = record.to_payload() if isinstance(record, MemoryRecord) else dict(record)
        body = json.dumps(payload).encode("utf-8")

        attempts = await self._send_with_retry(body)
        if attempts.delivered:
            log.debug("memory delivered to %s (attempt %d)", self.endpoint, attempts.attempts)
        else:
            log.warning(
                "memory not delivered to %s after %d attempts (%s); continuing",
                self.endpoint, attempts.attempts, attempts.errors[-1],
            )
        return DeliveryOutcome(success=True)


async def deliver(
    record: MemoryRecord | Mapping[str, Any],
    endpoint: str,
    credential: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> DeliveryOutcome:
    """One-shot helper: deliver ``record`` to the store at ``endpoint``."""
    return await FlowConClient(endpoint, credential, timeout=timeout).send_memory(record)
