"""FlowCon: long-term memory capture for PR assistants.

Pulls ``<memories>`` blocks out of assistant replies, tags them with the
pull request they came from and posts them to a FlowCon server. Delivery
is best effort and never fails the calling workflow.
"""

__version__ = "0.1.0"

from flowcon.models import CaptureContext, DeliveryOutcome, MemoryRecord
from flowcon.extractor import extract_memories
from flowcon.client import FlowConClient, deliver
from flowcon.capture import capture_memories, collect_memories
from flowcon.config import FlowConConfig
from flowcon.prompt import get_memory_prompt

__all__ = [
    "CaptureContext",
    "DeliveryOutcome",
    "MemoryRecord",
    "extract_memories",
    "FlowConClient",
    "deliver",
    "capture_memories",
    "collect_memories",
    "FlowConConfig",
    "get_memory_prompt",
]
