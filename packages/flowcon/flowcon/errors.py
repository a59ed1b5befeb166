"""Error types for the FlowCon capture pipeline.

Nothing raised here is meant to reach the host workflow: the capture
orchestrator and the delivery retry loop are the only places these are
absorbed.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum


class Severity(str, Enum):
    """Error severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class FlowConError(Exception):
    """Base exception for all FlowCon errors."""

    severity: Severity = Severity.ERROR

    def __init__(self, message: str, *, component: str = "flowcon", detail: str = ""):
        super().__init__(message)
        self.component = component
        self.detail = detail
        self.timestamp = datetime.now().isoformat()


class ConfigError(FlowConError):
    """Configuration file could not be read or parsed."""

    severity = Severity.WARNING


class DeliveryError(FlowConError):
    """One delivery attempt failed (transport fault or non-2xx status)."""

    severity = Severity.WARNING

    def __init__(self, message: str, *, status: int | None = None, detail: str = ""):
        super().__init__(message, component="client", detail=detail)
        self.status = status
