"""Memory record types exchanged between the extractor, client and store.

A record carries two required fields (``content`` and ``tags``) and any
number of extension fields. Extensions are kept in pydantic's extra map and
merged back in when the record is serialized, so the store receives every
key the assistant wrote.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator


class CaptureContext(BaseModel):
    """Identifies the pull request a batch of memories came from."""

    model_config = ConfigDict(frozen=True)

    pr_number: str = Field(..., description="Pull request or issue number")
    repo_owner: str = Field(..., description="Repository owner (user or org)")
    repo_name: str = Field(..., description="Repository name")

    @field_validator("pr_number", mode="before")
    @classmethod
    def _number_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @classmethod
    def from_repository(cls, repository: str, pr_number: int | str) -> "CaptureContext":
        """Build a context from an ``owner/name`` slug."""
        owner, sep, name = repository.partition("/")
        if not sep or not owner or not name:
            raise ValueError(f"repository must look like 'owner/name', got {repository!r}")
        return cls(pr_number=pr_number, repo_owner=owner, repo_name=name)


class MemoryRecord(BaseModel):
    """A single fact the assistant asked to remember."""

    model_config = ConfigDict(extra="allow")

    content: StrictStr
    tags: list[Any] = Field(..., strict=True)

    @classmethod
    def parse(cls, obj: Any) -> "MemoryRecord | None":
        """Validate an arbitrary JSON value; ``None`` if it is not a record."""
        if not isinstance(obj, dict):
            return None
        try:
            return cls.model_validate(obj)
        except ValidationError:
            return None

    @property
    def extensions(self) -> dict[str, Any]:
        """Fields beyond ``content`` and ``tags``."""
        return dict(self.model_extra or {})

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body sent to the store."""
        return self.model_dump()

    def enrich(self, context: CaptureContext) -> "MemoryRecord":
        """Return a copy carrying ``pr_reference``; existing keys win."""
        payload = self.to_payload()
        payload.setdefault("pr_reference", context.model_dump())
        return type(self).model_validate(payload)


class DeliveryOutcome(BaseModel):
    """What callers of the delivery client get back."""

    success: bool = True


@dataclass
class AttemptLog:
    """Internal record of one retry cycle inside the delivery client."""

    delivered: bool = False
    attempts: int = 0
    errors: list[str] = field(default_factory=list)
