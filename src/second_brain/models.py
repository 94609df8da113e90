"""
Value types shared by the store, the search engine and the orchestrator.
"""

from __future__ import annotations

import dataclasses
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

import numpy as np


def generate_id() -> str:
    """Return a new unique note ID."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Fractional seconds of any precision (RFC 3339 allows up to nanoseconds).
_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(raw: str) -> datetime:
    """
    Parse an RFC 3339 timestamp into an aware datetime.

    Accepts a trailing ``Z`` and fractions of any length, which are
    truncated or padded to microseconds.  Naive values are taken as UTC.
    """
    raw = raw.strip()
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    raw = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), raw, count=1)
    timestamp = datetime.fromisoformat(raw)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


@dataclass(frozen=True)
class Note:
    """
    A single semantic memory.

    Notes are immutable once created.  The embedding is derived from
    ``content`` and is never written to disk; :meth:`with_embedding`
    returns a copy carrying a freshly computed vector.
    """

    content: str
    tags: frozenset[str] = frozenset()
    project: str | None = None
    id: str = field(default_factory=generate_id)
    timestamp: datetime = field(default_factory=utc_now)
    embedding: np.ndarray | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.tags, frozenset):
            object.__setattr__(self, "tags", frozenset(self.tags))
        if self.project == "":
            object.__setattr__(self, "project", None)

    @classmethod
    def create(
        cls,
        content: str,
        tags: Iterable[str] = (),
        project: str | None = None,
    ) -> Note:
        return cls(content=content, tags=frozenset(t for t in tags if t), project=project)

    def with_embedding(self, embedding: np.ndarray) -> Note:
        return dataclasses.replace(self, embedding=embedding)

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None and len(self.embedding) > 0

    def to_dict(self) -> dict[str, Any]:
        """Serialisable form of the note (the embedding is excluded)."""
        data: dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "tags": sorted(self.tags),
        }
        if self.project:
            data["project"] = self.project
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Note:
        """
        Build a note from its serialised form.

        Raises ``KeyError``, ``TypeError`` or ``ValueError`` on malformed
        input; callers translate those into a persistence failure.
        """
        timestamp = parse_timestamp(data["timestamp"])
        return cls(
            id=str(data["id"]),
            content=str(data["content"]),
            tags=frozenset(data.get("tags") or ()),
            project=data.get("project") or None,
            timestamp=timestamp,
        )


@dataclass(frozen=True)
class SearchResult:
    """A note paired with its (possibly boosted) similarity to a query."""

    note: Note
    similarity: float
