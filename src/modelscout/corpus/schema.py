"""Chunk record stored in an embedding corpus."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np


@dataclass(frozen=True)
class Chunk:
    """A unit of documentation content, optionally carrying its embedding."""
    id: int
    content: str
    parent_id: int | None = None
    heading: str = ""
    level: int = 0
    code: str = ""
    embedding: np.ndarray | None = field(default=None, compare=False, repr=False)

    def with_embedding(self, embedding: np.ndarray) -> "Chunk":
        return replace(self, embedding=np.asarray(embedding, dtype=np.float32))

    def to_record(self) -> dict[str, Any]:
        """Metadata record without the vector."""
        record: dict[str, Any] = {"id": self.id, "content": self.content}
        if self.parent_id is not None:
            record["parent_id"] = self.parent_id
        if self.heading:
            record["heading"] = self.heading
        if self.level:
            record["level"] = self.level
        if self.code:
            record["code"] = self.code
        return record

    @classmethod
    def from_record(cls, index: int, record: str | dict[str, Any]) -> "Chunk":
        """Build from a metadata record; bare strings are content-only chunks."""
        if isinstance(record, str):
            return cls(id=index, content=record)
        parent = record.get("parent_id")
        return cls(
            id=record["id"] if isinstance(record.get("id"), int) else index,
            content=record["content"],
            parent_id=parent if isinstance(parent, int) else None,
            heading=record.get("heading", ""),
            level=record.get("level", 0),
            code=record.get("code", ""),
        )
