"""Error taxonomy for the embedding and retrieval engine."""

from __future__ import annotations

from pathlib import Path


class ModelScoutError(Exception):
    """Base class for all modelscout failures.

    Carries a short ``kind`` label and, where one exists, the path or
    identifier of the resource involved.
    """

    kind = "error"

    def __init__(self, message: str, path: str | Path | None = None):
        self.message = message
        self.path = str(path) if path is not None else None
        super().__init__(message)

    def __str__(self) -> str:
        if self.path:
            return f"{self.kind}: {self.message} ({self.path})"
        return f"{self.kind}: {self.message}"

    def to_dict(self) -> dict[str, str | None]:
        return {"kind": self.kind, "message": self.message, "path": self.path}


class AssetUnavailable(ModelScoutError):
    """A remote asset could not be fetched and no local copy exists."""

    kind = "asset_unavailable"


class ModelCorrupted(ModelScoutError):
    """Model weights, vocabulary or tokenizer config failed validation."""

    kind = "model_corrupted"


class InferenceFailed(ModelScoutError):
    """The inference engine raised or returned an unusable result."""

    kind = "inference_failed"


class StoreCorrupted(ModelScoutError):
    """An embedding store failed validation and has been deleted."""

    kind = "store_corrupted"


class InvalidInput(ModelScoutError, ValueError):
    """Input rejected synchronously; never retried."""

    kind = "invalid_input"


class PoolingError(ModelScoutError):
    """Pooling produced no valid positions or a zero-norm vector."""

    kind = "pooling_error"
