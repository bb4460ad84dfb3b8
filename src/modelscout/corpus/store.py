"""Paired JSON/binary embedding store.

Each corpus ``<name>`` is two files in the store directory:

- ``<name>.json``: ``{"dim": int, "count": int, "chunks": [record, ...]}``
- ``<name>.bin``: ``count * dim`` little-endian float32 values, row-major

An optional ``<name>.etag`` caches the remote validator used by
``modelscout.corpus.refresh``. Any integrity failure on load deletes all
three files and raises StoreCorrupted.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Sequence

import numpy as np

from modelscout.corpus.schema import Chunk
from modelscout.errors import InvalidInput, StoreCorrupted


logger = logging.getLogger(__name__)


FLOAT_DTYPE = np.dtype("<f4")


@dataclass(frozen=True)
class StorePaths:
    meta: Path
    binary: Path
    etag: Path

    def all(self) -> tuple[Path, Path, Path]:
        return (self.meta, self.binary, self.etag)


class EmbeddingStore:
    """Reads and writes embedding corpora in one directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def paths(self, name: str) -> StorePaths:
        if not name or Path(name).name != name or name.startswith("."):
            raise InvalidInput(f"invalid corpus name {name!r}")
        return StorePaths(
            meta=self.directory / f"{name}.json",
            binary=self.directory / f"{name}.bin",
            etag=self.directory / f"{name}.etag",
        )

    def exists(self, name: str) -> bool:
        p = self.paths(name)
        return p.meta.is_file() and p.binary.is_file()

    def delete(self, name: str) -> None:
        """Remove all files of a corpus, ignoring missing ones."""
        _remove_quietly(self.paths(name).all())

    def read_metadata(self, name: str) -> dict[str, Any]:
        """Parsed metadata without validation; I/O and JSON errors propagate."""
        return json.loads(self.paths(name).meta.read_text(encoding="utf-8"))

    def save(
        self,
        name: str,
        chunks: Sequence[Chunk],
        extra: dict[str, Any] | None = None,
    ) -> StorePaths:
        """Persist chunks and their embeddings, replacing any previous corpus.

        ``extra`` keys are written alongside dim/count/chunks in the metadata.
        """
        if not chunks:
            raise InvalidInput("no chunks to save")

        vectors = []
        for i, chunk in enumerate(chunks):
            if chunk.embedding is None:
                raise InvalidInput(f"chunk {i} has no embedding")
            vector = np.asarray(chunk.embedding)
            if vector.ndim != 1:
                raise InvalidInput(f"embedding {i} must be one-dimensional")
            vectors.append(vector)

        dim = vectors[0].shape[0]
        if dim == 0:
            raise InvalidInput("embeddings must not be empty")
        for i, vector in enumerate(vectors):
            if vector.shape[0] != dim:
                raise InvalidInput(
                    f"all embeddings must have the same length (embedding {i} has "
                    f"{vector.shape[0]}, expected {dim})"
                )

        matrix = np.stack(vectors).astype(FLOAT_DTYPE)
        if not np.all(np.isfinite(matrix)):
            raise InvalidInput("embeddings contain NaN or infinite values")

        paths = self.paths(name)
        self.directory.mkdir(parents=True, exist_ok=True)
        # old files and any cached etag
        _remove_quietly(paths.all())

        meta: dict[str, Any] = dict(extra or {})
        meta.update({
            "dim": int(dim),
            "count": len(chunks),
            "chunks": [c.to_record() for c in chunks],
        })

        paths.binary.write_bytes(matrix.tobytes())
        paths.meta.write_text(json.dumps(meta, indent=2), encoding="utf-8")
        logger.info("Saved corpus %s: %d chunks, dim %d", name, len(chunks), dim)
        return paths

    def load(self, name: str) -> list[Chunk]:
        """Load and validate a corpus.

        Raises StoreCorrupted (after deleting the corpus files) on any
        structural problem; FileNotFoundError and other I/O errors propagate
        untouched.
        """
        paths = self.paths(name)
        meta_raw = paths.meta.read_bytes()

        with _cleanup_on_corruption(paths):
            meta = _parse_metadata(meta_raw, paths.meta)
            dim, count, records = meta["dim"], meta["count"], meta["chunks"]

            buffer = paths.binary.read_bytes()
            expected = count * dim * FLOAT_DTYPE.itemsize
            if len(buffer) != expected:
                raise StoreCorrupted(
                    f"binary has {len(buffer)} bytes, expected {expected}", paths.binary
                )

            matrix = np.frombuffer(buffer, dtype=FLOAT_DTYPE).reshape(count, dim)
            if not np.all(np.isfinite(matrix)):
                raise StoreCorrupted("binary contains NaN or infinite values", paths.binary)

            chunks = []
            for i, record in enumerate(records):
                chunk = Chunk.from_record(i, record)
                chunks.append(chunk.with_embedding(matrix[i].copy()))
            return chunks


def _parse_metadata(raw: bytes, path: Path) -> dict[str, Any]:
    try:
        meta = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StoreCorrupted(f"metadata is not valid JSON: {e}", path) from e

    if not isinstance(meta, dict):
        raise StoreCorrupted("metadata must be a JSON object", path)

    dim, count, records = meta.get("dim"), meta.get("count"), meta.get("chunks")
    if not _is_int(dim) or dim < 1:
        raise StoreCorrupted("metadata is missing a positive integer 'dim'", path)
    if not _is_int(count) or count < 0:
        raise StoreCorrupted("metadata is missing a non-negative integer 'count'", path)
    if not isinstance(records, list):
        raise StoreCorrupted("metadata 'chunks' must be a list", path)
    if len(records) != count:
        raise StoreCorrupted(f"metadata count {count} does not match {len(records)} chunks", path)

    for i, record in enumerate(records):
        if isinstance(record, str):
            continue
        if not isinstance(record, dict) or not isinstance(record.get("content"), str):
            raise StoreCorrupted(f"chunk record {i} has no string content", path)
        for key in ("id", "parent_id", "level"):
            if key in record and record[key] is not None and not _is_int(record[key]):
                raise StoreCorrupted(f"chunk record {i} has a non-integer {key!r}", path)
        for key in ("heading", "code"):
            if key in record and not isinstance(record[key], str):
                raise StoreCorrupted(f"chunk record {i} has a non-string {key!r}", path)
    _check_forest(records, path)
    return meta


def _check_forest(records: list[Any], path: Path) -> None:
    """Parent links must point at another chunk and never loop back."""
    parents: dict[int, int | None] = {}
    for i, record in enumerate(records):
        chunk_id = record.get("id") if isinstance(record, dict) else None
        chunk_id = chunk_id if chunk_id is not None else i
        if chunk_id in parents:
            raise StoreCorrupted(f"chunk id {chunk_id} is duplicated", path)
        parents[chunk_id] = record.get("parent_id") if isinstance(record, dict) else None

    for chunk_id, parent_id in parents.items():
        if parent_id is not None and parent_id not in parents:
            raise StoreCorrupted(f"chunk {chunk_id} has unknown parent {parent_id}", path)

    for start in parents:
        seen = {start}
        current = parents[start]
        while current is not None:
            if current in seen:
                raise StoreCorrupted(f"chunk {start} is part of a parent cycle", path)
            seen.add(current)
            current = parents[current]


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@contextmanager
def _cleanup_on_corruption(paths: StorePaths) -> Iterator[None]:
    """Delete the corpus files on any StoreCorrupted leaving the block."""
    try:
        yield
    except StoreCorrupted:
        logger.warning("Corrupted embedding store %s, deleting files", paths.meta.stem)
        _remove_quietly(paths.all())
        raise


def _remove_quietly(paths: Sequence[Path]) -> None:
    for path in paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.debug("Could not delete %s: %s", path, e)
