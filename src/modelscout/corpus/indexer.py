"""Corpus ingestion: chunks markdown sources, embeds them, saves a store.

A corpus is regenerated wholesale; staleness is detected by a sha256 of the
source files recorded in the store metadata.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from modelscout.corpus.chunker import chunk_markdown_file
from modelscout.corpus.schema import Chunk
from modelscout.corpus.store import EmbeddingStore
from modelscout.definitions.source import definition_chunks
from modelscout.embeddings.encoder import Embedder
from modelscout.errors import InvalidInput


logger = logging.getLogger(__name__)


def collect_markdown_files(sources: Sequence[Path]) -> list[Path]:
    """Expand files and directories into a sorted, de-duplicated list of .md files."""
    files: set[Path] = set()
    for source in sources:
        source = Path(source)
        if source.is_dir():
            files.update(source.rglob("*.md"))
        elif source.is_file():
            files.add(source)
        else:
            raise FileNotFoundError(f"No such markdown source: {source}")
    return sorted(files)


def compute_sources_hash(files: Sequence[Path]) -> str:
    """SHA256 over the names and contents of the given files, in order."""
    digest = hashlib.sha256()
    for path in files:
        digest.update(path.name.encode("utf-8"))
        digest.update(b"\0")
        digest.update(path.read_bytes())
        digest.update(b"\0")
    return digest.hexdigest()


def embed_chunks(
    chunks: Sequence[Chunk],
    embedder: Embedder,
    batch_size: int = 32,
) -> list[Chunk]:
    """Return copies of chunks with embeddings, computed batch by batch."""
    if batch_size < 1:
        raise InvalidInput("batch_size must be positive")
    embedded: list[Chunk] = []
    for start in range(0, len(chunks), batch_size):
        batch = chunks[start:start + batch_size]
        vectors = embedder.embed_batch([c.content for c in batch])
        embedded.extend(c.with_embedding(v) for c, v in zip(batch, vectors))
        logger.debug("Embedded %d/%d chunks", len(embedded), len(chunks))
    return embedded


def index_documents(
    name: str,
    sources: Sequence[Path],
    embedder: Embedder,
    store: EmbeddingStore,
    batch_size: int = 32,
) -> dict[str, Any]:
    """Chunk, embed and save markdown sources as corpus ``name``.

    Returns a dict with indexing stats.
    """
    files = collect_markdown_files(sources)
    if not files:
        return {"success": False, "error": "No markdown files found"}

    chunks: list[Chunk] = []
    for path in files:
        chunks.extend(chunk_markdown_file(path, start_id=len(chunks)))
    if not chunks:
        return {"success": False, "error": "No content to index"}

    embedded = embed_chunks(chunks, embedder, batch_size=batch_size)
    store.save(name, embedded, extra={"source_hash": compute_sources_hash(files)})

    logger.info("Indexed %d files into corpus %s (%d chunks)", len(files), name, len(chunks))
    return {
        "success": True,
        "corpus": name,
        "files_indexed": len(files),
        "chunks_created": len(chunks),
        "dim": int(embedded[0].embedding.shape[0]),
    }


def is_corpus_stale(name: str, sources: Sequence[Path], store: EmbeddingStore) -> bool:
    """True if the corpus is missing or was built from different sources."""
    if not store.exists(name):
        return True
    try:
        meta = store.read_metadata(name)
    except (OSError, ValueError):
        return True
    previous = meta.get("source_hash") if isinstance(meta, dict) else None
    return previous != compute_sources_hash(collect_markdown_files(sources))


def index_definitions(
    name: str,
    definitions: Mapping[str, dict[str, Any]],
    embedder: Embedder,
    store: EmbeddingStore,
    batch_size: int = 32,
) -> dict[str, Any]:
    """Embed one described chunk per model definition and save as corpus ``name``."""
    chunks = definition_chunks(definitions)
    if not chunks:
        return {"success": False, "error": "No definitions to index"}
    embedded = embed_chunks(chunks, embedder, batch_size=batch_size)
    store.save(name, embedded)
    logger.info("Indexed %d definitions into corpus %s", len(chunks), name)
    return {
        "success": True,
        "corpus": name,
        "files_indexed": 0,
        "chunks_created": len(chunks),
        "dim": int(embedded[0].embedding.shape[0]),
    }
