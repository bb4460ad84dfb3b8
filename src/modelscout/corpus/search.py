"""Similarity search over embedded chunks.

``search`` is the ranking core: full-corpus cosine scoring, stable
descending sort, truncation last. ``DocumentSearch`` layers presentation on
top of a pluggable ``Ranker`` (vector or fuzzy): descendant expansion,
parent heading chains and code-only output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

import numpy as np

from modelscout.corpus.fuzzy import fuzzy_score
from modelscout.corpus.schema import Chunk
from modelscout.embeddings.encoder import Embedder
from modelscout.errors import InvalidInput


RESULT_SEPARATOR = "\n\n---\n\n"


@dataclass(frozen=True)
class ScoredChunk:
    chunk: Chunk
    score: float


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """dot(a, b) / (|a| |b|); 0.0 when either vector has zero norm."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if denom == 0:
        return 0.0
    return float(np.dot(a, b) / denom)


def score_chunks(query_vector: np.ndarray, chunks: Sequence[Chunk]) -> np.ndarray:
    """Cosine similarity of the query against every chunk embedding."""
    query = np.asarray(query_vector, dtype=np.float64)
    if query.ndim != 1:
        raise InvalidInput("query vector must be one-dimensional")
    if not chunks:
        return np.zeros(0)

    rows = []
    for chunk in chunks:
        if chunk.embedding is None:
            raise InvalidInput(f"chunk {chunk.id} has no embedding")
        if chunk.embedding.shape != query.shape:
            raise InvalidInput(
                f"chunk {chunk.id} has dimension {chunk.embedding.shape[0]}, "
                f"query has {query.shape[0]}"
            )
        rows.append(chunk.embedding)
    matrix = np.stack(rows).astype(np.float64)

    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(norms == 0, 0.0, dots / norms)
    return scores


def search(
    query_vector: np.ndarray,
    chunks: Sequence[Chunk],
    top_n: int | None = None,
) -> list[ScoredChunk]:
    """Rank chunks by descending cosine similarity; ties keep corpus order."""
    scores = score_chunks(query_vector, chunks)
    order = np.argsort(-scores, kind="stable")
    ranked = [ScoredChunk(chunks[i], float(scores[i])) for i in order]
    return ranked if top_n is None else ranked[:top_n]


class Ranker(Protocol):
    """Ranks chunks for a text query, best first."""

    def rank(self, query: str, chunks: Sequence[Chunk]) -> list[ScoredChunk]:
        ...


class VectorRanker:
    """Embeds the query and ranks by cosine similarity."""

    def __init__(self, embedder: Embedder):
        self.embedder = embedder

    def rank(self, query: str, chunks: Sequence[Chunk]) -> list[ScoredChunk]:
        return search(self.embedder.embed(query), chunks)


class FuzzyRanker:
    """Ranks by fuzzy match of the query against heading and content."""

    def __init__(self, min_score: float | None = None):
        self.min_score = min_score

    def rank(self, query: str, chunks: Sequence[Chunk]) -> list[ScoredChunk]:
        scored = [
            ScoredChunk(c, max(fuzzy_score(query, c.heading), fuzzy_score(query, c.content)))
            for c in chunks
        ]
        if self.min_score is not None:
            scored = [s for s in scored if s.score >= self.min_score]
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored


def descendants(chunk: Chunk, chunks: Sequence[Chunk]) -> list[Chunk]:
    """All chunks below ``chunk`` in the section forest, in corpus order."""
    children: dict[int, list[Chunk]] = {}
    for c in chunks:
        if c.parent_id is not None:
            children.setdefault(c.parent_id, []).append(c)

    result: list[Chunk] = []
    seen = {chunk.id}
    stack = list(reversed(children.get(chunk.id, [])))
    while stack:
        current = stack.pop()
        if current.id in seen:
            continue
        seen.add(current.id)
        result.append(current)
        stack.extend(reversed(children.get(current.id, [])))
    return result


def heading_chain(chunk: Chunk, chunks: Sequence[Chunk]) -> list[str]:
    """Headings of the ancestors of ``chunk``, outermost first."""
    by_id = {c.id: c for c in chunks}
    chain: list[str] = []
    seen = {chunk.id}
    current = chunk
    while current.parent_id is not None and current.parent_id in by_id:
        current = by_id[current.parent_id]
        if current.id in seen:
            break
        seen.add(current.id)
        chain.insert(0, current.heading)
    return chain


class DocumentSearch:
    """Ranks a corpus and renders the best sections for an agent."""

    def __init__(self, ranker: Ranker, top_n: int = 5):
        self.ranker = ranker
        self.top_n = top_n

    def rank(self, query: str, chunks: Sequence[Chunk], top_n: int | None = None) -> list[ScoredChunk]:
        """The best ``top_n`` hits for ``query``."""
        limit = self.top_n if top_n is None else top_n
        if limit < 1:
            raise InvalidInput("top_n must be at least 1")
        return self.ranker.rank(query, chunks)[:limit]

    def find(self, query: str, chunks: Sequence[Chunk], top_n: int | None = None) -> list[list[Chunk]]:
        """Top sections, each followed by its not-yet-shown descendants."""
        return group_hits(self.rank(query, chunks, top_n), chunks)

    def render(
        self,
        query: str,
        chunks: Sequence[Chunk],
        top_n: int | None = None,
        code_only: bool = False,
    ) -> str:
        """Ranked sections as text, prefixed by their parent heading chain."""
        return render_hits(self.rank(query, chunks, top_n), chunks, code_only=code_only)


def group_hits(hits: Sequence[ScoredChunk], chunks: Sequence[Chunk]) -> list[list[Chunk]]:
    """Each hit followed by its descendants, skipping sections already shown."""
    shown: set[int] = set()
    groups = []
    for hit in hits:
        if hit.chunk.id in shown:
            continue
        group = [hit.chunk] + [d for d in descendants(hit.chunk, chunks) if d.id not in shown]
        shown.update(c.id for c in group)
        groups.append(group)
    return groups


def render_hits(hits: Sequence[ScoredChunk], chunks: Sequence[Chunk], code_only: bool = False) -> str:
    """Render already ranked hits; sections are joined by RESULT_SEPARATOR."""
    parts = []
    for group in group_hits(hits, chunks):
        if code_only:
            texts = [c.code.strip() for c in group if c.code.strip()]
        else:
            texts = [c.content.strip() for c in group]
        if not texts:
            continue
        chain = " > ".join(heading_chain(group[0], chunks))
        body = "\n\n".join(texts)
        parts.append(f"{chain}\n\n{body}" if chain else body)
    return RESULT_SEPARATOR.join(parts)
