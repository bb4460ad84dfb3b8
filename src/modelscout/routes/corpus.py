"""Corpus search and indexing endpoints."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Request

from modelscout.corpus.indexer import index_documents, is_corpus_stale
from modelscout.corpus.search import DocumentSearch, FuzzyRanker, VectorRanker, render_hits
from modelscout.errors import ModelScoutError
from modelscout.models.requests import CorpusIndexRequest, CorpusSearchRequest
from modelscout.models.responses import (
    CorpusIndexResponse,
    CorpusSearchResponse,
    CorpusSearchResult,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/corpus")


@router.post("/search", response_model=CorpusSearchResponse)
def search_corpus_endpoint(req: CorpusSearchRequest, request: Request) -> CorpusSearchResponse:
    """Rank a corpus against a query."""
    services = request.app.state.services
    name = req.corpus or services.settings.docs_corpus

    try:
        if name == services.docs.name:
            chunks = services.docs.chunks()
        else:
            chunks = services.store.load(name)
        ranker = FuzzyRanker() if req.ranker == "fuzzy" else VectorRanker(services.embedder)
        hits = DocumentSearch(ranker).rank(req.query, chunks, top_n=req.top_n)
        text = render_hits(hits, chunks, code_only=req.code_only)
    except FileNotFoundError:
        return CorpusSearchResponse(success=False, query=req.query, error=f"Corpus not found: {name}")
    except ModelScoutError as e:
        logger.warning("Corpus search failed: %s", e)
        return CorpusSearchResponse(success=False, query=req.query, error=str(e))

    return CorpusSearchResponse(
        success=True,
        query=req.query,
        results=[
            CorpusSearchResult(
                id=h.chunk.id, heading=h.chunk.heading, content=h.chunk.content, score=h.score,
            )
            for h in hits
        ],
        text=text,
    )


@router.post("/index", response_model=CorpusIndexResponse)
def index_corpus_endpoint(req: CorpusIndexRequest, request: Request) -> CorpusIndexResponse:
    """Build a corpus from markdown files, skipping unchanged sources."""
    services = request.app.state.services
    sources = [Path(s) for s in req.sources]

    try:
        if not req.force and not is_corpus_stale(req.name, sources, services.store):
            return CorpusIndexResponse(success=True, corpus=req.name, skipped=True)
        stats = index_documents(
            req.name, sources, services.embedder, services.store,
            batch_size=services.settings.batch_size,
        )
    except (ModelScoutError, FileNotFoundError) as e:
        logger.warning("Indexing %s failed: %s", req.name, e)
        return CorpusIndexResponse(success=False, corpus=req.name, error=str(e))

    if req.name == services.docs.name:
        services.docs.invalidate()
    return CorpusIndexResponse(
        success=stats["success"],
        corpus=req.name,
        files_indexed=stats.get("files_indexed", 0),
        chunks_created=stats.get("chunks_created", 0),
        error=stats.get("error"),
    )
