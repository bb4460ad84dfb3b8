"""Pydantic response models for the modelscout HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    version: str
    model_loaded: bool = False
    capabilities: list[str] = Field(default_factory=list)


class EmbedResponse(BaseModel):
    """Embedding vectors, one per input text."""
    success: bool
    dim: int = 0
    embeddings: list[list[float]] = Field(default_factory=list)
    error: str | None = None


class CorpusSearchResult(BaseModel):
    """A single ranked chunk."""
    id: int
    heading: str = ""
    content: str
    score: float


class CorpusSearchResponse(BaseModel):
    """Response from corpus search."""
    success: bool
    query: str
    results: list[CorpusSearchResult] = Field(default_factory=list)
    text: str = ""
    error: str | None = None


class CorpusIndexResponse(BaseModel):
    """Response from corpus indexing."""
    success: bool
    corpus: str | None = None
    files_indexed: int = 0
    chunks_created: int = 0
    skipped: bool = False
    error: str | None = None


class ToolResponse(BaseModel):
    """Result of a tool call."""
    success: bool
    result: Any = None
    error: str | None = None
