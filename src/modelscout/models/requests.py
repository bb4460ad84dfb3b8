"""Pydantic request models for the modelscout HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class EmbedRequest(BaseModel):
    """Request to embed one or more texts."""
    texts: list[str] = Field(..., min_length=1, description="Texts to embed, order preserved")


class CorpusSearchRequest(BaseModel):
    """Request to search a stored corpus."""
    query: str = Field(..., description="Natural language search query")
    corpus: str | None = Field(default=None, description="Corpus name (defaults to the docs corpus)")
    top_n: int = Field(default=5, ge=1, le=100, description="Maximum results to return")
    ranker: str = Field(default="vector", pattern="^(vector|fuzzy)$", description="Ranking strategy")
    code_only: bool = Field(default=False, description="Only include code blocks in the rendered text")


class CorpusIndexRequest(BaseModel):
    """Request to (re)build a corpus from markdown sources."""
    name: str = Field(..., description="Corpus name")
    sources: list[str] = Field(..., min_length=1, description="Markdown files or directories")
    force: bool = Field(default=False, description="Rebuild even if sources are unchanged")


class ToolRequest(BaseModel):
    """Input for a tool call."""
    input: dict[str, Any] = Field(default_factory=dict, description="Tool arguments")
