"""Documentation search tool handler."""

from __future__ import annotations

import logging
import threading
from typing import Any

from modelscout.corpus.refresh import CorpusRefresher
from modelscout.corpus.schema import Chunk
from modelscout.corpus.search import DocumentSearch
from modelscout.corpus.store import EmbeddingStore
from modelscout.errors import InvalidInput


logger = logging.getLogger(__name__)


class DocsCorpus:
    """Lazily loaded documentation corpus, refreshed from a remote on first use."""

    def __init__(
        self,
        store: EmbeddingStore,
        name: str,
        refresher: CorpusRefresher | None = None,
    ):
        self.store = store
        self.name = name
        self.refresher = refresher
        self._lock = threading.Lock()
        self._chunks: list[Chunk] | None = None

    def chunks(self) -> list[Chunk]:
        with self._lock:
            if self._chunks is None:
                if self.refresher is not None:
                    self._chunks = self.refresher.refresh(self.name)
                else:
                    self._chunks = self.store.load(self.name)
                logger.info("Loaded docs corpus %s (%d chunks)", self.name, len(self._chunks))
            return self._chunks

    def invalidate(self) -> None:
        with self._lock:
            self._chunks = None


def handle_search_docs(
    tool_input: dict[str, Any],
    corpus: DocsCorpus,
    searcher: DocumentSearch,
) -> str:
    query = tool_input["query"]
    max_results = int(tool_input.get("max_results", 5))
    if max_results < 1:
        raise InvalidInput("max_results must be at least 1")
    code_only = bool(tool_input.get("code_only", False))
    return searcher.render(query, corpus.chunks(), top_n=max_results, code_only=code_only)
