"""Wiring of the embedder, corpus store and tools from settings.

The CLI and the HTTP app both build one ``Services`` bundle so that every
entry point shares the same session cell and tool handlers.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from modelscout.config import ModelScoutSettings
from modelscout.corpus.refresh import CorpusRefresher
from modelscout.corpus.search import DocumentSearch, VectorRanker
from modelscout.corpus.store import EmbeddingStore
from modelscout.definitions.source import DefinitionSource, JsonDefinitionSource
from modelscout.embeddings import create_embedder
from modelscout.embeddings.encoder import Embedder
from modelscout.embeddings.session import EngineFactory, OnnxInferenceEngine
from modelscout.errors import InvalidInput
from modelscout.tools.definitions_tool import handle_list_definition_names, handle_search_definitions
from modelscout.tools.docs_tool import DocsCorpus, handle_search_docs
from modelscout.tools.executor import ToolExecutor


@dataclass
class Services:
    settings: ModelScoutSettings
    embedder: Embedder
    store: EmbeddingStore
    docs: DocsCorpus
    searcher: DocumentSearch
    definitions: DefinitionSource | None
    executor: ToolExecutor


class _MissingDefinitions:
    def definitions(self):
        raise InvalidInput("no definitions source configured (set definitions_path)")


def create_services(
    settings: ModelScoutSettings,
    embedder: Embedder | None = None,
    definitions: DefinitionSource | None = None,
    engine_factory: EngineFactory = OnnxInferenceEngine,
    client: httpx.Client | None = None,
) -> Services:
    """Build the service bundle; nothing is downloaded until first use."""
    if embedder is None:
        embedder = create_embedder(settings, engine_factory=engine_factory, client=client)
    if definitions is None and settings.definitions_path is not None:
        definitions = JsonDefinitionSource(settings.definitions_path)

    store = EmbeddingStore(settings.embeddings_dir)
    refresher = None
    if settings.corpus_base_url:
        refresher = CorpusRefresher(
            store, settings.corpus_base_url, client=client, timeout=settings.download_timeout,
        )
    docs = DocsCorpus(store, settings.docs_corpus, refresher=refresher)
    searcher = DocumentSearch(VectorRanker(embedder))

    executor = ToolExecutor()
    register_tools(executor, definitions or _MissingDefinitions(), docs, searcher)

    return Services(
        settings=settings,
        embedder=embedder,
        store=store,
        docs=docs,
        searcher=searcher,
        definitions=definitions,
        executor=executor,
    )


def register_tools(
    executor: ToolExecutor,
    definitions: DefinitionSource,
    docs: DocsCorpus,
    searcher: DocumentSearch,
) -> None:
    """Register every tool handler on the executor."""
    executor.register_handler(
        "search_definitions", lambda inp: handle_search_definitions(inp, definitions)
    )
    executor.register_handler(
        "list_definition_names", lambda inp: handle_list_definition_names(inp, definitions)
    )
    executor.register_handler(
        "search_docs", lambda inp: handle_search_docs(inp, docs, searcher)
    )
