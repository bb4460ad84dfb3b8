"""Embedding engine: tokenizer, model session, batched inference."""

from __future__ import annotations

from pathlib import Path

import httpx

from modelscout.config import ModelScoutSettings
from modelscout.embeddings.assets import AssetManager
from modelscout.embeddings.encoder import Embedder
from modelscout.embeddings.session import EngineFactory, ModelLoader, OnnxInferenceEngine, SessionCell


def create_embedder(
    settings: ModelScoutSettings,
    engine_factory: EngineFactory = OnnxInferenceEngine,
    client: httpx.Client | None = None,
) -> Embedder:
    """Wire an Embedder from settings; the model loads lazily on first use."""
    assets = AssetManager(
        model_dir=Path(settings.model_dir),
        base_url=settings.resolved_model_base_url,
        client=client,
        timeout=settings.download_timeout,
    )
    loader = ModelLoader(
        assets,
        engine_factory=engine_factory,
        max_length=settings.max_sequence_length,
        max_input_chars_per_word=settings.max_input_chars_per_word,
    )
    return Embedder(SessionCell(loader))
