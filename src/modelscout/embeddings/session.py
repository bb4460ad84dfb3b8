"""Model session: inference engine + vocabulary, lazily initialized once.

``ModelLoader`` turns local assets into a ``ModelSession`` and performs the
one-shot forced-redownload recovery. ``SessionCell`` owns the shared session
and makes initialization and recovery single-flight across threads.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol

import numpy as np

from modelscout.embeddings.assets import AssetManager, ModelAssets
from modelscout.embeddings.tokenizer import WordPieceTokenizer
from modelscout.embeddings.vocab import Vocabulary, load_tokenizer_config, load_vocabulary
from modelscout.errors import ModelCorrupted


logger = logging.getLogger(__name__)


MAX_LOAD_ATTEMPTS = 2


class InferenceEngine(Protocol):
    """Narrow contract of the sentence-embedding network.

    Takes int64 ``[batch, seq]`` tensors and returns float
    ``[batch, seq, hidden]`` hidden states.
    """

    def run(
        self,
        input_ids: np.ndarray,
        attention_mask: np.ndarray,
        token_type_ids: np.ndarray,
    ) -> np.ndarray:
        ...


EngineFactory = Callable[[Path], InferenceEngine]


class OnnxInferenceEngine:
    """ONNX Runtime CPU session returning ``last_hidden_state``."""

    def __init__(self, weights_path: Path):
        import onnxruntime as ort

        opts = ort.SessionOptions()
        opts.log_severity_level = 3
        self._session = ort.InferenceSession(
            str(weights_path),
            sess_options=opts,
            providers=["CPUExecutionProvider"],
        )
        self._input_names = {i.name for i in self._session.get_inputs()}

    def run(
        self,
        input_ids: np.ndarray,
        attention_mask: np.ndarray,
        token_type_ids: np.ndarray,
    ) -> np.ndarray:
        feeds = {
            "input_ids": input_ids,
            "attention_mask": attention_mask,
            "token_type_ids": token_type_ids,
        }
        # Some exports drop token_type_ids
        feeds = {k: v for k, v in feeds.items() if k in self._input_names}
        outputs = self._session.run(None, feeds)
        return np.asarray(outputs[0], dtype=np.float32)


@dataclass(frozen=True)
class ModelSession:
    """A ready-to-use engine and tokenizer pair."""
    engine: InferenceEngine
    tokenizer: WordPieceTokenizer
    assets: ModelAssets

    @property
    def vocabulary(self) -> Vocabulary:
        return self.tokenizer.vocab


class ModelLoader:
    """Builds ModelSessions from downloaded assets."""

    def __init__(
        self,
        assets: AssetManager,
        engine_factory: EngineFactory = OnnxInferenceEngine,
        max_length: int = 512,
        max_input_chars_per_word: int = 200,
    ):
        self.assets = assets
        self.engine_factory = engine_factory
        self.max_length = max_length
        self.max_input_chars_per_word = max_input_chars_per_word

    def load(self, force_redownload: bool = False) -> ModelSession:
        """Ensure assets and initialize a session.

        If initialization fails the assets are deleted, re-downloaded and
        initialization is tried once more. A second failure is fatal. With
        ``force_redownload`` the redownload happens up front and counts as
        that single extra attempt.
        """
        attempts = 1 if force_redownload else MAX_LOAD_ATTEMPTS
        last_error: ModelCorrupted | None = None
        for attempt in range(attempts):
            if force_redownload or attempt > 0:
                paths = self.assets.redownload()
            else:
                paths = self.assets.ensure()

            try:
                return self.initialize(paths)
            except ModelCorrupted as e:
                last_error = e
                logger.warning("Model initialization failed (attempt %d): %s", attempt + 1, e)

        raise ModelCorrupted(
            f"failed to restore a valid model after re-download: {last_error.message}",
            self.assets.model_dir,
        ) from last_error

    def initialize(self, paths: ModelAssets) -> ModelSession:
        """Load vocabulary, tokenizer config and engine; any failure is ModelCorrupted."""
        try:
            vocab = load_vocabulary(paths.vocabulary)
            config = load_tokenizer_config(paths.vocabulary_config)
        except OSError as e:
            raise ModelCorrupted(f"could not read tokenizer assets: {e}", paths.vocabulary) from e

        max_length = self.max_length
        if config.model_max_length is not None:
            max_length = min(max_length, config.model_max_length)

        tokenizer = WordPieceTokenizer(
            vocab,
            max_length=max_length,
            max_input_chars_per_word=self.max_input_chars_per_word,
            lowercase=config.lowercase,
            remove_accents=config.strip_accents,
        )

        try:
            engine = self.engine_factory(paths.weights)
        except Exception as e:
            raise ModelCorrupted(f"could not load model weights: {e}", paths.weights) from e

        return ModelSession(engine=engine, tokenizer=tokenizer, assets=paths)


class SessionCell:
    """Single-flight holder of the shared ModelSession.

    Concurrent first callers wait on the lock for one initialization. A
    failed initialization leaves the cell empty so a later call retries.
    """

    def __init__(self, loader: ModelLoader):
        self._loader = loader
        self._session: ModelSession | None = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._session is not None

    def get(self) -> ModelSession:
        session = self._session
        if session is not None:
            return session
        with self._lock:
            if self._session is None:
                self._session = self._loader.load()
            return self._session

    def recover(self, failed: ModelSession | None) -> ModelSession:
        """Replace a session whose engine failed, re-downloading its assets.

        If another caller already replaced ``failed``, the replacement is
        returned without downloading again.
        """
        with self._lock:
            current = self._session
            if current is not None and current is not failed:
                return current
            self._session = None
            self._session = self._loader.load(force_redownload=True)
            return self._session

    def reset(self) -> None:
        with self._lock:
            self._session = None
