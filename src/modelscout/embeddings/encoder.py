"""Batched text embedding on top of a shared ModelSession.

Texts are tokenized independently, padded into one int64 batch, run through
the inference engine in a single call, mean-pooled over real tokens and
L2-normalized. Texts that need several windows are embedded on their own and
their window vectors averaged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from modelscout.embeddings.pooling import combine_windows, l2_normalize, mean_pool
from modelscout.embeddings.session import MAX_LOAD_ATTEMPTS, ModelSession, SessionCell
from modelscout.embeddings.tokenizer import TokenSequence
from modelscout.errors import InferenceFailed, InvalidInput


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncodedBatch:
    """Padded model inputs, each ``[batch_size, max_len]`` int64."""
    input_ids: np.ndarray
    attention_mask: np.ndarray
    token_type_ids: np.ndarray

    @property
    def shape(self) -> tuple[int, int]:
        return self.input_ids.shape


def encode_batch(sequences: Sequence[TokenSequence], pad_id: int = 0) -> EncodedBatch:
    """Left-justify token sequences into tensors padded with ``pad_id``."""
    if not sequences:
        raise InvalidInput("cannot encode an empty batch")

    max_len = max(len(seq) for seq in sequences)
    input_ids = np.full((len(sequences), max_len), pad_id, dtype=np.int64)
    attention_mask = np.zeros((len(sequences), max_len), dtype=np.int64)

    for row, seq in enumerate(sequences):
        for token_id in seq.ids:
            if not isinstance(token_id, (int, np.integer)) or isinstance(token_id, bool) or token_id < 0:
                raise InvalidInput(f"invalid token id {token_id!r}")
        input_ids[row, :len(seq)] = seq.ids
        attention_mask[row, :len(seq)] = 1

    return EncodedBatch(
        input_ids=input_ids,
        attention_mask=attention_mask,
        token_type_ids=np.zeros_like(input_ids),
    )


class Embedder:
    """Public embedding API: ``embed`` and ``embed_batch``."""

    def __init__(self, cell: SessionCell):
        self.cell = cell

    def embed(self, text: str) -> np.ndarray:
        """Embed one text as a unit-length float32 vector."""
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: Sequence[str]) -> list[np.ndarray]:
        """Embed texts in input order.

        An engine failure triggers one forced model redownload and one
        retry; a second failure raises InferenceFailed.
        """
        if isinstance(texts, str) or not texts:
            raise InvalidInput("embed_batch expects a non-empty sequence of strings")
        for i, text in enumerate(texts):
            if not isinstance(text, str):
                raise InvalidInput(f"text {i} is not a string")

        session = self.cell.get()
        last_error: InferenceFailed | None = None
        for attempt in range(MAX_LOAD_ATTEMPTS):
            if attempt > 0:
                session = self.cell.recover(session)
            try:
                return self._embed_with(session, texts)
            except InferenceFailed as e:
                last_error = e
                logger.warning("Batch inference failed (attempt %d): %s", attempt + 1, e)

        raise InferenceFailed(
            f"inference failed after model recovery: {last_error.message}",
            session.assets.weights,
        ) from last_error

    def _embed_with(self, session: ModelSession, texts: Sequence[str]) -> list[np.ndarray]:
        windows = [session.tokenizer.tokenize(text) for text in texts]
        results: list[np.ndarray | None] = [None] * len(texts)

        single = [i for i, w in enumerate(windows) if len(w) == 1]
        if single:
            vectors = self._run(session, [windows[i][0] for i in single])
            for i, vector in zip(single, vectors):
                results[i] = vector

        for i, text_windows in enumerate(windows):
            if len(text_windows) > 1:
                logger.debug("Text %d spans %d windows, embedding separately", i, len(text_windows))
                results[i] = combine_windows(self._run(session, text_windows))

        return results

    def _run(self, session: ModelSession, sequences: Sequence[TokenSequence]) -> np.ndarray:
        """One engine call for the given windows; returns ``[n, dim]`` unit vectors."""
        batch = encode_batch(sequences, pad_id=session.tokenizer.vocab.pad_id)
        try:
            hidden = session.engine.run(batch.input_ids, batch.attention_mask, batch.token_type_ids)
        except Exception as e:
            raise InferenceFailed(f"engine call failed: {e}", session.assets.weights) from e

        hidden = np.asarray(hidden)
        if hidden.ndim != 3 or hidden.shape[:2] != batch.shape:
            raise InferenceFailed(
                f"engine returned shape {hidden.shape}, expected {batch.shape} + (hidden,)",
                session.assets.weights,
            )
        if not np.all(np.isfinite(hidden)):
            raise InferenceFailed("engine returned non-finite hidden states", session.assets.weights)
        return l2_normalize(mean_pool(hidden, batch.attention_mask))
