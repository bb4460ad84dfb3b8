"""Mean pooling and L2 normalization of hidden states."""

from __future__ import annotations

import numpy as np

from modelscout.errors import PoolingError


def mean_pool(hidden: np.ndarray, attention_mask: np.ndarray) -> np.ndarray:
    """Average hidden states over positions where attention_mask is 1.

    ``hidden`` is ``[batch, seq, dim]``, ``attention_mask`` is ``[batch, seq]``.
    Padding positions never contribute.
    """
    mask = (attention_mask == 1).astype(np.float64)[:, :, np.newaxis]
    counts = mask.sum(axis=1)
    if np.any(counts == 0):
        raise PoolingError("sequence has no valid (non-padding) positions")
    summed = (hidden.astype(np.float64) * mask).sum(axis=1)
    return (summed / counts).astype(np.float32)


def l2_normalize(vectors: np.ndarray) -> np.ndarray:
    """Scale each row to unit Euclidean length; a zero or non-finite norm is an error."""
    vectors = np.atleast_2d(vectors).astype(np.float64)
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    if np.any(norms == 0) or not np.all(np.isfinite(norms)):
        raise PoolingError("cannot normalize a zero-norm or non-finite embedding")
    return (vectors / norms).astype(np.float32)


def combine_windows(window_vectors: np.ndarray) -> np.ndarray:
    """Recombine per-window embeddings of one long text into a single unit vector."""
    return l2_normalize(np.mean(np.atleast_2d(window_vectors), axis=0))[0]
