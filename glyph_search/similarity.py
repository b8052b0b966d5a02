"""Similarity scoring for glyph-search.

Queries are float vectors; corpus rows are symmetric int8.  Both sides
derive from unit-normalised embeddings and every row shares one scale, so
the raw dot product orders rows exactly like cosine similarity scaled by
that constant.  No dequantization happens at query time.

Metrics
-------
dot_product_quantized — one row of the flat buffer, addressed by offset
score_all             — every row at once (same values, vectorised)
cosine_similarity     — exact float reference metric
"""

from __future__ import annotations

from typing import Union

import numpy as np

from .types import GlyphDB


def _validate_query(query: np.ndarray, dim: int) -> np.ndarray:
    q = np.asarray(query, dtype=np.float32)
    if q.ndim != 1:
        raise ValueError("Query must be a 1-D array.")
    if len(q) != dim:
        raise ValueError(f"Query dim mismatch: expected {dim}, got {len(q)}.")
    return q


# ---------------------------------------------------------------------------
# Individual metrics
# ---------------------------------------------------------------------------


def dot_product_quantized(
    query: np.ndarray,
    quantized: np.ndarray,
    offset: int,
    dim: int,
) -> float:
    """Sum of ``query[i] * quantized[offset + i]`` for i in [0, dim).

    ``quantized`` is the flat int8 buffer; the row is sliced as a view, never
    copied or dequantized.
    """
    if offset < 0 or offset + dim > len(quantized):
        raise IndexError(
            f"row [{offset}, {offset + dim}) outside buffer of length {len(quantized)}"
        )
    if len(query) != dim:
        raise ValueError(f"Query dim mismatch: expected {dim}, got {len(query)}.")
    return float(np.dot(query, quantized[offset:offset + dim]))


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity between two float vectors, in [-1, 1]."""
    denom = float(np.linalg.norm(a)) * float(np.linalg.norm(b)) + 1e-12
    return float(np.dot(a, b)) / denom


# ---------------------------------------------------------------------------
# Whole-corpus scoring
# ---------------------------------------------------------------------------


def score_all(query: np.ndarray, corpus: Union[GlyphDB, np.ndarray]) -> np.ndarray:
    """Score ``query`` against every corpus row.

    Parameters
    ----------
    query  : float vector of length ``dim``.
    corpus : a GlyphDB, or an int8 matrix of shape (n, dim).

    Returns
    -------
    float64 array of n scores in corpus index order.
    """
    if isinstance(corpus, GlyphDB):
        matrix = corpus.scoring_matrix
    else:
        matrix = np.asarray(corpus)
        if matrix.ndim != 2:
            raise ValueError(f"corpus matrix must be 2-D, got shape {matrix.shape}")
        matrix = matrix.astype(np.float64)
    q = _validate_query(query, matrix.shape[1])
    return matrix @ q.astype(np.float64)
