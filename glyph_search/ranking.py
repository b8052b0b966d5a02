"""Top-K selection over per-entry scores.

Order is score descending, ties broken by corpus index ascending, so a
fixed corpus and query always produce the same result list.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np

Scores = Union[np.ndarray, Sequence[float]]


def _prepare(scores: Scores, k: int):
    arr = np.asarray(scores, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"scores must be 1-D, got shape {arr.shape}")
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    return arr, min(k, arr.shape[0])


def top_k(scores: Scores, k: int) -> np.ndarray:
    """Indices of the ``k`` best scores (full stable sort, O(N log N))."""
    arr, k = _prepare(scores, k)
    # stable sort keeps first occurrence first among equal scores
    return np.argsort(-arr, kind="stable")[:k]


def top_k_partial(scores: Scores, k: int) -> np.ndarray:
    """Same output as ``top_k`` in O(N + K log K).

    ``argpartition`` finds the k-th largest value; everything strictly
    above it is taken, and the remaining slots are filled with the
    lowest-index entries equal to it.
    """
    arr, k = _prepare(scores, k)
    n = arr.shape[0]
    if k == n:
        return np.argsort(-arr, kind="stable")

    kth = n - k
    threshold = arr[np.argpartition(arr, kth)[kth]]
    above = np.flatnonzero(arr > threshold)
    ties = np.flatnonzero(arr == threshold)[: k - above.shape[0]]
    chosen = np.concatenate([above, ties])
    # lexsort: last key is primary
    order = np.lexsort((chosen, -arr[chosen]))
    return chosen[order]
