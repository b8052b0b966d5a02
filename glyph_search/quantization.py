"""Symmetric int8 quantization for glyph-search embeddings.

One global scale ``127 / max|x|`` is derived from every component of every
vector and applied uniformly, so zero maps to zero and a quantized corpus
row can be scored against a float query with a plain dot product.

quantize_symmetric  — whole-corpus quantization (build time)
quantize_batches    — same result from an iterable of batches
quantize_with_scale — apply a known scale, clamping to [-127, 127]
compute_scale       — scale only
dequantize / quantization_error — accuracy reporting
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple, Union

import numpy as np

from .errors import InvalidInput

QMAX: int = 127

ArrayLike = Union[np.ndarray, Sequence[Sequence[float]]]


@dataclass(frozen=True)
class QuantizedEmbeddings:
    """Result of a quantization run.

    ``values`` is a flat, row-major int8 array of ``rows * dim`` entries.
    ``scale`` is kept for reporting only; the artifact does not store it.
    """

    scale: float
    values: np.ndarray
    rows: int
    dim: int

    @property
    def matrix(self) -> np.ndarray:
        return self.values.reshape(self.rows, self.dim)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _as_matrix(embeddings: ArrayLike) -> np.ndarray:
    try:
        arr = np.asarray(embeddings, dtype=np.float64)
    except ValueError as exc:
        # ragged nested lists
        raise InvalidInput(f"embeddings must form a rectangular matrix: {exc}") from exc
    if arr.ndim != 2:
        raise InvalidInput(f"embeddings must be 2-D (rows, dim), got shape {arr.shape}")
    if arr.shape[0] == 0 or arr.shape[1] == 0:
        raise InvalidInput("cannot quantize an empty embedding set")
    if not np.all(np.isfinite(arr)):
        raise InvalidInput("embeddings contain NaN or infinite values")
    return arr


def _scale_from_max(max_abs: float) -> float:
    if max_abs == 0.0:
        raise InvalidInput("all embedding components are zero; scale is undefined")
    return QMAX / max_abs


def compute_scale(embeddings: ArrayLike) -> float:
    """Return ``127 / max|component|`` over the whole set."""
    arr = _as_matrix(embeddings)
    return _scale_from_max(float(np.max(np.abs(arr))))


def quantize_with_scale(embeddings: ArrayLike, scale: float) -> np.ndarray:
    """Quantize with an externally supplied scale.

    The scale may come from a different (or partial) set than ``embeddings``,
    so results are clamped to [-127, 127].
    """
    if not np.isfinite(scale) or scale <= 0:
        raise InvalidInput(f"scale must be a positive finite number, got {scale!r}")
    arr = _as_matrix(embeddings)
    q = np.clip(np.rint(arr * scale), -QMAX, QMAX)
    return q.astype(np.int8).reshape(-1)


# ---------------------------------------------------------------------------
# Quantizers
# ---------------------------------------------------------------------------


def quantize_symmetric(embeddings: ArrayLike) -> QuantizedEmbeddings:
    """Quantize N float vectors of length D to a flat int8 buffer.

    Parameters
    ----------
    embeddings : (N, D) array or list of equal-length sequences, each
                 expected to be unit-normalised.

    Returns
    -------
    QuantizedEmbeddings with ``values[i * D + j] == round(x[i][j] * scale)``.

    Raises
    ------
    InvalidInput — empty set, ragged rows, non-finite values, or every
                   component equal to zero.
    """
    arr = _as_matrix(embeddings)
    scale = _scale_from_max(float(np.max(np.abs(arr))))
    # |x * scale| <= 127 holds exactly because scale came from this set
    values = np.rint(arr * scale).astype(np.int8).reshape(-1)
    return QuantizedEmbeddings(scale=scale, values=values, rows=arr.shape[0], dim=arr.shape[1])


def quantize_batches(batches: Iterable[ArrayLike]) -> QuantizedEmbeddings:
    """Quantize a stream of (n_i, D) batches with one global scale.

    Output is identical to ``quantize_symmetric`` on the concatenated
    batches.  Batches are held until the global maximum is known.
    """
    held = []
    max_abs = 0.0
    dim = None
    for batch in batches:
        arr = _as_matrix(batch)
        if dim is None:
            dim = arr.shape[1]
        elif arr.shape[1] != dim:
            raise InvalidInput(f"batch dim mismatch: expected {dim}, got {arr.shape[1]}")
        max_abs = max(max_abs, float(np.max(np.abs(arr))))
        held.append(arr)
    if not held:
        raise InvalidInput("cannot quantize an empty embedding set")

    scale = _scale_from_max(max_abs)
    values = np.concatenate([quantize_with_scale(arr, scale) for arr in held])
    rows = sum(arr.shape[0] for arr in held)
    return QuantizedEmbeddings(scale=scale, values=values, rows=rows, dim=dim)


# ---------------------------------------------------------------------------
# Accuracy
# ---------------------------------------------------------------------------


def dequantize(values: np.ndarray, scale: float) -> np.ndarray:
    """Approximate float reconstruction (reporting only; search never does this)."""
    return np.asarray(values, dtype=np.float32) / np.float32(scale)


def quantization_error(original: ArrayLike, quantized: QuantizedEmbeddings) -> Tuple[float, float]:
    """Mean and max cosine error (1 - cos) between originals and dequantized rows."""
    orig = _as_matrix(original)
    recon = dequantize(quantized.matrix, quantized.scale).astype(np.float64)
    num = np.sum(orig * recon, axis=1)
    denom = np.linalg.norm(orig, axis=1) * np.linalg.norm(recon, axis=1) + 1e-12
    errors = 1.0 - num / denom
    return float(np.mean(errors)), float(np.max(errors))
