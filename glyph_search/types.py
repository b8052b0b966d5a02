"""Core record types for glyph-search.

CorpusEntry   — one searchable glyph: display char, canonical code, name.
GlyphDB       — the decoded corpus artifact: metadata + flat int8 matrix.
SearchResult  — one ranked hit returned to the query caller.
ProviderStatus — readiness snapshot of the embedding provider.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from .errors import CorruptData


# ---------------------------------------------------------------------------
# Code-point helpers
# ---------------------------------------------------------------------------


def unified_to_char(unified: str) -> str:
    """``"1F44D-1F3FB"`` -> the rendered glyph (one or more code points)."""
    return "".join(chr(int(part, 16)) for part in unified.split("-"))


def unified_to_code(unified: str) -> str:
    """``"1F44D-1F3FB"`` -> ``"U+1F44D U+1F3FB"``."""
    return " ".join(f"U+{part}" for part in unified.split("-"))


# ---------------------------------------------------------------------------
# CorpusEntry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CorpusEntry:
    """One searchable glyph.

    Schema
    ------
    char : rendered glyph, one or more Unicode code points
    code : ordered code-point identifiers, e.g. ``"U+2764 U+FE0F"``
    name : short display label
    """

    char: str
    code: str
    name: str

    @classmethod
    def from_unified(cls, unified: str, name: str) -> "CorpusEntry":
        return cls(char=unified_to_char(unified), code=unified_to_code(unified), name=name)


# ---------------------------------------------------------------------------
# GlyphDB
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class GlyphDB:
    """Decoded corpus artifact.

    Schema
    ------
    dim        : embedding length, identical for every entry
    chars      : display glyphs, in canonical entry order
    codes      : canonical codes, parallel to ``chars``
    names      : display names, parallel to ``chars``
    embeddings : flat int8 array of ``dim * entry_count`` values, row-major

    Construction validates both structural invariants and raises
    ``CorruptData`` on the first violation.  The embeddings buffer is made
    read-only; a GlyphDB is never mutated after it is built.
    """

    dim: int
    chars: List[str]
    codes: List[str]
    names: List[str]
    embeddings: np.ndarray = field(repr=False)
    _scoring_matrix: Optional[np.ndarray] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.dim, bool) or not isinstance(self.dim, (int, np.integer)):
            raise CorruptData(f"dim must be a positive integer, got {self.dim!r}")
        if self.dim < 1:
            raise CorruptData(f"dim must be a positive integer, got {self.dim!r}")
        self.dim = int(self.dim)
        if not (len(self.chars) == len(self.codes) == len(self.names)):
            raise CorruptData(
                "metadata length mismatch: "
                f"chars={len(self.chars)} codes={len(self.codes)} names={len(self.names)}"
            )
        emb = np.asarray(self.embeddings)
        if emb.dtype != np.int8:
            raise CorruptData(f"embeddings must be int8, got {emb.dtype}")
        emb = emb.reshape(-1)
        expected = self.dim * len(self.chars)
        if emb.size != expected:
            raise CorruptData(
                f"embeddings length {emb.size} != dim * entries ({self.dim} * "
                f"{len(self.chars)} = {expected})"
            )
        if emb.flags.writeable:
            emb = emb.copy()
            emb.flags.writeable = False
        self.embeddings = emb

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def entry_count(self) -> int:
        return len(self.chars)

    def __len__(self) -> int:
        return self.entry_count

    @property
    def matrix(self) -> np.ndarray:
        """``(entry_count, dim)`` view over the flat buffer (no copy)."""
        return self.embeddings.reshape(self.entry_count, self.dim)

    @property
    def scoring_matrix(self) -> np.ndarray:
        """Read-only float64 copy of ``matrix``, built on first use and kept."""
        if self._scoring_matrix is None:
            scoring = self.matrix.astype(np.float64)
            scoring.flags.writeable = False
            self._scoring_matrix = scoring
        return self._scoring_matrix

    def row(self, index: int) -> np.ndarray:
        """Quantized vector for one entry (view)."""
        if not (0 <= index < self.entry_count):
            raise IndexError(f"entry index {index} out of range [0, {self.entry_count})")
        offset = index * self.dim
        return self.embeddings[offset:offset + self.dim]

    def entry(self, index: int) -> CorpusEntry:
        if not (0 <= index < self.entry_count):
            raise IndexError(f"entry index {index} out of range [0, {self.entry_count})")
        return CorpusEntry(
            char=self.chars[index], code=self.codes[index], name=self.names[index]
        )

    def entries(self) -> List[CorpusEntry]:
        return [self.entry(i) for i in range(self.entry_count)]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def fingerprint(self) -> str:
        """Blake2b-256 over metadata and the raw embeddings bytes.

        Two artifacts built from the same corpus and model produce the same
        fingerprint, so it doubles as a corpus version id.
        """
        h = hashlib.blake2b(digest_size=32)
        h.update(str(self.dim).encode())
        h.update(
            json.dumps([self.chars, self.codes, self.names], separators=(",", ":")).encode()
        )
        h.update(self.embeddings.tobytes())
        return h.hexdigest()

    def stats(self) -> Dict[str, Any]:
        return {
            "dim": self.dim,
            "entry_count": self.entry_count,
            "embeddings_bytes": int(self.embeddings.nbytes),
            "fingerprint": self.fingerprint(),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GlyphDB):
            return NotImplemented
        return (
            self.dim == other.dim
            and self.chars == other.chars
            and self.codes == other.codes
            and self.names == other.names
            and self.embeddings.tobytes() == other.embeddings.tobytes()
        )

    def __repr__(self) -> str:
        return (
            f"GlyphDB(dim={self.dim} entries={self.entry_count} "
            f"hash={self.fingerprint()[:8]}...)"
        )


# ---------------------------------------------------------------------------
# SearchResult / ProviderStatus
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SearchResult:
    """One ranked hit.

    ``score`` is the raw quantized dot product: it orders results but is
    not a literal cosine value.
    """

    char: str
    code: str
    name: str
    score: float
    index: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass(frozen=True)
class ProviderStatus:
    loading: bool = False
    ready: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)
