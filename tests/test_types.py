"""Unit tests for glyph_search.types."""

import json

import numpy as np
import pytest

from glyph_search.errors import CorruptData, DataUnavailable
from glyph_search.types import (
    CorpusEntry,
    GlyphDB,
    ProviderStatus,
    SearchResult,
    unified_to_char,
    unified_to_code,
)

DIM = 4


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _db(n: int = 3, dim: int = DIM, **overrides) -> GlyphDB:
    fields = dict(
        dim=dim,
        chars=[chr(0x1F600 + i) for i in range(n)],
        codes=[f"U+{0x1F600 + i:X}" for i in range(n)],
        names=[f"face {i}" for i in range(n)],
        embeddings=np.arange(n * dim, dtype=np.int8),
    )
    fields.update(overrides)
    return GlyphDB(**fields)


# ---------------------------------------------------------------------------
# Code points
# ---------------------------------------------------------------------------


def test_unified_single_code_point():
    assert unified_to_char("1F44D") == "\U0001F44D"
    assert unified_to_code("1F44D") == "U+1F44D"


def test_unified_sequence():
    assert unified_to_char("1F44D-1F3FB") == "\U0001F44D\U0001F3FB"
    assert unified_to_code("1F44D-1F3FB") == "U+1F44D U+1F3FB"


def test_corpus_entry_from_unified():
    e = CorpusEntry.from_unified("2764-FE0F", "heart")
    assert e.char == "❤️"
    assert e.code == "U+2764 U+FE0F"
    assert e.name == "heart"


# ---------------------------------------------------------------------------
# GlyphDB
# ---------------------------------------------------------------------------


def test_glyph_db_valid():
    db = _db()
    assert db.entry_count == 3
    assert len(db) == 3
    assert db.matrix.shape == (3, DIM)
    assert db.row(1).tolist() == [4, 5, 6, 7]
    assert db.entry(2) == CorpusEntry(char="\U0001F602", code="U+1F602", name="face 2")
    assert len(db.entries()) == 3


def test_glyph_db_empty_corpus_allowed():
    db = _db(n=0)
    assert db.entry_count == 0
    assert db.matrix.shape == (0, DIM)


def test_glyph_db_metadata_mismatch():
    with pytest.raises(CorruptData, match="metadata length mismatch"):
        _db(names=["only one"])


def test_glyph_db_buffer_mismatch():
    with pytest.raises(CorruptData, match="embeddings length"):
        _db(embeddings=np.zeros(3 * DIM - 1, dtype=np.int8))


def test_glyph_db_bad_dim():
    with pytest.raises(CorruptData, match="dim"):
        _db(dim=0, embeddings=np.zeros(0, dtype=np.int8))


def test_glyph_db_wrong_dtype():
    with pytest.raises(CorruptData, match="int8"):
        _db(embeddings=np.zeros(3 * DIM, dtype=np.float32))


def test_corrupt_data_is_data_unavailable():
    with pytest.raises(DataUnavailable):
        _db(codes=[])


def test_glyph_db_read_only_and_caller_untouched():
    source = np.zeros(3 * DIM, dtype=np.int8)
    db = _db(embeddings=source)
    assert not db.embeddings.flags.writeable
    assert source.flags.writeable
    with pytest.raises(ValueError):
        db.embeddings[0] = 1


def test_row_out_of_range():
    with pytest.raises(IndexError):
        _db().row(3)
    with pytest.raises(IndexError):
        _db().entry(-1)


def test_fingerprint_stable():
    assert _db().fingerprint() == _db().fingerprint()
    assert len(_db().fingerprint()) == 64  # Blake2b-256 hex


def test_fingerprint_changes_with_embeddings():
    other = _db(embeddings=np.ones(3 * DIM, dtype=np.int8))
    assert other.fingerprint() != _db().fingerprint()


def test_equality():
    assert _db() == _db()
    assert _db() != _db(names=["a", "b", "c"])


def test_stats_and_repr():
    s = _db().stats()
    assert s["entry_count"] == 3
    assert s["dim"] == DIM
    assert s["embeddings_bytes"] == 3 * DIM
    r = repr(_db())
    assert "GlyphDB" in r
    assert "dim=4" in r


# ---------------------------------------------------------------------------
# SearchResult / ProviderStatus
# ---------------------------------------------------------------------------


def test_search_result_json_keeps_glyph():
    r = SearchResult(char="\U0001F44D", code="U+1F44D", name="+1", score=12.5, index=7)
    data = json.loads(r.to_json())
    assert data == {"char": "\U0001F44D", "code": "U+1F44D", "name": "+1", "score": 12.5, "index": 7}
    assert "\U0001F44D" in r.to_json()


def test_provider_status_defaults():
    assert ProviderStatus().to_dict() == {"loading": False, "ready": False}
    assert ProviderStatus(ready=True) == ProviderStatus(loading=False, ready=True)
