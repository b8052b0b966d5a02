"""CBOR container for the glyph corpus artifact.

Layout: one CBOR map with five fields

    dim        : unsigned int
    chars      : array of text strings
    codes      : array of text strings
    names      : array of text strings
    embeddings : byte string of dim * entry_count int8 values, or the same
                 bytes wrapped in tag 72 (RFC 8746 sint8 typed array), which
                 is how JavaScript CBOR encoders write an ``Int8Array``

``decode`` accepts both embeddings forms and validates every structural
invariant before anything is returned.  ``encode`` writes the plain byte
string unless ``typed_array=True``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import cbor2
import numpy as np

from .errors import CorruptData, DataUnavailable
from .types import GlyphDB

logger = logging.getLogger(__name__)

FIELDS = ("dim", "chars", "codes", "names", "embeddings")
TAG_SINT8_ARRAY = 72

BytesLike = Union[bytes, bytearray, memoryview]


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


def encode(db: GlyphDB, typed_array: bool = False) -> bytes:
    """Serialise a GlyphDB to CBOR bytes."""
    raw = db.embeddings.tobytes()
    payload: Dict[str, Any] = {
        "dim": db.dim,
        "chars": list(db.chars),
        "codes": list(db.codes),
        "names": list(db.names),
        "embeddings": cbor2.CBORTag(TAG_SINT8_ARRAY, raw) if typed_array else raw,
    }
    return cbor2.dumps(payload)


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


def _string_list(obj: Dict[str, Any], key: str) -> List[str]:
    value = obj[key]
    if not isinstance(value, list):
        raise CorruptData(f"field {key!r} must be an array, got {type(value).__name__}")
    for i, item in enumerate(value):
        if not isinstance(item, str):
            raise CorruptData(f"field {key!r}[{i}] must be a string, got {type(item).__name__}")
    return value


def _embeddings_bytes(value: Any) -> bytes:
    if isinstance(value, cbor2.CBORTag):
        if value.tag != TAG_SINT8_ARRAY:
            raise CorruptData(f"embeddings carries unsupported tag {value.tag}")
        value = value.value
    if not isinstance(value, (bytes, bytearray)):
        raise CorruptData(
            f"field 'embeddings' must be a byte string, got {type(value).__name__}"
        )
    return bytes(value)


def decode(data: BytesLike) -> GlyphDB:
    """Parse CBOR bytes into a validated GlyphDB.

    Raises
    ------
    CorruptData — malformed or truncated CBOR, missing or mistyped fields,
                  metadata length mismatch, or an embeddings buffer whose
                  length is not ``dim * entries``.
    """
    try:
        obj = cbor2.loads(bytes(data))
    except cbor2.CBORDecodeError as exc:
        raise CorruptData(f"artifact is not valid CBOR: {exc}") from exc

    if not isinstance(obj, dict):
        raise CorruptData(f"artifact must be a CBOR map, got {type(obj).__name__}")
    missing = [key for key in FIELDS if key not in obj]
    if missing:
        raise CorruptData(f"artifact is missing fields: {', '.join(missing)}")

    chars = _string_list(obj, "chars")
    codes = _string_list(obj, "codes")
    names = _string_list(obj, "names")
    raw = _embeddings_bytes(obj["embeddings"])

    # GlyphDB checks dim, metadata lengths, then buffer length
    return GlyphDB(
        dim=obj["dim"],
        chars=chars,
        codes=codes,
        names=names,
        embeddings=np.frombuffer(raw, dtype=np.int8),
    )


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


def save(db: GlyphDB, path: Union[str, Path], typed_array: bool = False) -> int:
    """Write the encoded artifact to ``path``; returns the byte count."""
    encoded = encode(db, typed_array=typed_array)
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(encoded)
    logger.info("wrote %s (%d entries, %d bytes)", out, db.entry_count, len(encoded))
    return len(encoded)


def load(path: Union[str, Path]) -> GlyphDB:
    """Read and decode an artifact file."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise DataUnavailable(f"cannot read artifact {path}: {exc}") from exc
    return decode(data)
