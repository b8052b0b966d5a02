"""
Build the glyph corpus artifact with pre-computed, int8-quantized embeddings.

Reads:  an emoji-datasource style JSON file (list of objects with
        unified, short_name, name, category, subcategory, short_names,
        obsoleted_by, has_img_apple)
Writes: a CBOR artifact (dim, chars, codes, names, embeddings)

Run with: glyph-search-build emoji.json -o public/emoji-db.cbor
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from . import codec
from .embeddings import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_MODEL,
    EmbeddingProvider,
    SentenceTransformerProvider,
)
from .errors import GlyphSearchError, InvalidInput
from .quantization import QuantizedEmbeddings, quantization_error, quantize_batches
from .types import CorpusEntry, GlyphDB

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Corpus preparation
# ---------------------------------------------------------------------------


def load_raw(path: Path) -> List[Dict[str, Any]]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise InvalidInput(f"{path}: expected a JSON array of emoji records")
    return data


def is_searchable(raw: Dict[str, Any]) -> bool:
    """Current (not obsoleted) glyphs that have an Apple image."""
    return not raw.get("obsoleted_by") and bool(raw.get("has_img_apple"))


def build_description(raw: Dict[str, Any]) -> Tuple[CorpusEntry, str]:
    """Corpus entry plus the text that gets embedded for it.

    The description joins the display name, full name, category,
    subcategory and every short name, deduplicated in first-seen order.
    """
    unified = raw.get("unified")
    short_name = raw.get("short_name")
    if not unified or not short_name:
        raise InvalidInput(f"emoji record missing unified/short_name: {raw!r}")

    display_name = short_name.replace("_", " ")
    keywords = [
        display_name,
        (raw.get("name") or "").lower(),
        (raw.get("category") or "").lower(),
        (raw.get("subcategory") or "").lower(),
        *(s.replace("_", " ") for s in raw.get("short_names") or []),
    ]
    unique = list(dict.fromkeys(k for k in keywords if k))
    return CorpusEntry.from_unified(unified, display_name), " ".join(unique)


def prepare_corpus(records: Iterable[Dict[str, Any]]) -> Tuple[List[CorpusEntry], List[str]]:
    entries: List[CorpusEntry] = []
    descriptions: List[str] = []
    for raw in records:
        if not is_searchable(raw):
            continue
        entry, text = build_description(raw)
        entries.append(entry)
        descriptions.append(text)
    if not entries:
        raise InvalidInput("no searchable entries in corpus")
    return entries, descriptions


# ---------------------------------------------------------------------------
# Embedding + quantization
# ---------------------------------------------------------------------------


async def embed_descriptions(
    provider: EmbeddingProvider,
    descriptions: Sequence[str],
    batch_size: int = DEFAULT_BATCH_SIZE,
    progress: bool = True,
) -> List[np.ndarray]:
    """Embed in batches; returns one (n_i, dim) array per batch."""
    batches: List[np.ndarray] = []
    total = len(descriptions)
    for start in range(0, total, batch_size):
        chunk = descriptions[start:start + batch_size]
        batches.append(await provider.embed_batch(chunk, batch_size=batch_size))
        logger.debug("embedded entries %d-%d", start, start + len(chunk) - 1)
        if progress:
            print(f"  {min(start + batch_size, total)}/{total} embeddings computed")
    return batches


def assemble(entries: Sequence[CorpusEntry], quantized: QuantizedEmbeddings) -> GlyphDB:
    if quantized.rows != len(entries):
        raise InvalidInput(f"{quantized.rows} embeddings for {len(entries)} entries")
    return GlyphDB(
        dim=quantized.dim,
        chars=[e.char for e in entries],
        codes=[e.code for e in entries],
        names=[e.name for e in entries],
        embeddings=quantized.values,
    )


async def build(
    input_path: Path,
    output_path: Path,
    provider: EmbeddingProvider,
    batch_size: int = DEFAULT_BATCH_SIZE,
    typed_array: bool = False,
    progress: bool = True,
) -> Dict[str, Any]:
    """Run the full offline pipeline; returns a summary dict."""
    if progress:
        print(f"Loading glyph data from {input_path}...")
    entries, descriptions = prepare_corpus(load_raw(input_path))
    if progress:
        print(f"Found {len(entries)} glyphs")
        print("Computing embeddings...")

    batches = await embed_descriptions(provider, descriptions, batch_size, progress)

    if progress:
        print("Quantizing embeddings to int8 (symmetric)...")
    quantized = quantize_batches(batches)
    mean_err, max_err = quantization_error(np.concatenate(batches), quantized)

    db = assemble(entries, quantized)
    size = codec.save(db, output_path, typed_array=typed_array)

    summary = {
        "output": str(output_path),
        "entries": db.entry_count,
        "dim": db.dim,
        "bytes": size,
        "scale": quantized.scale,
        "mean_cosine_error": mean_err,
        "max_cosine_error": max_err,
        "fingerprint": db.fingerprint(),
    }
    if progress:
        print(f"\nDatabase saved to {output_path}")
        print(f"  Glyphs: {db.entry_count}")
        print(f"  Embedding dim: {db.dim}")
        print(f"  File size: {size / 1024 / 1024:.2f} MB")
        print(f"  Mean cosine error: {mean_err:.6f}")
        print(f"  Max cosine error:  {max_err:.6f}")
    return summary


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="glyph-search-build",
        description="Build the quantized glyph embedding database",
    )
    parser.add_argument("input", type=Path, help="emoji-datasource style emoji.json")
    parser.add_argument(
        "-o", "--output", type=Path, default=Path("emoji-db.cbor"),
        help="artifact path (default: emoji-db.cbor)",
    )
    parser.add_argument("--model", default=DEFAULT_MODEL, help=f"embedding model (default: {DEFAULT_MODEL})")
    parser.add_argument("--device", default=None, help="torch device, e.g. cpu or cuda")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    parser.add_argument(
        "--typed-array", action="store_true",
        help="write embeddings as a CBOR sint8 typed array (tag 72)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args(argv)
    if args.batch_size < 1:
        parser.error("--batch-size must be >= 1")
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    provider = SentenceTransformerProvider(args.model, device=args.device)
    print(f"Loading embedding model {args.model}...")
    try:
        asyncio.run(
            build(
                args.input,
                args.output,
                provider,
                batch_size=args.batch_size,
                typed_array=args.typed_array,
            )
        )
    except (GlyphSearchError, OSError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
