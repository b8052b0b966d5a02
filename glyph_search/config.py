"""Configuration for glyph-search, read from the environment."""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv

from .embeddings import DEFAULT_MODEL


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


class SearchConfig:
    """Where the corpus lives, which model embeds queries, and result size."""

    def __init__(
        self,
        db_location: str = "emoji-db.cbor",
        model_name: str = DEFAULT_MODEL,
        top_k: int = 10,
        fetch_timeout: float = 30.0,
        device: Optional[str] = None,
    ):
        if top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {top_k}")
        if fetch_timeout <= 0:
            raise ValueError(f"fetch_timeout must be > 0, got {fetch_timeout}")
        self.db_location = db_location
        self.model_name = model_name
        self.top_k = top_k
        self.fetch_timeout = fetch_timeout
        self.device = device

    @classmethod
    def from_env(cls) -> SearchConfig:
        """Create config from environment variables (and a ``.env`` file)."""
        load_dotenv()
        return cls(
            db_location=os.getenv("GLYPH_SEARCH_DB", "emoji-db.cbor"),
            model_name=os.getenv("GLYPH_SEARCH_MODEL", DEFAULT_MODEL),
            top_k=_int_env("GLYPH_SEARCH_TOP_K", 10),
            fetch_timeout=_float_env("GLYPH_SEARCH_FETCH_TIMEOUT", 30.0),
            device=os.getenv("GLYPH_SEARCH_DEVICE") or None,
        )

    def __repr__(self) -> str:
        return (
            f"SearchConfig(db={self.db_location!r} model={self.model_name!r} "
            f"top_k={self.top_k})"
        )
