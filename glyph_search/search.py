"""GlyphSearch — semantic lookup over the glyph corpus.

Public API
----------
GlyphSearch
    .search()      — rank corpus entries against free text
    .preload()     — warm the model and the artifact in the background
    .status        — provider readiness channel
    .stats()       — live statistics dict
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from .config import SearchConfig
from .embeddings import EmbeddingProvider, SentenceTransformerProvider
from .errors import DataUnavailable
from .loader import ArtifactLoader, ArtifactSource
from .ranking import top_k as select_top_k
from .similarity import score_all
from .status import StatusChannel
from .types import SearchResult

logger = logging.getLogger(__name__)


class GlyphSearch:
    """Search service owning one embedding provider and one artifact loader.

    Both resources are loaded on first use and shared by every later query;
    nothing here is module-global, so independent instances (tests, several
    corpora) never interfere.

    Parameters
    ----------
    provider      : text -> unit float vector.
    loader        : single-flight fetch-and-decode of the corpus artifact.
    default_top_k : result count when ``search`` is called without one.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        loader: ArtifactLoader,
        default_top_k: int = 10,
    ) -> None:
        if default_top_k < 1:
            raise ValueError(f"default_top_k must be >= 1, got {default_top_k}")
        self.provider = provider
        self.loader = loader
        self.default_top_k = default_top_k

    @classmethod
    def from_config(cls, config: Optional[SearchConfig] = None) -> "GlyphSearch":
        config = config or SearchConfig.from_env()
        provider = SentenceTransformerProvider(config.model_name, device=config.device)
        source = ArtifactSource(config.db_location, timeout=config.fetch_timeout)
        return cls(provider, ArtifactLoader(source), default_top_k=config.top_k)

    @property
    def status(self) -> StatusChannel:
        return self.provider.status

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(self, query: str, top_k: Optional[int] = None) -> List[SearchResult]:
        """Return up to ``top_k`` glyphs ranked by semantic similarity to ``query``.

        Raises
        ------
        ModelUnavailable — the query could not be embedded.
        DataUnavailable  — the corpus could not be fetched or decoded, or
                           it was built for a different embedding size.
        ValueError       — ``top_k`` < 1.
        """
        k = self.default_top_k if top_k is None else top_k
        if k < 1:
            raise ValueError(f"top_k must be >= 1, got {k}")
        if not query or not query.strip():
            return []

        # embedding and artifact load are independent; await both together
        db, query_vec = await asyncio.gather(self.loader.load(), self.provider.embed(query))

        if len(query_vec) != db.dim:
            raise DataUnavailable(
                f"corpus dim {db.dim} does not match query embedding dim {len(query_vec)}"
            )

        scores = score_all(query_vec, db)
        return [
            SearchResult(
                char=db.chars[i],
                code=db.codes[i],
                name=db.names[i],
                score=float(scores[i]),
                index=int(i),
            )
            for i in select_top_k(scores, k)
        ]

    # ------------------------------------------------------------------
    # Warm-up / stats
    # ------------------------------------------------------------------

    async def preload(self) -> bool:
        """Load model and artifact ahead of the first query.

        Failures are logged; a later ``search`` retries them.
        """
        model_ok, db = await asyncio.gather(
            self.provider.preload(),
            self.loader.load(),
            return_exceptions=True,
        )
        if isinstance(db, BaseException):
            logger.error("Failed to preload glyph artifact: %s", db)
            return False
        return bool(model_ok is True)

    def stats(self) -> Dict[str, Any]:
        db = self.loader.flight.peek()
        return {
            "model_ready": self.status.current.ready,
            "model_loading": self.status.current.loading,
            "artifact_loaded": db is not None,
            "artifact_attempts": self.loader.flight.attempts,
            "entry_count": db.entry_count if db is not None else 0,
            "dim": db.dim if db is not None else None,
            "default_top_k": self.default_top_k,
        }

    def __repr__(self) -> str:
        s = self.stats()
        return (
            f"GlyphSearch(entries={s['entry_count']} dim={s['dim']} "
            f"model_ready={s['model_ready']})"
        )
