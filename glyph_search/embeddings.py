"""Text embedding provider.

The model is an external collaborator: glyph-search only needs "text in,
unit-normalised float32 vector out", deterministic for a fixed model.
``SentenceTransformerProvider`` wraps a sentence-transformers model, loads it
lazily (once, in a worker thread) and reports readiness on a
``StatusChannel``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol, Sequence

import numpy as np

from .errors import ModelUnavailable
from .loader import SingleFlight
from .status import StatusChannel
from .types import ProviderStatus

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
DEFAULT_BATCH_SIZE = 64


class EmbeddingProvider(Protocol):
    """What search and the offline build need from an embedding model."""

    status: StatusChannel

    async def embed(self, text: str) -> np.ndarray:
        ...

    async def embed_batch(
        self, texts: Sequence[str], batch_size: int = DEFAULT_BATCH_SIZE
    ) -> np.ndarray:
        ...

    async def preload(self) -> bool:
        ...


class SentenceTransformerProvider:
    """sentence-transformers backed embeddings.

    Parameters
    ----------
    model_name : model id or local path.
    device     : torch device string; None lets the library choose.
    status     : channel to publish readiness on; a new one if omitted.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        device: Optional[str] = None,
        status: Optional[StatusChannel] = None,
    ) -> None:
        self.model_name = model_name
        self.device = device
        self.status = status if status is not None else StatusChannel()
        self._model = SingleFlight(self._load_model, name=f"model:{model_name}")

    @property
    def ready(self) -> bool:
        return self._model.loaded

    @property
    def dim(self) -> Optional[int]:
        """Embedding length, known once the model is loaded."""
        model = self._model.peek()
        if model is None:
            return None
        return int(model.get_sentence_embedding_dimension())

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _create_model(self):
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            raise ModelUnavailable(
                "sentence-transformers is required; install the package to embed text."
            ) from e
        return SentenceTransformer(self.model_name, device=self.device)

    async def _load_model(self):
        self.status.publish(ProviderStatus(loading=True, ready=False))
        logger.info("Loading embedding model %s", self.model_name)
        try:
            model = await asyncio.to_thread(self._create_model)
        except ModelUnavailable:
            self.status.publish(ProviderStatus(loading=False, ready=False))
            raise
        except Exception as e:
            self.status.publish(ProviderStatus(loading=False, ready=False))
            raise ModelUnavailable(f"failed to load embedding model {self.model_name}: {e}") from e
        self.status.publish(ProviderStatus(loading=False, ready=True))
        logger.info("Embedding model %s ready", self.model_name)
        return model

    async def preload(self) -> bool:
        """Warm the model in the background; failure is logged, not raised."""
        try:
            await self._model.get()
        except ModelUnavailable:
            logger.exception("Failed to preload embedding model %s", self.model_name)
            return False
        return True

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    async def embed_batch(
        self, texts: Sequence[str], batch_size: int = DEFAULT_BATCH_SIZE
    ) -> np.ndarray:
        """Embed ``texts``; returns a (len(texts), dim) float32 array of unit vectors."""
        model = await self._model.get()
        try:
            vectors = await asyncio.to_thread(
                model.encode,
                list(texts),
                batch_size=batch_size,
                normalize_embeddings=True,
                show_progress_bar=False,
                convert_to_numpy=True,
            )
        except Exception as e:
            raise ModelUnavailable(f"embedding failed: {e}") from e
        return np.asarray(vectors, dtype=np.float32)

    async def embed(self, text: str) -> np.ndarray:
        """Embed one query string."""
        return (await self.embed_batch([text]))[0]
