"""Shared fixtures: a tiny corpus plus fake provider and artifact source."""

import asyncio
import hashlib

import numpy as np
import pytest

from glyph_search.codec import encode
from glyph_search.errors import ModelUnavailable
from glyph_search.quantization import quantize_symmetric
from glyph_search.status import StatusChannel
from glyph_search.types import GlyphDB, ProviderStatus

TINY_VECTORS = [[1.0, 0.0], [0.0, 1.0], [0.7, 0.7]]


def hashed_vector(text: str, dim: int) -> np.ndarray:
    seed = int(hashlib.sha256(text.encode()).hexdigest()[:8], 16)
    v = np.random.default_rng(seed).standard_normal(dim)
    return (v / np.linalg.norm(v)).astype(np.float32)


class FakeProvider:
    """Embedding provider double: fixed vectors by text, hashed otherwise."""

    def __init__(self, vectors=None, dim=2, fail_times=0, delay=0.0):
        self.vectors = vectors or {}
        self.dim = dim
        self.fail_times = fail_times
        self.delay = delay
        self.calls = []
        self.status = StatusChannel(ProviderStatus(loading=False, ready=True))

    async def embed_batch(self, texts, batch_size=64):
        self.calls.append(list(texts))
        await asyncio.sleep(self.delay)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ModelUnavailable("model exploded")
        return np.stack([
            np.asarray(self.vectors[t], dtype=np.float32) if t in self.vectors
            else hashed_vector(t, self.dim)
            for t in texts
        ])

    async def embed(self, text):
        return (await self.embed_batch([text]))[0]

    async def preload(self):
        return True


class FakeSource:
    """Artifact source double; each fetch returns the next payload (bytes or exception)."""

    def __init__(self, *payloads, delay=0.0):
        self.payloads = list(payloads)
        self.delay = delay
        self.fetch_count = 0

    async def fetch(self):
        item = self.payloads[min(self.fetch_count, len(self.payloads) - 1)]
        self.fetch_count += 1
        await asyncio.sleep(self.delay)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def tiny_db():
    q = quantize_symmetric(TINY_VECTORS)
    return GlyphDB(
        dim=2,
        chars=["\U0001F600", "\U0001F44D", "❤️"],
        codes=["U+1F600", "U+1F44D", "U+2764 U+FE0F"],
        names=["grinning", "+1", "heart"],
        embeddings=q.values,
    )


@pytest.fixture
def tiny_payload(tiny_db):
    return encode(tiny_db)


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture
def make_source():
    return FakeSource
