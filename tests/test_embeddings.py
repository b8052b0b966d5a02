"""Tests for glyph_search.embeddings (model replaced by a fake)."""

import asyncio

import numpy as np
import pytest

from glyph_search.embeddings import SentenceTransformerProvider
from glyph_search.errors import ModelUnavailable
from glyph_search.status import StatusChannel
from glyph_search.types import ProviderStatus


class FakeModel:
    def __init__(self, fail_encode=False):
        self.fail_encode = fail_encode
        self.encode_calls = []

    def get_sentence_embedding_dimension(self):
        return 3

    def encode(self, texts, batch_size, normalize_embeddings, show_progress_bar, convert_to_numpy):
        assert normalize_embeddings is True
        self.encode_calls.append(list(texts))
        if self.fail_encode:
            raise RuntimeError("onnx runtime crashed")
        out = np.array([[len(t), 1.0, 0.0] for t in texts], dtype=np.float64)
        return out / np.linalg.norm(out, axis=1, keepdims=True)


def _provider(monkeypatch, model=None, fail_loads=0):
    provider = SentenceTransformerProvider("fake/model")
    state = {"loads": 0}

    def create():
        state["loads"] += 1
        if state["loads"] <= fail_loads:
            raise OSError("model files not found")
        return model or FakeModel()

    monkeypatch.setattr(provider, "_create_model", create)
    return provider, state


class TestSentenceTransformerProvider:
    @pytest.mark.asyncio
    async def test_embed_returns_unit_float32(self, monkeypatch):
        provider, _ = _provider(monkeypatch)
        vec = await provider.embed("thumbs up")
        assert vec.shape == (3,)
        assert vec.dtype == np.float32
        assert float(np.linalg.norm(vec)) == pytest.approx(1.0, abs=1e-5)

    @pytest.mark.asyncio
    async def test_embed_batch_shape(self, monkeypatch):
        provider, _ = _provider(monkeypatch)
        out = await provider.embed_batch(["a", "bb", "ccc"], batch_size=2)
        assert out.shape == (3, 3)

    @pytest.mark.asyncio
    async def test_model_loaded_once(self, monkeypatch):
        provider, state = _provider(monkeypatch)
        await asyncio.gather(*(provider.embed(f"q{i}") for i in range(6)))
        assert state["loads"] == 1
        assert provider.ready

    @pytest.mark.asyncio
    async def test_dim_known_after_load(self, monkeypatch):
        provider, _ = _provider(monkeypatch)
        assert provider.dim is None
        await provider.embed("x")
        assert provider.dim == 3

    @pytest.mark.asyncio
    async def test_status_transitions(self, monkeypatch):
        provider, _ = _provider(monkeypatch)
        seen = []
        provider.status.subscribe(seen.append)
        await provider.embed("x")
        assert seen == [
            ProviderStatus(loading=False, ready=False),
            ProviderStatus(loading=True, ready=False),
            ProviderStatus(loading=False, ready=True),
        ]

    @pytest.mark.asyncio
    async def test_uses_channel_passed_in(self, monkeypatch):
        channel = StatusChannel()
        provider = SentenceTransformerProvider("fake/model", status=channel)
        assert provider.status is channel
        monkeypatch.setattr(provider, "_create_model", FakeModel)

        seen = []
        channel.subscribe(seen.append)
        await provider.embed("x")
        assert seen == [
            ProviderStatus(loading=False, ready=False),
            ProviderStatus(loading=True, ready=False),
            ProviderStatus(loading=False, ready=True),
        ]

    @pytest.mark.asyncio
    async def test_load_failure_then_retry(self, monkeypatch):
        provider, state = _provider(monkeypatch, fail_loads=1)
        with pytest.raises(ModelUnavailable, match="model files not found"):
            await provider.embed("x")
        assert provider.status.current == ProviderStatus(loading=False, ready=False)

        vec = await provider.embed("x")
        assert vec.shape == (3,)
        assert state["loads"] == 2
        assert provider.status.current.ready

    @pytest.mark.asyncio
    async def test_inference_failure(self, monkeypatch):
        provider, _ = _provider(monkeypatch, model=FakeModel(fail_encode=True))
        with pytest.raises(ModelUnavailable, match="embedding failed"):
            await provider.embed("x")

    @pytest.mark.asyncio
    async def test_preload_swallows_failure(self, monkeypatch):
        provider, _ = _provider(monkeypatch, fail_loads=1)
        assert await provider.preload() is False
        assert await provider.preload() is True
