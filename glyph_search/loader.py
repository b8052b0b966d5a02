"""Load-once orchestration for process-wide resources.

SingleFlight   — owns ``{instance, inflight}`` for one lazily built value
ArtifactSource — fetches the raw artifact bytes (HTTP(S) or local path)
ArtifactLoader — fetch + decode behind a SingleFlight

The first ``get()`` starts the factory as a task; callers arriving while it
runs await that same task.  Success caches the value for every later
caller.  Failure is delivered to everyone awaiting that attempt, then the
in-flight marker is cleared so the next call starts a fresh attempt.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import Awaitable, Callable, Generic, Optional, TypeVar

import httpx

from . import codec
from .errors import DataUnavailable
from .types import GlyphDB

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# SingleFlight
# ---------------------------------------------------------------------------


class SingleFlight(Generic[T]):
    """Initialise-once holder for a value produced by an async factory.

    Parameters
    ----------
    factory : zero-argument coroutine function producing the value.
    name    : label used in log messages.
    """

    def __init__(self, factory: Callable[[], Awaitable[T]], name: str = "resource") -> None:
        self._factory = factory
        self.name = name
        self._instance: Optional[T] = None
        self._loaded = False
        self._inflight: Optional[asyncio.Task] = None
        self._lock = threading.Lock()
        self.attempts = 0

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def loading(self) -> bool:
        return self._inflight is not None

    def peek(self) -> Optional[T]:
        """Cached value, or None if not loaded yet."""
        return self._instance

    async def get(self) -> T:
        if self._loaded:
            return self._instance

        with self._lock:
            if self._loaded:
                return self._instance
            task = self._inflight
            if task is None:
                task = asyncio.ensure_future(self._run())
                task.add_done_callback(_consume_exception)
                self._inflight = task
        # a cancelled waiter must not cancel the shared attempt
        return await asyncio.shield(task)

    def reset(self) -> None:
        """Drop the cached value; the next ``get()`` loads again."""
        with self._lock:
            self._instance = None
            self._loaded = False

    async def _run(self) -> T:
        self.attempts += 1
        try:
            value = await self._factory()
        except BaseException:
            with self._lock:
                self._inflight = None
            raise
        with self._lock:
            self._instance = value
            self._loaded = True
            self._inflight = None
        return value

    def __repr__(self) -> str:
        state = "loaded" if self.loaded else "loading" if self.loading else "idle"
        return f"SingleFlight({self.name!r} {state} attempts={self.attempts})"


def _consume_exception(task: asyncio.Task) -> None:
    # every waiter may have gone away; keep asyncio from warning about it
    if not task.cancelled():
        task.exception()


# ---------------------------------------------------------------------------
# Artifact fetching
# ---------------------------------------------------------------------------


class ArtifactSource:
    """Where the corpus artifact lives: an ``http(s)://`` URL or a file path.

    Parameters
    ----------
    location : URL or filesystem path.
    timeout  : HTTP timeout in seconds.
    client   : optional shared ``httpx.AsyncClient``; not closed here.
    """

    def __init__(
        self,
        location: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.location = str(location)
        self.timeout = timeout
        self._client = client

    @property
    def is_remote(self) -> bool:
        return self.location.startswith(("http://", "https://"))

    async def fetch(self) -> bytes:
        if self.is_remote:
            return await self._fetch_http()
        try:
            return await asyncio.to_thread(Path(self.location).read_bytes)
        except OSError as e:
            raise DataUnavailable(f"cannot read artifact {self.location}: {e}") from e

    async def _fetch_http(self) -> bytes:
        try:
            if self._client is not None:
                response = await self._client.get(self.location)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.location)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DataUnavailable(f"artifact fetch failed for {self.location}: {e}") from e
        return response.content

    def __repr__(self) -> str:
        return f"ArtifactSource({self.location!r})"


class ArtifactLoader:
    """Fetch-and-decode of the corpus artifact, performed at most once."""

    def __init__(self, source) -> None:
        self.source = source
        self._flight: SingleFlight[GlyphDB] = SingleFlight(self._fetch_and_decode, name="artifact")

    @property
    def flight(self) -> SingleFlight[GlyphDB]:
        return self._flight

    async def load(self) -> GlyphDB:
        return await self._flight.get()

    async def _fetch_and_decode(self) -> GlyphDB:
        logger.info("Loading glyph artifact from %s", self.source)
        try:
            data = await self.source.fetch()
            db = codec.decode(data)
        except DataUnavailable as e:
            logger.error("Glyph artifact unavailable: %s", e)
            raise
        logger.info(
            "Loaded glyph artifact: %d entries, dim=%d, %d bytes",
            db.entry_count, db.dim, len(data),
        )
        return db
