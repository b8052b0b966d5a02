"""Readiness channel for the embedding provider.

Subscribers receive the current ``ProviderStatus`` immediately on
``subscribe`` and again on every transition.  ``subscribe`` returns a
``Subscription`` handle; ``cancel()`` (or leaving its ``with`` block)
stops delivery.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List

from .types import ProviderStatus

logger = logging.getLogger(__name__)

StatusCallback = Callable[[ProviderStatus], None]


class Subscription:
    """Cancellable handle returned by ``StatusChannel.subscribe``."""

    def __init__(self, channel: "StatusChannel", callback: StatusCallback) -> None:
        self._channel = channel
        self.callback = callback

    @property
    def active(self) -> bool:
        return self._channel._has(self)

    def cancel(self) -> None:
        self._channel._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.cancel()


class StatusChannel:
    """Observable ``{loading, ready}`` state."""

    def __init__(self, initial: ProviderStatus = ProviderStatus()) -> None:
        self._state = initial
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    @property
    def current(self) -> ProviderStatus:
        return self._state

    def subscribe(self, callback: StatusCallback) -> Subscription:
        sub = Subscription(self, callback)
        with self._lock:
            self._subscriptions.append(sub)
            state = self._state
        self._deliver(sub, state)
        return sub

    def publish(self, status: ProviderStatus) -> bool:
        """Set the state; notify subscribers if it changed."""
        with self._lock:
            if status == self._state:
                return False
            self._state = status
            targets = list(self._subscriptions)
        for sub in targets:
            self._deliver(sub, status)
        return True

    def __len__(self) -> int:
        return len(self._subscriptions)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _has(self, sub: Subscription) -> bool:
        with self._lock:
            return sub in self._subscriptions

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    @staticmethod
    def _deliver(sub: Subscription, status: ProviderStatus) -> None:
        try:
            sub.callback(status)
        except Exception:
            logger.exception("status subscriber %r raised", sub.callback)
