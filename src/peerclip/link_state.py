#!/usr/bin/env python3
"""Subscription state of the constrained-transport channels.

The BLE stack reports subscriber changes from its own threads while the
sender and the handshake read the state from the event loop, so updates
go through a lock.
"""
from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class SubscriptionState:
    """Number of peers subscribed to a notification channel."""

    def __init__(self, count: int = 0) -> None:
        self._lock = threading.Lock()
        self._count = count

    def update(self, count: int) -> None:
        """Record the subscriber count reported by the transport."""
        with self._lock:
            previous, self._count = self._count, max(count, 0)
        if previous != count:
            logger.debug("Subscribed clients changed: %d -> %d", previous, count)

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    @property
    def is_subscribed(self) -> bool:
        with self._lock:
            return self._count > 0
