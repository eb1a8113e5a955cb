#!/usr/bin/env python3
"""Runtime settings for a peerclip endpoint."""
from dataclasses import dataclass

from peerclip.flow_control import DRAIN_TIMEOUT, MAX_PENDING_OPS, WINDOW_TIMEOUT
from peerclip.negotiation import DEFAULT_HANDSHAKE_TIMEOUT_MS
from peerclip.protocol_constants import BLE_MAX_CHUNK_SIZE, STALE_TRANSFER_MS

# Default TCP port for the reliable transport.
DEFAULT_PORT: int = 8765


@dataclass
class SyncConfig:
    """
    Tunables for one endpoint.

    Attributes:
        stale_transfer_ms: Age after which partial transfers are swept.
        handshake_timeout_ms: Wait for a wakeup response.
        chunk_size: Ciphertext bytes per frame on the constrained transport.
        window_size: Notifications in flight on the constrained transport.
        drain_timeout: Seconds to wait for in-flight notifications at the end.
        window_timeout: Seconds to wait for a full window to free a slot.
    """

    stale_transfer_ms: int = STALE_TRANSFER_MS
    handshake_timeout_ms: int = DEFAULT_HANDSHAKE_TIMEOUT_MS
    chunk_size: int = BLE_MAX_CHUNK_SIZE
    window_size: int = MAX_PENDING_OPS
    drain_timeout: float = DRAIN_TIMEOUT
    window_timeout: float = WINDOW_TIMEOUT
