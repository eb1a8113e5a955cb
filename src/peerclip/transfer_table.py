#!/usr/bin/env python3
"""
Transfer id allocation and multi-chunk reassembly.

A TransferTable is owned by one codec instance. It hands out transfer ids
for outbound messages and collects inbound chunks until every chunk of a
transfer has arrived. Chunks may arrive in any order; duplicate indices
overwrite the earlier copy. Abandoned transfers are removed by sweep(),
which the transport driver calls on each receive iteration.
"""
from __future__ import annotations

import logging
import secrets
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from peerclip.errors import FramingError

logger = logging.getLogger(__name__)

TRANSFER_ID_MODULUS: int = 2**32


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class PartialTransfer:
    """
    Chunks received so far for one transfer.

    Attributes:
        total_chunks: Chunk count announced by the first chunk seen.
        content_type: Raw content type byte of the transfer.
        chunks: Chunk payloads keyed by chunk index.
        last_updated: Clock reading (ms) of the most recent chunk.
    """

    total_chunks: int
    content_type: int
    last_updated: float
    chunks: dict[int, bytes] = field(default_factory=dict)

    def is_complete(self) -> bool:
        return len(self.chunks) == self.total_chunks

    def merged(self) -> bytes:
        """Concatenate chunk payloads in ascending index order."""
        return b"".join(self.chunks[index] for index in sorted(self.chunks))


class TransferTable:
    """
    Transfer id counter plus the map of in-flight partial transfers.

    All methods are safe to call from several threads.

    Args:
        first_id: Value returned by the first next_transfer_id() call.
        clock: Millisecond clock, time.monotonic based by default.
    """

    def __init__(
        self,
        first_id: int = 0,
        clock: Callable[[], float] = _monotonic_ms,
    ) -> None:
        self._lock = threading.Lock()
        self._next_id = first_id % TRANSFER_ID_MODULUS
        self._clock = clock
        self._partials: dict[int, PartialTransfer] = {}

    @classmethod
    def seeded(cls, clock: Callable[[], float] = _monotonic_ms) -> TransferTable:
        """Create a table whose ids start at a random 32-bit value."""
        return cls(first_id=secrets.randbelow(TRANSFER_ID_MODULUS), clock=clock)

    def next_transfer_id(self) -> int:
        """Return a fresh transfer id, wrapping at 2**32."""
        with self._lock:
            transfer_id = self._next_id
            self._next_id = (self._next_id + 1) % TRANSFER_ID_MODULUS
        return transfer_id

    def put(
        self,
        transfer_id: int,
        chunk_index: int,
        total_chunks: int,
        payload: bytes,
        content_type: int = 0,
    ) -> bytes | None:
        """
        Store one chunk and return the merged payload if it completes the transfer.

        Args:
            transfer_id: Transfer the chunk belongs to.
            chunk_index: Position of the chunk, 0-based.
            total_chunks: Number of chunks in the transfer.
            payload: Chunk bytes (a slice of the ciphertext envelope).
            content_type: Raw content type byte, kept with the transfer.

        Returns:
            The concatenated chunk payloads once all chunks are present,
            otherwise None. A completed transfer is removed from the table.

        Raises:
            FramingError: If the chunk fields are inconsistent with each
                other or with chunks already stored for the transfer.
        """
        if total_chunks < 1:
            raise FramingError(f"Transfer {transfer_id} announces {total_chunks} chunks")
        if chunk_index >= total_chunks:
            raise FramingError(
                f"Chunk index {chunk_index} out of range for {total_chunks} chunks"
            )
        now = self._clock()
        with self._lock:
            partial = self._partials.get(transfer_id)
            if partial is None:
                partial = PartialTransfer(
                    total_chunks=total_chunks,
                    content_type=content_type,
                    last_updated=now,
                )
                self._partials[transfer_id] = partial
            elif partial.total_chunks != total_chunks:
                raise FramingError(
                    f"Transfer {transfer_id} expected {partial.total_chunks} chunks, "
                    f"chunk announces {total_chunks}"
                )
            partial.chunks[chunk_index] = payload
            partial.last_updated = now
            logger.debug(
                "Transfer %d: %d/%d chunks received",
                transfer_id,
                len(partial.chunks),
                partial.total_chunks,
            )
            if not partial.is_complete():
                return None
            del self._partials[transfer_id]
        return partial.merged()

    def sweep(self, max_age_ms: float) -> int:
        """
        Remove partial transfers not updated within max_age_ms.

        Args:
            max_age_ms: Staleness window in milliseconds.

        Returns:
            Number of transfers removed.
        """
        now = self._clock()
        with self._lock:
            stale = [
                transfer_id
                for transfer_id, partial in self._partials.items()
                if now - partial.last_updated > max_age_ms
            ]
            for transfer_id in stale:
                del self._partials[transfer_id]
        for transfer_id in stale:
            logger.debug("Dropped stale transfer %d", transfer_id)
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._partials)

    def __contains__(self, transfer_id: object) -> bool:
        with self._lock:
            return transfer_id in self._partials
