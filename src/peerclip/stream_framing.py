#!/usr/bin/env python3
"""
Length-delimited frame extraction from an accumulated byte stream.

Reads on a stream socket return arbitrary slices: half a frame, or one
frame and the start of the next. FrameBuffer keeps the bytes received so
far and hands out one complete frame at a time, using the header's length
field, retaining any remainder for the next call.
"""
from __future__ import annotations

import logging

from peerclip.byte_utils import read_u32
from peerclip.errors import FramingError
from peerclip.protocol_constants import HEADER_SIZE, MAX_FRAME_SIZE

logger = logging.getLogger(__name__)


class FrameBuffer:
    """
    Accumulates stream bytes and splits them into frames.

    Args:
        max_frame_size: Largest length value accepted before the buffer is
            considered desynchronized.
    """

    def __init__(self, max_frame_size: int = MAX_FRAME_SIZE) -> None:
        self._buffer = bytearray()
        self.max_frame_size = max_frame_size

    def __len__(self) -> int:
        return len(self._buffer)

    def feed(self, data: bytes) -> None:
        self._buffer.extend(data)

    def clear(self) -> None:
        self._buffer.clear()

    def next_frame(self) -> bytes | None:
        """
        Remove and return the next complete frame.

        Returns:
            Frame bytes, or None if a full frame has not arrived yet.

        Raises:
            FramingError: If the length prefix is impossible. The buffered
                bytes cannot be resynchronized and are discarded.
        """
        ok, length = read_u32(self._buffer)
        if not ok:
            return None
        if length < HEADER_SIZE or length > self.max_frame_size:
            dropped = len(self._buffer)
            self._buffer.clear()
            raise FramingError(
                f"Frame length {length} outside [{HEADER_SIZE}, {self.max_frame_size}], "
                f"discarded {dropped} buffered bytes"
            )
        if len(self._buffer) < length:
            return None
        frame = bytes(self._buffer[:length])
        del self._buffer[:length]
        return frame

    def frames(self, data: bytes = b"") -> list[bytes]:
        """
        Feed data and return every frame that is now complete.

        Frames cut out before an impossible length prefix are still
        returned; the bytes from that prefix on are discarded and logged.
        """
        if data:
            self.feed(data)
        result = []
        while True:
            try:
                frame = self.next_frame()
            except FramingError as e:
                logger.warning("Stream framing lost: %s", e)
                return result
            if frame is None:
                return result
            result.append(frame)
