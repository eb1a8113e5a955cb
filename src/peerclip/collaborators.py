#!/usr/bin/env python3
"""Interfaces of the platform services the protocol talks to.

Clipboard access, image conversion, the BLE notification stack and device
discovery are provided by the host platform. Only their shape is defined
here, plus MemoryClipboard, an in-process clipboard used by the command
line tool and the tests.
"""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from peerclip.protocol_constants import ContentType

logger = logging.getLogger(__name__)


class ClipboardProvider(Protocol):
    """
    Platform clipboard.

    The change callback fires after every clipboard change, including
    writes made through write_clipboard(), and may be invoked from any
    thread. Passing None unsubscribes.
    """

    def read_clipboard(self) -> tuple[bytes, ContentType] | None: ...

    def write_clipboard(self, data: bytes, content_type: ContentType) -> bool: ...

    def set_change_callback(self, callback: Callable[[], None] | None) -> None: ...


class ImageCodec(Protocol):
    def encode_image(self, bitmap: Any, fmt: ContentType) -> bytes: ...

    def decode_image(self, data: bytes) -> Any: ...


class NotificationChannel(Protocol):
    """A GATT characteristic that notifies every subscribed peer."""

    def notify(self, data: bytes) -> Awaitable[bool]: ...


class DiscoveryAdvertiser(Protocol):
    def advertise(self, payload: bytes) -> None: ...


class MemoryClipboard:
    """
    Clipboard kept in memory.

    Args:
        on_write: Called with (data, content_type) after each write.
    """

    def __init__(
        self,
        on_write: Callable[[bytes, ContentType], None] | None = None,
    ) -> None:
        self.content: bytes = b""
        self.content_type: ContentType = ContentType.PLAIN_TEXT
        self._on_write = on_write
        self._on_change: Callable[[], None] | None = None

    def read_clipboard(self) -> tuple[bytes, ContentType] | None:
        if not self.content:
            return None
        return self.content, self.content_type

    def write_clipboard(self, data: bytes, content_type: ContentType) -> bool:
        self.content = data
        self.content_type = content_type
        if self._on_write is not None:
            self._on_write(data, content_type)
        if self._on_change is not None:
            self._on_change()
        return True

    def set_change_callback(self, callback: Callable[[], None] | None) -> None:
        self._on_change = callback
