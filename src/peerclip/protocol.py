#!/usr/bin/env python3
"""
Binary framing for encrypted clipboard transfers.

Every frame starts with a fixed 19-byte big-endian header:

    length:u32 version:u16 content_type:u8 transfer_id:u32
    chunk_index:u32 total_chunks:u32

followed by the payload. `length` counts header plus payload, so a stream
receiver can cut exactly one frame out of its buffer. Payloads are always
ciphertext: a message is encrypted first and the envelope is then split
into chunks, one per frame. On the reliable transport a message is a single
frame; on the constrained transport the envelope is cut into chunks of at
most BLE_MAX_CHUNK_SIZE bytes sharing one transfer id.

This module provides the Frame and Message types, the MessageCodec that
turns clipboard content into frames and frames back into content, and
read_frame() for pulling one frame off an asyncio stream.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from peerclip.byte_utils import read_u16, read_u32, u16_to_bytes, u32_to_bytes
from peerclip.encryption import ClipboardCipher
from peerclip.errors import CryptoError, FramingError, ProtocolError
from peerclip.protocol_constants import (
    BLE_MAX_CHUNK_SIZE,
    CHUNK_INDEX_OFFSET,
    CONTENT_TYPE_OFFSET,
    HEADER_SIZE,
    LENGTH_OFFSET,
    MAX_CONTENT_SIZE,
    MAX_FRAME_SIZE,
    PROTOCOL_VERSION,
    SUPPORTED_VERSIONS,
    TOTAL_CHUNKS_OFFSET,
    TRANSFER_ID_OFFSET,
    VERSION_OFFSET,
    ContentType,
    TransportKind,
)
from peerclip.transfer_table import TransferTable

__all__ = [
    "CryptoError",
    "Frame",
    "FramingError",
    "Message",
    "MessageCodec",
    "ProtocolError",
    "chunked",
    "read_frame",
    "validate_content_size",
]

logger = logging.getLogger(__name__)


def validate_content_size(data: bytes) -> bool:
    """
    Check if content size is within the allowed limit.

    Args:
        data: Raw clipboard content bytes to validate.

    Returns:
        True if len(data) <= MAX_CONTENT_SIZE, False otherwise.
    """
    return len(data) <= MAX_CONTENT_SIZE


def chunked(data: bytes, chunk_size: int) -> list[bytes]:
    """
    Split data on plain byte boundaries.

    The data is ciphertext by the time it is chunked, so there is no need
    to respect character boundaries.

    Args:
        data: Bytes to split.
        chunk_size: Maximum size of each chunk.

    Returns:
        Consecutive slices of at most chunk_size bytes.
    """
    if chunk_size < 1:
        raise ValueError(f"Chunk size must be positive, got {chunk_size}")
    return [data[pos : pos + chunk_size] for pos in range(0, len(data), chunk_size)]


@dataclass(frozen=True)
class Frame:
    """
    One wire unit: header fields plus payload.

    `length` is derived from the payload so a Frame can never disagree
    with its own encoding.
    """

    content_type: ContentType
    transfer_id: int
    chunk_index: int
    total_chunks: int
    payload: bytes
    version: int = PROTOCOL_VERSION

    @property
    def length(self) -> int:
        return HEADER_SIZE + len(self.payload)

    def to_bytes(self) -> bytes:
        return b"".join(
            (
                u32_to_bytes(self.length),
                u16_to_bytes(self.version),
                bytes((int(self.content_type),)),
                u32_to_bytes(self.transfer_id),
                u32_to_bytes(self.chunk_index),
                u32_to_bytes(self.total_chunks),
                self.payload,
            )
        )

    @staticmethod
    def from_bytes(raw: bytes) -> Frame:
        """
        Parse exactly one frame from raw.

        Bytes beyond the declared length are ignored; the caller is
        responsible for isolating one frame from a stream first.

        Raises:
            FramingError: On a short buffer, unsupported version, unknown
                content type, or inconsistent length and chunk fields.
        """
        if len(raw) < HEADER_SIZE:
            raise FramingError(f"Frame of {len(raw)} bytes is shorter than header")

        _, length = read_u32(raw, LENGTH_OFFSET)
        _, version = read_u16(raw, VERSION_OFFSET)
        type_raw = raw[CONTENT_TYPE_OFFSET]
        _, transfer_id = read_u32(raw, TRANSFER_ID_OFFSET)
        _, chunk_index = read_u32(raw, CHUNK_INDEX_OFFSET)
        _, total_chunks = read_u32(raw, TOTAL_CHUNKS_OFFSET)

        if version not in SUPPORTED_VERSIONS:
            raise FramingError(f"Unsupported protocol version {version}")
        try:
            content_type = ContentType(type_raw)
        except ValueError as e:
            raise FramingError(f"Invalid content type {type_raw}") from e
        if length < HEADER_SIZE:
            raise FramingError(f"Declared length {length} is shorter than header")
        if length > len(raw):
            raise FramingError(f"Declared length {length} exceeds {len(raw)} bytes available")
        if total_chunks == 0:
            raise FramingError("Frame announces zero chunks")
        if chunk_index >= total_chunks:
            raise FramingError(
                f"Chunk index {chunk_index} out of range for {total_chunks} chunks"
            )

        return Frame(
            content_type=content_type,
            transfer_id=transfer_id,
            chunk_index=chunk_index,
            total_chunks=total_chunks,
            payload=bytes(raw[HEADER_SIZE:length]),
            version=version,
        )


@dataclass(frozen=True)
class Message:
    """A fully received and decrypted clipboard transfer."""

    content_type: ContentType
    transfer_id: int
    payload: bytes

    def text(self) -> str | None:
        """Return the payload as text for text-like content, else None."""
        if self.content_type not in (ContentType.PLAIN_TEXT, ContentType.HTML_CONTENT):
            return None
        return self.payload.decode("utf-8", errors="replace")


class MessageCodec:
    """
    Encrypting encoder and reassembling decoder for one protocol endpoint.

    Args:
        cipher: Holds the key used for both directions.
        table: Transfer id source and reassembly store. A fresh table is
            created when omitted.
        chunk_size: Largest payload per frame on the constrained transport.
    """

    def __init__(
        self,
        cipher: ClipboardCipher,
        table: TransferTable | None = None,
        chunk_size: int = BLE_MAX_CHUNK_SIZE,
    ) -> None:
        self.cipher = cipher
        self.table = table if table is not None else TransferTable()
        self.chunk_size = chunk_size

    def encode_message(
        self,
        content_type: ContentType,
        payload: bytes,
        transport: TransportKind,
    ) -> list[bytes]:
        """
        Encrypt payload and frame it for transport.

        Args:
            content_type: Kind of clipboard content.
            payload: Raw clipboard bytes.
            transport: Reliable stream (one frame) or constrained channel
                (chunked frames).

        Returns:
            Encoded frames in send order.

        Raises:
            ProtocolError: If the payload is empty.
            CryptoError: If encryption fails (e.g. no key set).
        """
        if not payload:
            raise ProtocolError("Cannot encode an empty payload")
        content_type = ContentType(content_type)
        transfer_id = self.table.next_transfer_id()
        envelope = self.cipher.encrypt(payload)

        if transport is TransportKind.RELIABLE:
            pieces = [envelope]
        else:
            pieces = chunked(envelope, self.chunk_size)

        total = len(pieces)
        frames = [
            Frame(
                content_type=content_type,
                transfer_id=transfer_id,
                chunk_index=index,
                total_chunks=total,
                payload=piece,
            ).to_bytes()
            for index, piece in enumerate(pieces)
        ]
        logger.debug(
            "Encoded transfer %d (%d bytes) into %d frame(s) for %s",
            transfer_id,
            len(payload),
            total,
            transport.name,
        )
        return frames

    def encode_text_message(self, text: str, transport: TransportKind) -> list[bytes]:
        return self.encode_message(ContentType.PLAIN_TEXT, text.encode("utf-8"), transport)

    def decode(self, data: bytes) -> Message | None:
        """
        Decode one frame.

        Args:
            data: Bytes of exactly one frame (trailing bytes past the
                declared length are ignored).

        Returns:
            The decrypted Message when the transfer is complete, or None
            while chunks of a multi-chunk transfer are still missing.

        Raises:
            FramingError: If the header is invalid.
            CryptoError: If the completed envelope fails to decrypt.
        """
        frame = Frame.from_bytes(data)

        if frame.total_chunks == 1:
            envelope = frame.payload
        else:
            merged = self.table.put(
                frame.transfer_id,
                frame.chunk_index,
                frame.total_chunks,
                frame.payload,
                int(frame.content_type),
            )
            if merged is None:
                return None
            envelope = merged

        plaintext = self.cipher.decrypt(envelope)
        logger.debug(
            "Decoded transfer %d: %d bytes of %s",
            frame.transfer_id,
            len(plaintext),
            frame.content_type.name,
        )
        return Message(
            content_type=frame.content_type,
            transfer_id=frame.transfer_id,
            payload=plaintext,
        )

    def sweep(self, max_age_ms: float) -> int:
        return self.table.sweep(max_age_ms)


async def read_frame(reader: asyncio.StreamReader) -> bytes | None:
    """
    Read exactly one frame from an async stream.

    Reads the 4-byte length prefix, then the rest of the frame. Bytes of
    any following frame stay in the reader's buffer.

    Args:
        reader: asyncio StreamReader to read from.

    Returns:
        The raw frame bytes, header included, or None if the peer closed
        the connection cleanly between frames.

    Raises:
        ProtocolError: On an impossible length or when the connection
            closes mid-frame.
    """
    try:
        prefix = await reader.readexactly(4)
    except asyncio.IncompleteReadError as e:
        if not e.partial:
            return None
        raise ProtocolError(f"Connection closed after {len(e.partial)} prefix bytes") from e
    _, length = read_u32(prefix)
    if length < HEADER_SIZE or length > MAX_FRAME_SIZE:
        raise ProtocolError(f"Frame length {length} outside [{HEADER_SIZE}, {MAX_FRAME_SIZE}]")
    try:
        rest = await reader.readexactly(length - 4)
    except asyncio.IncompleteReadError as e:
        raise ProtocolError(f"Connection closed after {len(e.partial)} of {length - 4} bytes") from e
    return prefix + rest
