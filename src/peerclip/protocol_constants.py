#!/usr/bin/env python3
"""Wire format constants and enums for the peerclip transfer protocol.

Header layout (19 bytes, big-endian):
    length:u32 version:u16 content_type:u8 transfer_id:u32
    chunk_index:u32 total_chunks:u32
"""
import enum

# Current protocol version. Frames carrying any other version are rejected.
PROTOCOL_VERSION: int = 1

SUPPORTED_VERSIONS: frozenset[int] = frozenset({PROTOCOL_VERSION})

# 4 (length) + 2 (version) + 1 (type) + 4 (transfer id) + 4 (index) + 4 (total)
HEADER_SIZE: int = 19

# Maximum ciphertext bytes carried by one frame on the constrained transport.
BLE_MAX_CHUNK_SIZE: int = 512

# Maximum clipboard payload accepted for sending (10 MB).
MAX_CONTENT_SIZE: int = 10485760

# Upper bound for a single frame on the reliable transport: header, envelope
# overhead and the largest allowed payload.
MAX_FRAME_SIZE: int = HEADER_SIZE + 28 + MAX_CONTENT_SIZE

# Partial transfers untouched for longer than this are swept (milliseconds).
STALE_TRANSFER_MS: int = 30000

# Header field offsets.
LENGTH_OFFSET: int = 0
VERSION_OFFSET: int = 4
CONTENT_TYPE_OFFSET: int = 6
TRANSFER_ID_OFFSET: int = 7
CHUNK_INDEX_OFFSET: int = 11
TOTAL_CHUNKS_OFFSET: int = 15


class ContentType(enum.IntEnum):
    """Clipboard content carried by a transfer."""

    PLAIN_TEXT = 1
    RTF_TEXT = 2
    PNG_IMAGE = 3
    JPEG_IMAGE = 4
    PDF_DOCUMENT = 5
    HTML_CONTENT = 6


class TransportKind(enum.Enum):
    """Transport a message is encoded for."""

    RELIABLE = "tcp"
    CONSTRAINED = "ble"
