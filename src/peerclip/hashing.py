#!/usr/bin/env python3
"""
SHA-256 hashing of clipboard content for echo suppression.

Writing received content into the local clipboard fires a "clipboard
changed" event. Without tracking, that event would send the same content
straight back to the peer it came from, and around again forever.

This module provides:
- compute_hash(): SHA-256 hex digest of content type plus content
- HashState: last sent and last received hashes

Critical ordering: record_received() must be called BEFORE writing the
clipboard so the resulting change event is recognized as an echo.
"""
import hashlib

from peerclip.hash_state import HashState
from peerclip.protocol_constants import ContentType

__all__ = ["compute_hash", "HashState"]


def compute_hash(data: bytes, content_type: ContentType = ContentType.PLAIN_TEXT) -> str:
    """
    Compute SHA-256 hash of clipboard content.

    The content type is part of the digest, so the same bytes offered as
    HTML and as plain text are different clipboard states.

    Args:
        data: Raw clipboard content bytes to hash.
        content_type: Kind of content.

    Returns:
        Hexadecimal string representation of the SHA-256 digest.
    """
    digest = hashlib.sha256()
    digest.update(bytes((int(content_type),)))
    digest.update(data)
    return digest.hexdigest()
