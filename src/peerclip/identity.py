#!/usr/bin/env python3
"""
Device identity helpers: pairing keys, service UUIDs, advertisements.

Devices that share a pairing key derive the same BLE service UUID from it,
so a scanner only finds peers it can decrypt. The advertisement payload
carried in manufacturer data is:

    [1] magic 0xC5  [1] version  [1] name length  [n] name
    [1] id length   [m] device id
"""
from __future__ import annotations

import hashlib
import secrets
import uuid
from dataclasses import dataclass

from peerclip.errors import FramingError

# Alphabet for pairing keys; omits easily confused characters (0/O, 1/I).
KEY_ALPHABET: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

ADVERTISEMENT_MAGIC: int = 0xC5
ADVERTISEMENT_VERSION: int = 1


def uuid_from_string(value: str) -> uuid.UUID:
    """
    Derive a stable RFC 4122 UUID from an arbitrary string.

    The first 16 bytes of SHA-256(value) are used with the version nibble
    forced to 5 and the variant bits forced to 10xx.
    """
    digest = hashlib.sha256(value.encode("utf-8")).digest()
    return uuid.UUID(bytes=digest[:16], version=5)


def generate_formatted_key(segment_count: int = 3, segment_length: int = 4) -> str:
    """
    Generate a random pairing key such as "K7QD-M3XP-9RTA".

    Args:
        segment_count: Number of dash-separated segments.
        segment_length: Characters per segment.

    Returns:
        The key; empty when segment_count is 0.
    """
    return "-".join(
        "".join(secrets.choice(KEY_ALPHABET) for _ in range(segment_length))
        for _ in range(segment_count)
    )


@dataclass(frozen=True)
class AdvertisementPayload:
    """Identity a device announces to nearby peers."""

    device_name: str
    device_id: str
    version: int = ADVERTISEMENT_VERSION

    def to_bytes(self) -> bytes:
        """
        Encode the payload for manufacturer data.

        Raises:
            ValueError: If the name or id is longer than 255 bytes.
        """
        name = self.device_name.encode("utf-8")
        device_id = self.device_id.encode("utf-8")
        if len(name) > 255 or len(device_id) > 255:
            raise ValueError("Device name and id must each fit in 255 bytes")
        return (
            bytes((ADVERTISEMENT_MAGIC, self.version, len(name)))
            + name
            + bytes((len(device_id),))
            + device_id
        )

    @staticmethod
    def from_bytes(data: bytes) -> AdvertisementPayload:
        """
        Parse manufacturer data.

        Raises:
            FramingError: If the data is not a peerclip advertisement.
        """
        if len(data) < 3:
            raise FramingError("Advertisement too short")
        if data[0] != ADVERTISEMENT_MAGIC:
            raise FramingError(f"Not a peerclip advertisement (magic {data[0]:#04x})")
        version = data[1]
        name_end = 3 + data[2]
        if len(data) < name_end + 1:
            raise FramingError("Advertisement truncated in device name")
        id_end = name_end + 1 + data[name_end]
        if len(data) < id_end:
            raise FramingError("Advertisement truncated in device id")
        return AdvertisementPayload(
            device_name=data[3:name_end].decode("utf-8", errors="replace"),
            device_id=data[name_end + 1 : id_end].decode("utf-8", errors="replace"),
            version=version,
        )
