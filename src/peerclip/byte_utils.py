#!/usr/bin/env python3
"""
Fixed-width big-endian integer helpers for the wire header.

The checked readers return an (ok, value) pair so callers can tell a
truncated buffer from a legitimate zero. The bytes_to_* convenience
variants return 0 when the buffer is too short; they cannot distinguish
"zero" from "malformed", so the frame decoder only uses the checked form.
"""
import struct

_U32 = struct.Struct("!I")
_U16 = struct.Struct("!H")


def u32_to_bytes(value: int) -> bytes:
    """
    Encode an unsigned 32-bit integer as 4 big-endian bytes.

    Raises:
        ValueError: If value does not fit in 32 bits.
    """
    if not 0 <= value <= 0xFFFFFFFF:
        raise ValueError(f"Value {value} out of range for u32")
    return _U32.pack(value)


def u16_to_bytes(value: int) -> bytes:
    """
    Encode an unsigned 16-bit integer as 2 big-endian bytes.

    Raises:
        ValueError: If value does not fit in 16 bits.
    """
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"Value {value} out of range for u16")
    return _U16.pack(value)


def read_u32(data: bytes, offset: int = 0) -> tuple[bool, int]:
    """
    Read a big-endian u32 at offset.

    Args:
        data: Buffer to read from.
        offset: Start position in the buffer.

    Returns:
        (True, value) on success, (False, 0) if fewer than 4 bytes remain.
    """
    if offset < 0 or len(data) < offset + _U32.size:
        return False, 0
    return True, _U32.unpack_from(data, offset)[0]


def read_u16(data: bytes, offset: int = 0) -> tuple[bool, int]:
    """
    Read a big-endian u16 at offset.

    Args:
        data: Buffer to read from.
        offset: Start position in the buffer.

    Returns:
        (True, value) on success, (False, 0) if fewer than 2 bytes remain.
    """
    if offset < 0 or len(data) < offset + _U16.size:
        return False, 0
    return True, _U16.unpack_from(data, offset)[0]


def bytes_to_u32(data: bytes, offset: int = 0) -> int:
    """Read a big-endian u32, returning 0 if the buffer is too short."""
    return read_u32(data, offset)[1]


def bytes_to_u16(data: bytes, offset: int = 0) -> int:
    """Read a big-endian u16, returning 0 if the buffer is too short."""
    return read_u16(data, offset)[1]
