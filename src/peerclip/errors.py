#!/usr/bin/env python3
"""
Exception types for the peerclip transfer protocol.

FramingError is fatal to a single frame and never to the connection: the
caller drops the frame and keeps reading. CryptoError is fatal to a single
message; there is no fallback to interpreting the payload as plaintext.
"""


class ProtocolError(Exception):
    """
    Base class for protocol-level errors.

    Raised when a frame or message cannot be encoded or decoded.
    """

    pass


class FramingError(ProtocolError):
    """Header too short, unknown version, bad content type or chunk fields."""

    pass


class CryptoError(ProtocolError):
    """No key configured, truncated envelope, or authentication failure."""

    pass
