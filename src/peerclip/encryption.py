#!/usr/bin/env python3
"""
Authenticated encryption of clipboard payloads.

A passphrase is turned into a 256-bit key with HKDF-SHA256 (extract with a
fixed application salt, expand with a fixed info string, one output block).
Payloads are sealed with AES-256-GCM and carried as an envelope:

    nonce (12 bytes) || ciphertext || tag (16 bytes)

so an envelope is always 28 bytes longer than its plaintext. The nonce is
fresh random bytes for every call and there is no associated data.
"""
from __future__ import annotations

import logging
import os
import threading

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from peerclip.errors import CryptoError

logger = logging.getLogger(__name__)

KEY_SALT: bytes = b"P2PClipboardSyncSalt2025"
KEY_INFO: bytes = b"P2PClipboardEncryptionContext"

KEY_SIZE: int = 32
NONCE_SIZE: int = 12
TAG_SIZE: int = 16

# Nonce, tag and at least one byte of ciphertext.
MIN_ENVELOPE_SIZE: int = NONCE_SIZE + TAG_SIZE + 1

ENVELOPE_OVERHEAD: int = NONCE_SIZE + TAG_SIZE


def derive_key(passphrase: str) -> bytes:
    """
    Derive the symmetric key from a passphrase.

    A single HKDF expand block is exactly the key width, so the output is
    T(1) = HMAC(PRK, info || 0x01).

    Args:
        passphrase: Shared secret entered on every paired device.

    Returns:
        32-byte AES-256 key.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=KEY_SALT,
        info=KEY_INFO,
    )
    return hkdf.derive(passphrase.encode("utf-8"))


class ClipboardCipher:
    """
    Holds the derived key and seals/opens envelopes with it.

    The key is absent until set_password() succeeds; encrypt() and decrypt()
    raise CryptoError while it is absent. The key reference is swapped under
    a lock so a concurrent set/clear never exposes a half-updated key.
    """

    def __init__(self, password: str | None = None) -> None:
        self._lock = threading.Lock()
        self._key: bytes | None = None
        if password:
            self.set_password(password)

    def set_password(self, password: str) -> bool:
        """
        Derive and store the key for password.

        Returns:
            False if password is empty (existing key is left untouched).
        """
        if not password:
            logger.error("Password cannot be empty")
            return False
        key = derive_key(password)
        with self._lock:
            self._key = key
        return True

    def is_password_set(self) -> bool:
        with self._lock:
            return self._key is not None

    def clear_password(self) -> None:
        with self._lock:
            self._key = None

    def _current_key(self) -> bytes:
        with self._lock:
            key = self._key
        if key is None:
            raise CryptoError("No password has been set")
        return key

    def encrypt(self, plaintext: bytes) -> bytes:
        """
        Seal plaintext into an envelope.

        Args:
            plaintext: Raw clipboard bytes.

        Returns:
            nonce || ciphertext || tag.

        Raises:
            CryptoError: If no key is set.
        """
        key = self._current_key()
        nonce = os.urandom(NONCE_SIZE)
        sealed = AESGCM(key).encrypt(nonce, plaintext, None)
        return nonce + sealed

    def decrypt(self, envelope: bytes) -> bytes:
        """
        Open an envelope produced by encrypt().

        Args:
            envelope: nonce || ciphertext || tag.

        Returns:
            The plaintext bytes.

        Raises:
            CryptoError: If no key is set, the envelope is truncated, or the
                tag does not verify (wrong key or corrupted data).
        """
        key = self._current_key()
        if len(envelope) < MIN_ENVELOPE_SIZE:
            raise CryptoError(
                f"Envelope of {len(envelope)} bytes is shorter than {MIN_ENVELOPE_SIZE}"
            )
        nonce = envelope[:NONCE_SIZE]
        ciphertext = envelope[NONCE_SIZE:-TAG_SIZE]
        tag = envelope[-TAG_SIZE:]
        try:
            return AESGCM(key).decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as e:
            raise CryptoError("Authentication failed (data corrupted or wrong key)") from e
