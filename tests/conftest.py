#!/usr/bin/env python3
"""Pytest fixtures for peerclip tests.

Provides keyed ciphers and codecs, a controllable millisecond clock, and
in-memory clipboard state.
"""

import pytest

from peerclip.collaborators import MemoryClipboard
from peerclip.encryption import ClipboardCipher
from peerclip.hashing import HashState
from peerclip.protocol import MessageCodec
from peerclip.session import create_session
from peerclip.sync_state import SyncState
from peerclip.transfer_table import TransferTable


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cipher() -> ClipboardCipher:
    """Cipher keyed with the password "secret"."""
    return ClipboardCipher("secret")


@pytest.fixture
def codec(cipher: ClipboardCipher, clock: FakeClock) -> MessageCodec:
    """Codec with a fresh table starting at transfer id 0."""
    return MessageCodec(cipher, TransferTable(clock=clock))


@pytest.fixture
def peer_codec(clock: FakeClock) -> MessageCodec:
    """Independent codec on the receiving side, same password."""
    return MessageCodec(ClipboardCipher("secret"), TransferTable(clock=clock))


@pytest.fixture
def hash_state() -> HashState:
    """Create a fresh HashState instance for testing."""
    return HashState()


@pytest.fixture
def clipboard() -> MemoryClipboard:
    return MemoryClipboard()


@pytest.fixture
def sync_state(clipboard: MemoryClipboard) -> SyncState:
    """SyncState with a TCP-only session keyed with "secret"."""
    return SyncState(session=create_session("secret"), clipboard=clipboard)
