#!/usr/bin/env python3
"""Clipboard synchronization state.

This module provides the SyncState dataclass that groups everything the
sync handlers and transport drivers share for one running endpoint.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from peerclip.hashing import HashState

if TYPE_CHECKING:
    from peerclip.collaborators import ClipboardProvider
    from peerclip.session import ProtocolSession


@dataclass
class SyncState:
    """State for clipboard synchronization.

    Attributes:
        session: Protocol endpoint used to encode and decode transfers.
        clipboard: Platform clipboard access.
        hash_state: Hash tracking for echo suppression.
        peers: Writers of the currently connected TCP peers.
        clipboard_changed: asyncio.Event signaled when the clipboard changed.
    """

    session: ProtocolSession
    clipboard: ClipboardProvider
    hash_state: HashState = field(default_factory=HashState)
    peers: set[asyncio.StreamWriter] = field(default_factory=set)
    clipboard_changed: asyncio.Event = field(default_factory=asyncio.Event)
