#!/usr/bin/env python3
"""Clipboard synchronization event handlers.

This module provides handlers for clipboard synchronization events:
- handle_clipboard_change: read local clipboard, negotiate a transport, send
- handle_incoming_message: store a message received from a peer
- broadcast_frames: write frames to every connected TCP peer
- watch_clipboard: run handle_clipboard_change for every clipboard change
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from peerclip.hashing import compute_hash
from peerclip.negotiation import Preference
from peerclip.protocol import validate_content_size
from peerclip.protocol_constants import TransportKind

if TYPE_CHECKING:
    from peerclip.protocol import Message
    from peerclip.sync_state import SyncState

logger = logging.getLogger(__name__)


async def broadcast_frames(
    peers: Iterable[asyncio.StreamWriter], frames: Sequence[bytes]
) -> int:
    """Write frames to each peer.

    A peer whose connection fails is skipped; its own read loop notices the
    disconnect and removes it.

    Args:
        peers: Writers of connected TCP peers.
        frames: Encoded frames to send in order.

    Returns:
        Number of peers the frames were flushed to.
    """
    delivered = 0
    for writer in list(peers):
        try:
            for frame in frames:
                writer.write(frame)
            await writer.drain()
        except (ConnectionError, OSError) as e:
            logger.warning("Failed to send to peer: %s", e)
            continue
        delivered += 1
    return delivered


async def handle_clipboard_change(state: SyncState) -> bool:
    """Handle a local clipboard change and send it to peers.

    Reads the clipboard, skips empty, oversized, duplicate and echoed
    content, then asks BLE peers which transport they want. Content goes
    over BLE when a peer asks for it and over TCP to every connected TCP
    peer in any case.

    Args:
        state: The clipboard synchronization state.

    Returns:
        True if the content reached at least one peer.
    """
    current = state.clipboard.read_clipboard()
    if current is None or len(current[0]) == 0:
        logger.debug("Clipboard read returned empty/None, skipping")
        return False
    content, content_type = current

    if not validate_content_size(content):
        logger.warning("Clipboard content exceeds 10 MB limit, skipping")
        return False

    current_hash = compute_hash(content, content_type)
    if not state.hash_state.should_send(current_hash):
        logger.debug("Skipping duplicate or echo content")
        return False

    session = state.session
    sent = False
    preference = await session.negotiate_transport()
    if preference is Preference.CONSTRAINED:
        frames = session.encode_outbound(content_type, content, TransportKind.CONSTRAINED)
        if frames and await session.send_chunked(frames):
            logger.debug("Sent %d bytes over BLE in %d frames", len(content), len(frames))
            sent = True
        else:
            logger.warning("BLE transfer failed, falling back to TCP")
    elif preference is Preference.NONE:
        logger.debug("No transport preference, using TCP")

    if state.peers:
        frames = session.encode_outbound(content_type, content, TransportKind.RELIABLE)
        if frames and await broadcast_frames(state.peers, frames) > 0:
            logger.debug("Sent %d bytes over TCP", len(content))
            sent = True

    if sent:
        state.hash_state.record_sent(current_hash)
    return sent


async def handle_incoming_message(state: SyncState, message: Message) -> bool:
    """Store a message from a peer in the local clipboard.

    Records the hash BEFORE writing so the resulting change event is not
    sent back.

    Args:
        state: The clipboard synchronization state.
        message: Decrypted message from a peer.

    Returns:
        True if the clipboard accepted the content.
    """
    state.hash_state.record_received(compute_hash(message.payload, message.content_type))
    if not state.clipboard.write_clipboard(message.payload, message.content_type):
        logger.error("Failed to set clipboard content")
        return False
    logger.debug(
        "Received and set %d bytes of %s from remote",
        len(message.payload),
        message.content_type.name,
    )
    return True


async def watch_clipboard(state: SyncState) -> None:
    """Send local clipboard changes to peers until cancelled.

    Subscribes to the clipboard's change callback, which may fire on any
    thread, and signals state.clipboard_changed on the event loop. Changes
    that arrive while one is being sent are handled once, with the latest
    content.

    Args:
        state: The clipboard synchronization state.
    """
    loop = asyncio.get_running_loop()
    changed = state.clipboard_changed

    def on_change() -> None:
        loop.call_soon_threadsafe(changed.set)

    state.clipboard.set_change_callback(on_change)
    try:
        while True:
            await changed.wait()
            changed.clear()
            await handle_clipboard_change(state)
    finally:
        state.clipboard.set_change_callback(None)
