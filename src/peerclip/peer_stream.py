#!/usr/bin/env python3
"""Receive loop for one TCP peer.

Reads one length-delimited frame at a time, decodes it through the
session, stores completed messages in the clipboard, and sweeps stale
partial transfers on every iteration.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from peerclip.protocol import read_frame
from peerclip.sync_handlers import handle_incoming_message

if TYPE_CHECKING:
    from peerclip.sync_state import SyncState

logger = logging.getLogger(__name__)


async def run_peer_loop(state: SyncState, reader: asyncio.StreamReader) -> None:
    """Process frames from a peer until it disconnects.

    Frames that fail to parse or decrypt are dropped by the session and
    the loop continues.

    Args:
        state: The clipboard synchronization state.
        reader: The asyncio StreamReader for the peer connection.

    Raises:
        ProtocolError: If the stream cannot be split into frames any more.
        ConnectionError: On connection loss.
    """
    session = state.session
    while True:
        frame = await read_frame(reader)
        if frame is None:
            logger.debug("Peer closed the connection")
            return
        message = session.on_frame_received(frame)
        if message is not None:
            await handle_incoming_message(state, message)
        dropped = session.sweep()
        if dropped:
            logger.debug("Swept %d stale transfer(s)", dropped)
