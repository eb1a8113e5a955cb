#!/usr/bin/env python3
"""Server peer connection handler.

This module provides the handler for TCP peers connecting to the server.
Each peer is registered for outbound broadcasts while its receive loop
runs and unregistered when it disconnects.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from peerclip.peer_stream import run_peer_loop
from peerclip.protocol import ProtocolError

if TYPE_CHECKING:
    import asyncio

    from peerclip.sync_state import SyncState

logger = logging.getLogger(__name__)


async def handle_peer(
    state: SyncState,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
) -> None:
    """Handle a single peer connection.

    Args:
        state: The clipboard synchronization state.
        reader: The asyncio StreamReader for the peer connection.
        writer: The asyncio StreamWriter for the peer connection.
    """
    peername = writer.get_extra_info("peername")
    logger.debug("Peer connected: %s", peername)
    state.peers.add(writer)
    try:
        await run_peer_loop(state, reader)
        logger.debug("Peer disconnected cleanly: %s", peername)
    except ProtocolError as e:
        logger.error("Protocol error from %s: %s", peername, e)
    except ConnectionError as e:
        logger.error("Connection error from %s: %s", peername, e)
    finally:
        state.peers.discard(writer)
        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError):
            pass  # Connection may already be gone
