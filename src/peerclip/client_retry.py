#!/usr/bin/env python3
"""Client connection and retry logic for peerclip.

This module provides connection handling with automatic retry using
tenacity for exponential backoff: a long-running client that keeps a
receive loop open to one peer, and a one-shot sender used by the command
line tool.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    stop_never,
    wait_exponential,
)

from peerclip.client_constants import INITIAL_WAIT, MAX_WAIT, SEND_ATTEMPTS, WAIT_MULTIPLIER
from peerclip.peer_stream import run_peer_loop
from peerclip.protocol_constants import ContentType, TransportKind
from peerclip.sync_handlers import broadcast_frames

if TYPE_CHECKING:
    from peerclip.session import ProtocolSession
    from peerclip.sync_state import SyncState

logger = logging.getLogger(__name__)


async def connect_to_peer(
    host: str, port: int
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Open a TCP connection to a peer.

    Args:
        host: Peer address.
        port: Peer TCP port.

    Returns:
        Tuple of (StreamReader, StreamWriter) for the connection.

    Raises:
        ConnectionError: If the connection fails.
    """
    try:
        return await asyncio.open_connection(host, port)
    except OSError as e:
        raise ConnectionError(f"Failed to connect to {host}:{port}: {e}") from e


@retry(
    wait=wait_exponential(
        multiplier=WAIT_MULTIPLIER,
        min=INITIAL_WAIT,
        max=MAX_WAIT,
    ),
    retry=retry_if_exception_type((ConnectionError, OSError)),
    stop=stop_never,
)
async def run_client_with_retry(state: SyncState, host: str, port: int) -> None:
    """Connect to a peer with retry and run the receive loop.

    Clears hash state on each attempt so the first clipboard content after
    a reconnect is always sent. A clean disconnect by the peer is treated
    like a lost connection and retried.

    Args:
        state: The clipboard synchronization state.
        host: Peer address.
        port: Peer TCP port.
    """
    state.hash_state.clear()

    logger.debug("Connecting to %s:%d", host, port)
    try:
        reader, writer = await connect_to_peer(host, port)
    except ConnectionError:
        logger.warning("Connection to %s:%d failed, will retry", host, port)
        raise

    logger.debug("Connected to %s:%d", host, port)
    state.peers.add(writer)
    try:
        await run_peer_loop(state, reader)
        raise ConnectionError(f"Peer {host}:{port} closed the connection")
    except (ConnectionError, OSError) as e:
        logger.warning("Connection lost: %s, will retry", e)
        raise
    finally:
        state.peers.discard(writer)
        writer.close()
        await writer.wait_closed()


@retry(
    wait=wait_exponential(
        multiplier=WAIT_MULTIPLIER,
        min=INITIAL_WAIT,
        max=MAX_WAIT,
    ),
    retry=retry_if_exception_type(ConnectionError),
    stop=stop_after_attempt(SEND_ATTEMPTS),
    reraise=True,
)
async def send_once(
    session: ProtocolSession,
    host: str,
    port: int,
    content_type: ContentType,
    data: bytes,
) -> bool:
    """Send one clipboard payload to a peer over TCP and disconnect.

    Args:
        session: Session holding the key.
        host: Peer address.
        port: Peer TCP port.
        content_type: Kind of content.
        data: Content bytes.

    Returns:
        False if the payload could not be encoded, True once flushed.

    Raises:
        ConnectionError: If the peer is unreachable after all attempts.
    """
    frames = session.encode_outbound(content_type, data, TransportKind.RELIABLE)
    if not frames:
        return False
    _, writer = await connect_to_peer(host, port)
    try:
        if await broadcast_frames([writer], frames) == 0:
            raise ConnectionError(f"Failed to write to {host}:{port}")
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError):
            pass
    logger.debug("Sent %d bytes to %s:%d", len(data), host, port)
    return True
