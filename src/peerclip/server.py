#!/usr/bin/env python3
"""Server mode implementation for peerclip.

The server listens for TCP peers. For every connected peer it:
- Receives frames, reassembles and decrypts them, and updates the clipboard
- Includes the peer in TCP broadcasts of local clipboard changes, which
  are picked up from the clipboard change callback

It runs until SIGINT or SIGTERM.

Usage:
    peerclip serve --host 0.0.0.0 --port 8765
"""

from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import suppress
from typing import TYPE_CHECKING

from peerclip.server_handler import handle_peer
from peerclip.sync_handlers import watch_clipboard

if TYPE_CHECKING:
    from peerclip.sync_state import SyncState

logger = logging.getLogger(__name__)


async def run_server(
    state: SyncState,
    host: str,
    port: int,
    shutdown_requested: asyncio.Event | None = None,
) -> None:
    """Accept peers and sync with them until shutdown is requested.

    Args:
        state: The clipboard synchronization state.
        host: Address to bind.
        port: TCP port to listen on.
        shutdown_requested: Event that stops the server when set. When
            omitted, SIGINT and SIGTERM set an internal one.
    """
    if shutdown_requested is None:
        shutdown_requested = asyncio.Event()
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, shutdown_requested.set)
        loop.add_signal_handler(signal.SIGTERM, shutdown_requested.set)

    server = await asyncio.start_server(
        lambda r, w: handle_peer(state, r, w),
        host=host,
        port=port,
    )
    for sock in server.sockets:
        logger.warning("Listening on %s", sock.getsockname())

    async with server:
        watch_task = asyncio.create_task(watch_clipboard(state))
        shutdown_task = asyncio.create_task(shutdown_requested.wait())
        try:
            done, _ = await asyncio.wait(
                {watch_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
            )
            if watch_task in done:
                watch_task.result()
        finally:
            for task in (watch_task, shutdown_task):
                if not task.done():
                    task.cancel()
                    with suppress(asyncio.CancelledError):
                        await task
            server.close()
            for writer in list(state.peers):
                writer.close()
