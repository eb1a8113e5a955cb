#!/usr/bin/env python3
"""Client mode implementation for peerclip.

Connects to a peerclip server over TCP, keeps the connection alive with
automatic reconnects, stores clipboard content received from it, and sends
local clipboard changes to it.

See client_retry.py for connection handling.
"""

from __future__ import annotations

import asyncio
import signal
from contextlib import suppress
from typing import TYPE_CHECKING

from peerclip.client_retry import run_client_with_retry
from peerclip.sync_handlers import watch_clipboard

if TYPE_CHECKING:
    from peerclip.sync_state import SyncState


async def run_client(state: SyncState, host: str, port: int) -> None:
    """Run client mode until SIGINT or SIGTERM.

    Args:
        state: The clipboard synchronization state.
        host: Server address.
        port: Server TCP port.
    """
    shutdown_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, shutdown_requested.set)
    loop.add_signal_handler(signal.SIGTERM, shutdown_requested.set)

    client_task = asyncio.create_task(run_client_with_retry(state, host, port))
    watch_task = asyncio.create_task(watch_clipboard(state))
    shutdown_task = asyncio.create_task(shutdown_requested.wait())
    done, pending = await asyncio.wait(
        {client_task, watch_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
    )
    for task in pending:
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task
    for task in (client_task, watch_task):
        if task in done:
            task.result()
