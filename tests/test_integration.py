#!/usr/bin/env python3
"""End-to-end tests over a real TCP socket on localhost."""
import asyncio
import functools

import pytest

from peerclip.collaborators import MemoryClipboard
from peerclip.protocol_constants import ContentType
from peerclip.server_handler import handle_peer
from peerclip.session import create_session
from peerclip.sync_state import SyncState


async def wait_for_content(clipboard: MemoryClipboard, timeout: float = 2.0) -> None:
    async def poll() -> None:
        while not clipboard.content:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(poll(), timeout)


@pytest.mark.asyncio
async def test_send_once_reaches_server_clipboard() -> None:
    """Test a one-shot send is decrypted into the server's clipboard."""
    from peerclip.client_retry import send_once

    state = SyncState(session=create_session("pairing key"), clipboard=MemoryClipboard())
    server = await asyncio.start_server(
        functools.partial(handle_peer, state), host="127.0.0.1", port=0
    )
    port = server.sockets[0].getsockname()[1]
    async with server:
        payload = "Grüße 👋".encode("utf-8")
        ok = await send_once(
            create_session("pairing key"), "127.0.0.1", port, ContentType.PLAIN_TEXT, payload
        )
        assert ok is True
        await wait_for_content(state.clipboard)

    assert state.clipboard.content == payload
    assert state.clipboard.content_type is ContentType.PLAIN_TEXT


@pytest.mark.asyncio
async def test_wrong_key_leaves_clipboard_untouched() -> None:
    from peerclip.client_retry import send_once

    state = SyncState(session=create_session("pairing key"), clipboard=MemoryClipboard())
    server = await asyncio.start_server(
        functools.partial(handle_peer, state), host="127.0.0.1", port=0
    )
    port = server.sockets[0].getsockname()[1]
    async with server:
        await send_once(
            create_session("other key"), "127.0.0.1", port, ContentType.PLAIN_TEXT, b"nope"
        )
        with pytest.raises(asyncio.TimeoutError):
            await wait_for_content(state.clipboard, timeout=0.3)

    assert state.clipboard.content == b""


@pytest.mark.asyncio
async def test_server_run_until_shutdown() -> None:
    """Test run_server binds, accepts a transfer, and stops on request."""
    from peerclip.client_retry import send_once
    from peerclip.server import run_server

    state = SyncState(session=create_session("k"), clipboard=MemoryClipboard())
    shutdown = asyncio.Event()

    probe = await asyncio.start_server(lambda r, w: None, host="127.0.0.1", port=0)
    port = probe.sockets[0].getsockname()[1]
    probe.close()
    await probe.wait_closed()

    server_task = asyncio.create_task(run_server(state, "127.0.0.1", port, shutdown))
    await asyncio.sleep(0.1)
    assert await send_once(create_session("k"), "127.0.0.1", port, ContentType.RTF_TEXT, b"{\\rtf1}")
    await wait_for_content(state.clipboard)
    shutdown.set()
    await asyncio.wait_for(server_task, 2.0)

    assert state.clipboard.content_type is ContentType.RTF_TEXT


@pytest.mark.asyncio
async def test_server_pushes_local_change_to_connected_peer() -> None:
    """Test a clipboard change on the server reaches a connected TCP peer."""
    from peerclip.client_retry import connect_to_peer
    from peerclip.protocol import read_frame
    from peerclip.server import run_server

    state = SyncState(session=create_session("k"), clipboard=MemoryClipboard())
    shutdown = asyncio.Event()

    probe = await asyncio.start_server(lambda r, w: None, host="127.0.0.1", port=0)
    port = probe.sockets[0].getsockname()[1]
    probe.close()
    await probe.wait_closed()

    server_task = asyncio.create_task(run_server(state, "127.0.0.1", port, shutdown))
    await asyncio.sleep(0.1)
    reader, writer = await connect_to_peer("127.0.0.1", port)

    async def connected() -> None:
        while not state.peers:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(connected(), 2.0)
    state.clipboard.write_clipboard(b"from server", ContentType.PLAIN_TEXT)

    frame = await asyncio.wait_for(read_frame(reader), 2.0)
    message = create_session("k").on_frame_received(frame)
    assert message.payload == b"from server"

    writer.close()
    await writer.wait_closed()
    shutdown.set()
    await asyncio.wait_for(server_task, 2.0)
