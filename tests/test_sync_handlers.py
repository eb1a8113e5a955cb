#!/usr/bin/env python3
"""Tests for clipboard change and incoming message handlers."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from peerclip.collaborators import MemoryClipboard
from peerclip.config import SyncConfig
from peerclip.hashing import compute_hash
from peerclip.link_state import SubscriptionState
from peerclip.protocol import Message
from peerclip.protocol_constants import MAX_CONTENT_SIZE, ContentType
from peerclip.session import create_session
from peerclip.sync_handlers import (
    broadcast_frames,
    handle_clipboard_change,
    handle_incoming_message,
)
from peerclip.sync_state import SyncState


def make_writer() -> MagicMock:
    writer = MagicMock()
    writer.drain = AsyncMock()
    return writer


def written(writer: MagicMock) -> bytes:
    return b"".join(call.args[0] for call in writer.write.call_args_list)


@pytest.mark.asyncio
async def test_broadcast_skips_failing_peer() -> None:
    good = make_writer()
    bad = make_writer()
    bad.drain.side_effect = ConnectionResetError("gone")
    assert await broadcast_frames([bad, good], [b"a", b"b"]) == 1
    assert written(good) == b"ab"


@pytest.mark.asyncio
async def test_empty_clipboard_not_sent(sync_state: SyncState) -> None:
    sync_state.peers.add(make_writer())
    assert await handle_clipboard_change(sync_state) is False


@pytest.mark.asyncio
async def test_oversized_clipboard_not_sent(sync_state: SyncState) -> None:
    writer = make_writer()
    sync_state.peers.add(writer)
    sync_state.clipboard.write_clipboard(b"x" * (MAX_CONTENT_SIZE + 1), ContentType.PLAIN_TEXT)
    assert await handle_clipboard_change(sync_state) is False
    writer.write.assert_not_called()


@pytest.mark.asyncio
async def test_change_broadcast_over_tcp(sync_state: SyncState) -> None:
    """Test new content reaches every TCP peer and decodes on the other side."""
    first = make_writer()
    second = make_writer()
    sync_state.peers.update({first, second})
    sync_state.clipboard.write_clipboard(b"hello", ContentType.PLAIN_TEXT)

    assert await handle_clipboard_change(sync_state) is True
    assert sync_state.hash_state.last_sent_hash == compute_hash(b"hello")

    receiver = create_session("secret")
    for writer in (first, second):
        messages = receiver.on_bytes_received(written(writer))
        assert [m.payload for m in messages] == [b"hello"]


@pytest.mark.asyncio
async def test_duplicate_change_not_resent(sync_state: SyncState) -> None:
    writer = make_writer()
    sync_state.peers.add(writer)
    sync_state.clipboard.write_clipboard(b"same", ContentType.PLAIN_TEXT)
    assert await handle_clipboard_change(sync_state) is True
    assert await handle_clipboard_change(sync_state) is False
    assert writer.drain.await_count == 1


@pytest.mark.asyncio
async def test_no_peers_means_not_sent(sync_state: SyncState) -> None:
    sync_state.clipboard.write_clipboard(b"lonely", ContentType.PLAIN_TEXT)
    assert await handle_clipboard_change(sync_state) is False
    assert sync_state.hash_state.last_sent_hash is None


@pytest.mark.asyncio
async def test_incoming_message_written_and_not_echoed(sync_state: SyncState) -> None:
    """Test received content lands in the clipboard and is not sent back."""
    writer = make_writer()
    sync_state.peers.add(writer)
    message = Message(ContentType.HTML_CONTENT, 7, b"<i>x</i>")

    assert await handle_incoming_message(sync_state, message) is True
    assert sync_state.clipboard.content == b"<i>x</i>"
    assert sync_state.clipboard.content_type is ContentType.HTML_CONTENT

    assert await handle_clipboard_change(sync_state) is False
    writer.write.assert_not_called()


@pytest.mark.asyncio
async def test_hash_recorded_before_clipboard_write(sync_state: SyncState) -> None:
    seen = []
    clipboard = MemoryClipboard(
        on_write=lambda data, ct: seen.append(sync_state.hash_state.last_received_hash)
    )
    sync_state.clipboard = clipboard
    await handle_incoming_message(sync_state, Message(ContentType.PLAIN_TEXT, 1, b"abc"))
    assert seen == [compute_hash(b"abc")]


@pytest.mark.asyncio
async def test_rejected_clipboard_write(sync_state: SyncState) -> None:
    clipboard = MagicMock()
    clipboard.write_clipboard.return_value = False
    sync_state.clipboard = clipboard
    assert await handle_incoming_message(
        sync_state, Message(ContentType.PLAIN_TEXT, 1, b"abc")
    ) is False


class FakeBleLink:
    """Data and wakeup channels of a BLE peer that answers with reply."""

    def __init__(self, reply: bytes, data_ok: bool = True) -> None:
        self.reply = reply
        self.data_ok = data_ok
        self.frames: list[bytes] = []
        self.session = None
        self.data = MagicMock()
        self.data.notify = self._notify_data
        self.wakeup = MagicMock()
        self.wakeup.notify = self._notify_wakeup

    async def _notify_data(self, data: bytes) -> bool:
        self.frames.append(data)
        return self.data_ok

    async def _notify_wakeup(self, data: bytes) -> bool:
        asyncio.get_running_loop().call_soon(self.session.on_wakeup_written, self.reply)
        return True


def ble_state(link: FakeBleLink) -> SyncState:
    session = create_session(
        "secret",
        config=SyncConfig(handshake_timeout_ms=500),
        data_channel=link.data,
        wakeup_channel=link.wakeup,
        subscription=SubscriptionState(1),
    )
    link.session = session
    return SyncState(session=session, clipboard=MemoryClipboard())


@pytest.mark.asyncio
async def test_ble_peer_requesting_ble_gets_chunks() -> None:
    link = FakeBleLink(b"\x01")
    state = ble_state(link)
    payload = b"p" * 1200
    state.clipboard.write_clipboard(payload, ContentType.PLAIN_TEXT)

    assert await handle_clipboard_change(state) is True
    assert len(link.frames) == 3
    receiver = create_session("secret")
    messages = [receiver.on_frame_received(frame) for frame in link.frames]
    assert messages[-1].payload == payload


@pytest.mark.asyncio
async def test_ble_peer_requesting_tcp_gets_nothing_over_ble() -> None:
    link = FakeBleLink(b"\x02")
    state = ble_state(link)
    writer = make_writer()
    state.peers.add(writer)
    state.clipboard.write_clipboard(b"data", ContentType.PLAIN_TEXT)

    assert await handle_clipboard_change(state) is True
    assert link.frames == []
    assert writer.drain.await_count == 1


@pytest.mark.asyncio
async def test_failed_ble_transfer_falls_back_to_tcp() -> None:
    link = FakeBleLink(b"\x01", data_ok=False)
    state = ble_state(link)
    writer = make_writer()
    state.peers.add(writer)
    state.clipboard.write_clipboard(b"q" * 2000, ContentType.PLAIN_TEXT)

    assert await handle_clipboard_change(state) is True
    assert link.frames
    assert writer.drain.await_count == 1


@pytest.mark.asyncio
async def test_watch_clipboard_sends_each_change(sync_state: SyncState) -> None:
    """Test local clipboard changes are broadcast without an explicit call."""
    from peerclip.sync_handlers import watch_clipboard

    writer = make_writer()
    sync_state.peers.add(writer)
    task = asyncio.create_task(watch_clipboard(sync_state))
    await asyncio.sleep(0)

    sync_state.clipboard.write_clipboard(b"first", ContentType.PLAIN_TEXT)
    await asyncio.sleep(0.05)
    sync_state.clipboard.write_clipboard(b"second", ContentType.PLAIN_TEXT)
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    messages = create_session("secret").on_bytes_received(written(writer))
    assert [m.payload for m in messages] == [b"first", b"second"]


@pytest.mark.asyncio
async def test_watch_clipboard_does_not_echo_received(sync_state: SyncState) -> None:
    from peerclip.sync_handlers import watch_clipboard

    writer = make_writer()
    sync_state.peers.add(writer)
    task = asyncio.create_task(watch_clipboard(sync_state))
    await asyncio.sleep(0)

    await handle_incoming_message(sync_state, Message(ContentType.PLAIN_TEXT, 3, b"remote"))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    writer.write.assert_not_called()


@pytest.mark.asyncio
async def test_watch_clipboard_unsubscribes_on_cancel(sync_state: SyncState) -> None:
    from peerclip.sync_handlers import watch_clipboard

    task = asyncio.create_task(watch_clipboard(sync_state))
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    sync_state.clipboard.write_clipboard(b"after", ContentType.PLAIN_TEXT)
    assert not sync_state.clipboard_changed.is_set()
