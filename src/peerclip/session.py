#!/usr/bin/env python3
"""
Protocol endpoint shared by both transports.

ProtocolSession bundles the codec (cipher plus transfer table), the stream
frame buffer, and, when a BLE link is present, the wakeup handshake and the
chunked sender. Transport drivers hand it raw bytes and get complete
messages back; framing and decryption failures are logged and the offending
frame is dropped, so one bad frame never ends a connection.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from peerclip.collaborators import NotificationChannel
from peerclip.config import SyncConfig
from peerclip.encryption import ClipboardCipher
from peerclip.flow_control import ChunkedSender
from peerclip.link_state import SubscriptionState
from peerclip.negotiation import NegotiationHandshake, Preference
from peerclip.protocol import CryptoError, FramingError, Message, MessageCodec, ProtocolError
from peerclip.protocol_constants import ContentType, TransportKind
from peerclip.stream_framing import FrameBuffer
from peerclip.transfer_table import TransferTable

logger = logging.getLogger(__name__)


class ProtocolSession:
    """
    Encode/decode entry points for one endpoint.

    Args:
        codec: Encrypting frame codec.
        config: Endpoint tunables.
        handshake: Wakeup negotiation, when a BLE link exists.
        sender: Flow-controlled BLE sender, when a BLE link exists.
    """

    def __init__(
        self,
        codec: MessageCodec,
        config: SyncConfig | None = None,
        handshake: NegotiationHandshake | None = None,
        sender: ChunkedSender | None = None,
    ) -> None:
        self.codec = codec
        self.config = config if config is not None else SyncConfig()
        self.handshake = handshake
        self.sender = sender
        self.stream_buffer = FrameBuffer()

    def encode_outbound(
        self,
        content_type: ContentType,
        data: bytes,
        transport: TransportKind,
    ) -> list[bytes]:
        """
        Encrypt and frame data for transport.

        Returns:
            Encoded frames, or an empty list if encoding failed.
        """
        try:
            return self.codec.encode_message(content_type, data, transport)
        except CryptoError as e:
            logger.error("Failed to encrypt payload: %s", e)
        except (ProtocolError, ValueError) as e:
            logger.error("Failed to encode message: %s", e)
        return []

    def on_frame_received(self, data: bytes) -> Message | None:
        """
        Decode one frame, e.g. a single BLE write.

        Returns:
            The completed Message, or None when more chunks are needed or
            the frame was dropped.
        """
        try:
            return self.codec.decode(data)
        except FramingError as e:
            logger.warning("Dropping frame: %s", e)
        except CryptoError as e:
            logger.error("Failed to decrypt message payload: %s", e)
        return None

    def on_bytes_received(self, data: bytes) -> list[Message]:
        """
        Feed bytes from a stream and decode every frame now complete.

        Partial frames stay buffered for the next call. Stale partial
        transfers are swept afterwards.

        Returns:
            Messages completed by this call, in arrival order.
        """
        messages = []
        for frame in self.stream_buffer.frames(data):
            message = self.on_frame_received(frame)
            if message is not None:
                messages.append(message)
        self.sweep()
        return messages

    def sweep(self) -> int:
        return self.codec.sweep(self.config.stale_transfer_ms)

    async def negotiate_transport(self, timeout_ms: int | None = None) -> Preference:
        """Ask BLE peers which transport they want; NONE without a BLE link."""
        if self.handshake is None:
            return Preference.NONE
        if timeout_ms is None:
            timeout_ms = self.config.handshake_timeout_ms
        return await self.handshake.negotiate(timeout_ms)

    async def send_chunked(self, frames: Sequence[bytes]) -> bool:
        """Send frames over the BLE data channel; False without a BLE link."""
        if self.sender is None:
            logger.error("No data characteristic available")
            return False
        return await self.sender.send(frames)

    def on_wakeup_written(self, data: bytes) -> bool:
        """Deliver a peer's write on the wakeup characteristic."""
        if self.handshake is None:
            return False
        return self.handshake.handle_response(data)


def create_session(
    password: str,
    config: SyncConfig | None = None,
    data_channel: NotificationChannel | None = None,
    wakeup_channel: NotificationChannel | None = None,
    subscription: SubscriptionState | None = None,
    table: TransferTable | None = None,
) -> ProtocolSession:
    """
    Build a session keyed from password.

    The BLE handshake and sender are wired up only when both channels are
    given; their subscription state defaults to a fresh SubscriptionState.

    Raises:
        ValueError: If password is empty.
    """
    config = config if config is not None else SyncConfig()
    cipher = ClipboardCipher()
    if not cipher.set_password(password):
        raise ValueError("Password cannot be empty")
    codec = MessageCodec(
        cipher,
        table if table is not None else TransferTable.seeded(),
        chunk_size=config.chunk_size,
    )

    handshake = None
    sender = None
    if data_channel is not None and wakeup_channel is not None:
        subscription = subscription if subscription is not None else SubscriptionState()
        handshake = NegotiationHandshake(wakeup_channel.notify, subscription)
        sender = ChunkedSender(
            data_channel.notify,
            lambda: subscription.is_subscribed,
            window_size=config.window_size,
            drain_timeout=config.drain_timeout,
            window_timeout=config.window_timeout,
        )
    return ProtocolSession(codec, config, handshake=handshake, sender=sender)
