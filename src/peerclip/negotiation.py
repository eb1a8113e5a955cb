#!/usr/bin/env python3
"""
Transport negotiation over the BLE wakeup characteristic.

Before sending new clipboard content the sender notifies subscribed peers
on the wakeup channel with a single byte (an 8-bit counter that only marks
the notification as new) and waits briefly for a one-byte reply:

    0x01 -> peer wants the data over BLE (constrained transport)
    0x02 -> peer wants the data over TCP (reliable transport)

Any other reply is ignored. No reply within the timeout, a failed wakeup
send, or nobody subscribed all mean "no preference".

State machine per call: IDLE -> SENT -> RESPONDED | TIMED_OUT.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable

from peerclip.link_state import SubscriptionState

logger = logging.getLogger(__name__)

RESPONSE_USE_BLE: int = 0x01
RESPONSE_USE_TCP: int = 0x02

# Default time to wait for a wakeup response (milliseconds).
DEFAULT_HANDSHAKE_TIMEOUT_MS: int = 1000


class Preference(enum.Enum):
    """Transport a peer asked for."""

    NONE = "none"
    CONSTRAINED = "ble"
    RELIABLE = "tcp"


class HandshakeState(enum.Enum):
    IDLE = "idle"
    SENT = "sent"
    RESPONDED = "responded"
    TIMED_OUT = "timed_out"


_RESPONSE_CODES: dict[int, Preference] = {
    RESPONSE_USE_BLE: Preference.CONSTRAINED,
    RESPONSE_USE_TCP: Preference.RELIABLE,
}


def parse_response(data: bytes) -> Preference | None:
    """
    Interpret a wakeup response.

    Returns:
        The requested Preference, or None for an empty or unknown reply.
    """
    if not data:
        return None
    return _RESPONSE_CODES.get(data[0])


def encode_response(preference: Preference) -> bytes:
    """
    Build the reply a peer writes to the wakeup characteristic.

    Raises:
        ValueError: For Preference.NONE, which has no wire encoding.
    """
    for code, value in _RESPONSE_CODES.items():
        if value is preference:
            return bytes((code,))
    raise ValueError(f"No response code for {preference}")


class NegotiationHandshake:
    """
    Asks subscribed peers which transport to use for the next transfer.

    Args:
        send_wakeup: Notifies all subscribers of the wakeup channel; resolves
            to True when the notification went out.
        subscription: Subscriber state of the wakeup channel.
    """

    def __init__(
        self,
        send_wakeup: Callable[[bytes], Awaitable[bool]],
        subscription: SubscriptionState,
    ) -> None:
        self._send_wakeup = send_wakeup
        self._subscription = subscription
        self._counter = 0
        self._response: asyncio.Future[Preference] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self.state = HandshakeState.IDLE

    @property
    def counter(self) -> int:
        """Value carried by the most recent wakeup notification."""
        return self._counter

    async def negotiate(self, timeout_ms: int = DEFAULT_HANDSHAKE_TIMEOUT_MS) -> Preference:
        """
        Send a wakeup notification and wait for the peer's preference.

        Args:
            timeout_ms: How long to wait for a reply after the wakeup
                notification was sent.

        Returns:
            The peer's Preference, or Preference.NONE on timeout, send
            failure, or when nobody is subscribed.
        """
        self.state = HandshakeState.IDLE
        self._response = None
        if not self._subscription.is_subscribed:
            logger.debug("No subscribed clients to notify")
            return Preference.NONE

        self._loop = asyncio.get_running_loop()
        response: asyncio.Future[Preference] = self._loop.create_future()
        self._counter = (self._counter + 1) % 256
        # Accept replies as soon as the notification may have left.
        self._response = response
        self.state = HandshakeState.SENT

        try:
            try:
                sent = await self._send_wakeup(bytes((self._counter,)))
            except Exception as e:
                logger.error("Failed to send wakeup notification: %s", e)
                sent = False
            if not sent:
                self.state = HandshakeState.IDLE
                return Preference.NONE
            logger.debug("Wakeup notification sent (value: %d)", self._counter)

            try:
                preference = await asyncio.wait_for(response, timeout_ms / 1000.0)
            except asyncio.TimeoutError:
                logger.debug("No response within %dms", timeout_ms)
                self.state = HandshakeState.TIMED_OUT
                return Preference.NONE
            return preference
        finally:
            self._response = None

    def handle_response(self, data: bytes) -> bool:
        """
        Deliver a write on the wakeup characteristic.

        Must be called on the event loop running negotiate(); use
        handle_response_threadsafe() from other threads.

        Returns:
            True if the reply resolved a pending handshake.
        """
        response = self._response
        if self.state is not HandshakeState.SENT or response is None or response.done():
            logger.debug("Ignoring wakeup response outside a handshake")
            return False
        preference = parse_response(data)
        if preference is None:
            logger.warning("Unknown client response code: %r", data[:1])
            return False
        response.set_result(preference)
        self.state = HandshakeState.RESPONDED
        logger.debug("Client responded: use %s", preference.value)
        return True

    def handle_response_threadsafe(self, data: bytes) -> None:
        """Schedule handle_response() on the handshake's event loop."""
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("Dropping wakeup response, no handshake loop")
            return
        loop.call_soon_threadsafe(self.handle_response, data)
