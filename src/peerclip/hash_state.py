#!/usr/bin/env python3
"""
Hash state for echo suppression.

The hash state tracks two values:
- last_sent_hash: prevents duplicate sends of unchanged content
- last_received_hash: prevents bouncing back what a peer just sent
"""
from dataclasses import dataclass


@dataclass
class HashState:
    """
    Track hashes for loop prevention.

    Attributes:
        last_sent_hash: SHA-256 hex digest of last sent content, or None.
        last_received_hash: SHA-256 hex digest of last received content, or None.
    """

    last_sent_hash: str | None = None
    last_received_hash: str | None = None

    def should_send(self, current_hash: str) -> bool:
        """
        Check if content should be sent based on hash comparison.

        Args:
            current_hash: Digest of the current clipboard content.

        Returns:
            False if current_hash matches the last sent or last received
            content, True otherwise.
        """
        if current_hash == self.last_sent_hash:
            return False
        if current_hash == self.last_received_hash:
            return False
        return True

    def record_sent(self, hash_value: str) -> None:
        """Record hash of content that reached at least one peer."""
        self.last_sent_hash = hash_value

    def record_received(self, hash_value: str) -> None:
        """
        Record hash of received content.

        CRITICAL: Must be called BEFORE writing the clipboard so the change
        event it triggers is not sent back.
        """
        self.last_received_hash = hash_value

    def clear(self) -> None:
        """Reset both hashes, e.g. after reconnecting to a peer."""
        self.last_sent_hash = None
        self.last_received_hash = None
