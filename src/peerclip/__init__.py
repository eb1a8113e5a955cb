"""peerclip: encrypted clipboard transfer protocol for TCP and BLE peers."""

__version__ = "0.1.0"
