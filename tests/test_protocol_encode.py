#!/usr/bin/env python3
"""
Unit tests for frame encoding.
"""
import pytest

from peerclip.byte_utils import bytes_to_u16, bytes_to_u32
from peerclip.encryption import ClipboardCipher
from peerclip.errors import CryptoError, ProtocolError
from peerclip.protocol import Frame, MessageCodec, chunked
from peerclip.protocol_constants import HEADER_SIZE, PROTOCOL_VERSION, ContentType, TransportKind


def test_reliable_encode_produces_one_frame(codec: MessageCodec) -> None:
    """Test "Hello, world!" over TCP is a single frame of header + envelope."""
    frames = codec.encode_text_message("Hello, world!", TransportKind.RELIABLE)
    assert len(frames) == 1
    frame = frames[0]
    assert len(frame) == HEADER_SIZE + 13 + 28
    assert bytes_to_u32(frame, 0) == len(frame)
    assert bytes_to_u16(frame, 4) == PROTOCOL_VERSION
    assert frame[6] == ContentType.PLAIN_TEXT
    assert bytes_to_u32(frame, 11) == 0
    assert bytes_to_u32(frame, 15) == 1


def test_frame_payload_is_ciphertext(codec: MessageCodec) -> None:
    """Test the plaintext does not appear in the encoded frame."""
    frame = codec.encode_text_message("Hello, world!", TransportKind.RELIABLE)[0]
    assert b"Hello, world!" not in frame


def test_constrained_encode_chunks_1500_bytes_into_three(codec: MessageCodec) -> None:
    """Test a 1500-byte payload becomes 3 frames sharing one transfer id."""
    frames = codec.encode_message(ContentType.PLAIN_TEXT, b"a" * 1500, TransportKind.CONSTRAINED)
    assert len(frames) == 3
    parsed = [Frame.from_bytes(f) for f in frames]
    assert {p.transfer_id for p in parsed} == {parsed[0].transfer_id}
    assert [p.chunk_index for p in parsed] == [0, 1, 2]
    assert all(p.total_chunks == 3 for p in parsed)
    assert [len(p.payload) for p in parsed] == [512, 512, 504]
    assert all(bytes_to_u32(f, 0) == len(f) for f in frames)


def test_small_payload_over_constrained_is_one_frame(codec: MessageCodec) -> None:
    frames = codec.encode_message(ContentType.HTML_CONTENT, b"<b>x</b>", TransportKind.CONSTRAINED)
    assert len(frames) == 1
    assert Frame.from_bytes(frames[0]).total_chunks == 1


def test_transfer_ids_increase(codec: MessageCodec) -> None:
    """Test each encoded message takes the next transfer id."""
    ids = [
        Frame.from_bytes(codec.encode_text_message("x", TransportKind.RELIABLE)[0]).transfer_id
        for _ in range(3)
    ]
    assert ids == [0, 1, 2]


def test_encode_without_key_raises_crypto_error() -> None:
    """Test encoding fails as a whole when no key is set."""
    codec = MessageCodec(ClipboardCipher())
    with pytest.raises(CryptoError):
        codec.encode_text_message("data", TransportKind.RELIABLE)


def test_encode_empty_payload_rejected(codec: MessageCodec) -> None:
    with pytest.raises(ProtocolError, match="empty"):
        codec.encode_message(ContentType.PLAIN_TEXT, b"", TransportKind.RELIABLE)


def test_chunked_splits_on_byte_boundaries() -> None:
    """Test chunking ignores character boundaries."""
    data = "é".encode("utf-8") * 3
    assert chunked(data, 1) == [bytes([b]) for b in data]
    assert chunked(b"abcdefg", 3) == [b"abc", b"def", b"g"]


def test_chunked_rejects_non_positive_size() -> None:
    with pytest.raises(ValueError):
        chunked(b"abc", 0)


def test_frame_to_bytes_layout() -> None:
    """Test the 19-byte header layout field by field."""
    frame = Frame(
        content_type=ContentType.PDF_DOCUMENT,
        transfer_id=0x01020304,
        chunk_index=2,
        total_chunks=5,
        payload=b"xyz",
    )
    assert frame.to_bytes() == (
        b"\x00\x00\x00\x16"
        b"\x00\x01"
        b"\x05"
        b"\x01\x02\x03\x04"
        b"\x00\x00\x00\x02"
        b"\x00\x00\x00\x05"
        b"xyz"
    )
