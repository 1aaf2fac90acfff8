"""
OpenPGP packet framing.

Packets are written with new-format headers. Bodies of unknown length are
streamed with partial body lengths; both header formats are accepted on read.
"""

import io
from dataclasses import dataclass
from enum import IntEnum
from typing import BinaryIO, Protocol

from pgp_message.exceptions import MalformedPacketError

_MIN_PARTIAL_CHUNK = 512
_MAX_PARTIAL_EXPONENT = 30
_DRAIN_CHUNK = 8192


class PacketTag(IntEnum):
    """OpenPGP packet tags handled by this package."""

    PUBLIC_KEY_ENCRYPTED_SESSION_KEY = 1
    SIGNATURE = 2
    SYMMETRIC_KEY_ENCRYPTED_SESSION_KEY = 3
    ONE_PASS_SIGNATURE = 4
    COMPRESSED_DATA = 8
    SYMMETRICALLY_ENCRYPTED_DATA = 9
    MARKER = 10
    LITERAL_DATA = 11
    SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA = 18
    MODIFICATION_DETECTION_CODE = 19


class Sink(Protocol):
    def write(self, data: bytes, /) -> object: ...


@dataclass(frozen=True, kw_only=True)
class PacketHeader:
    """
    Attributes:
        tag: Packet tag.
        length: Length of the (first) body chunk, None if indeterminate.
        partial: Whether more length-prefixed chunks follow the first.
    """

    tag: int
    length: int | None
    partial: bool = False


def encode_length(length: int) -> bytes:
    """Encode a definite new-format body length."""
    if length < 192:
        return bytes([length])
    if length < 8384:
        length -= 192
        return bytes([(length >> 8) + 192, length & 0xFF])
    return b"\xff" + length.to_bytes(4, "big")


MDC_DIGEST_SIZE = 20
MDC_HEADER = bytes([0xC0 | PacketTag.MODIFICATION_DETECTION_CODE]) + encode_length(MDC_DIGEST_SIZE)
MDC_PACKET_SIZE = len(MDC_HEADER) + MDC_DIGEST_SIZE


def encode_packet(tag: int, body: bytes) -> bytes:
    """Serialize a complete packet with a new-format header."""
    return bytes([0xC0 | tag]) + encode_length(len(body)) + body


def read_exact(source: BinaryIO, size: int) -> bytes:
    """Read exactly ``size`` bytes or fail on a truncated stream."""
    data = b""
    while len(data) < size:
        chunk = source.read(size - len(data))
        if not chunk:
            msg = f"Unexpected end of packet data: need {size}, have {len(data)}"
            raise MalformedPacketError(msg)
        data += chunk
    return data


def read_header(source: BinaryIO) -> PacketHeader | None:
    """
    Read a packet header.

    Returns:
        The header, or None when the stream ends cleanly before a new packet.

    Raises:
        MalformedPacketError: If the header is invalid or truncated.
    """
    first = source.read(1)
    if not first:
        return None
    first_byte = first[0]

    if _is_new_format_packet(first_byte):
        length, partial = _read_new_format_length(source)
        return PacketHeader(tag=first_byte & 0x3F, length=length, partial=partial)

    if _is_old_format_packet(first_byte):
        tag = (first_byte & 0x3C) >> 2
        return PacketHeader(tag=tag, length=_read_old_format_length(source, first_byte & 0x03))

    msg = f"Invalid packet header: 0x{first_byte:02x}"
    raise MalformedPacketError(msg)


def _is_new_format_packet(first_byte: int) -> bool:
    return (first_byte & 0xC0) == 0xC0


def _is_old_format_packet(first_byte: int) -> bool:
    return (first_byte & 0x80) == 0x80


def _read_new_format_length(source: BinaryIO) -> tuple[int, bool]:
    first_byte = read_exact(source, 1)[0]

    if first_byte < 192:
        return first_byte, False

    if first_byte < 224:
        second_byte = read_exact(source, 1)[0]
        return ((first_byte - 192) << 8) + second_byte + 192, False

    if first_byte == 255:
        return int.from_bytes(read_exact(source, 4), "big"), False

    return 1 << (first_byte & 0x1F), True


def _read_old_format_length(source: BinaryIO, length_type: int) -> int | None:
    if length_type == 0:
        return read_exact(source, 1)[0]
    if length_type == 1:
        return int.from_bytes(read_exact(source, 2), "big")
    if length_type == 2:
        return int.from_bytes(read_exact(source, 4), "big")
    return None


class PacketBodyReader(io.RawIOBase):
    """Readable stream over one packet body, following partial length chunks."""

    def __init__(self, source: BinaryIO, header: PacketHeader) -> None:
        super().__init__()
        self.tag = header.tag
        self._source = source
        self._remaining = header.length
        self._partial = header.partial

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        while self._remaining == 0 and self._partial:
            self._remaining, self._partial = _read_new_format_length(self._source)
        if self._remaining == 0 or not len(buffer):
            return 0

        size = len(buffer) if self._remaining is None else min(len(buffer), self._remaining)
        data = self._source.read(size)
        if not data:
            if self._remaining is None:
                self._remaining = 0
                return 0
            msg = f"Packet body truncated with {self._remaining} bytes missing"
            raise MalformedPacketError(msg, tag=self.tag)

        buffer[: len(data)] = data
        if self._remaining is not None:
            self._remaining -= len(data)
        return len(data)

    def drain(self) -> int:
        """Skip whatever is left of the body. Returns the number of bytes skipped."""
        skipped = 0
        while chunk := self.read(_DRAIN_CHUNK):
            skipped += len(chunk)
        return skipped


def partial_chunk_size(buffer_size: int) -> int:
    """Largest power of two not above ``buffer_size``, clamped to the legal range."""
    exponent = max(buffer_size, _MIN_PARTIAL_CHUNK).bit_length() - 1
    return 1 << min(exponent, _MAX_PARTIAL_EXPONENT)


class PacketWriter:
    """
    Writes one packet whose body length is not known up front.

    Data is buffered up to the chunk size; full chunks are emitted with
    partial body lengths and the remainder with a definite length on close,
    so a body that fits in the buffer becomes an ordinary definite-length packet.
    """

    def __init__(self, sink: Sink, tag: int, buffer_size: int) -> None:
        self._sink = sink
        self._tag = tag
        self._chunk_size = partial_chunk_size(buffer_size)
        self._exponent = self._chunk_size.bit_length() - 1
        self._buffer = bytearray()
        self._started = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("write to closed packet")
        self._buffer += data
        # Strictly greater: the final chunk must carry a definite length.
        while len(self._buffer) > self._chunk_size:
            chunk = bytes(self._buffer[: self._chunk_size])
            del self._buffer[: self._chunk_size]
            self._sink.write(self._header_octet() + bytes([224 + self._exponent]) + chunk)
        return len(data)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        body = bytes(self._buffer)
        self._buffer.clear()
        self._sink.write(self._header_octet() + encode_length(len(body)) + body)

    def _header_octet(self) -> bytes:
        if self._started:
            return b""
        self._started = True
        return bytes([0xC0 | self._tag])
