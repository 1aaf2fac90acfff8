"""
Protocol object stream.

:func:`read_packets` turns a binary stream into a lazy sequence of packet
variants. Session key packets are collected until the encrypted data packet
they belong to arrives and are then yielded together as an
:class:`EncryptedList`. Streams carried by a packet must be consumed before the
next packet is requested; anything left unread is skipped.
"""

import hmac
import io
import zlib
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, BinaryIO

import structlog

from pgp_message.crypto.algorithms import from_code
from pgp_message.crypto.primitives import (
    OpenPgpCfbDecryptor,
    new_decompressor,
    new_mdc_digest,
)
from pgp_message.exceptions import MalformedPacketError
from pgp_message.models.crypto import CompressionAlgorithm, LiteralFormat, SessionKey
from pgp_message.packets.framing import (
    MDC_HEADER,
    MDC_PACKET_SIZE,
    PacketBodyReader,
    PacketTag,
    read_exact,
    read_header,
)
from pgp_message.packets.session_keys import PublicKeyPacket, SymmetricKeyPacket

logger = structlog.get_logger(__name__)

_CHUNK = 8192
_SEIPD_VERSION = 1
_MAX_PREFIX_SIZE = 18  # largest block size + 2
_SKIPPED_TAGS = (PacketTag.MARKER, PacketTag.SIGNATURE, PacketTag.ONE_PASS_SIGNATURE)


@dataclass(frozen=True, kw_only=True)
class LiteralPacket:
    """Literal data: the payload and the metadata recorded by the sender."""

    format: LiteralFormat
    filename: str
    mtime: datetime
    stream: BinaryIO

    @classmethod
    def open(cls, body: BinaryIO) -> "LiteralPacket":
        format_ = from_code(LiteralFormat, read_exact(body, 1)[0], "literal-format")
        name_length = read_exact(body, 1)[0]
        filename = read_exact(body, name_length).decode("utf-8", errors="replace")
        timestamp = int.from_bytes(read_exact(body, 4), "big")
        return cls(
            format=format_,
            filename=filename,
            mtime=datetime.fromtimestamp(timestamp, tz=timezone.utc),
            stream=body,
        )


@dataclass(frozen=True, kw_only=True)
class CompressedPacket:
    """Compressed data holding a nested packet sequence."""

    algorithm: CompressionAlgorithm
    stream: BinaryIO

    @classmethod
    def open(cls, body: BinaryIO) -> "CompressedPacket":
        algorithm = from_code(CompressionAlgorithm, read_exact(body, 1)[0], "compression")
        return cls(algorithm=algorithm, stream=body)

    def decompress(self) -> BinaryIO:
        """Buffered stream of the decompressed packet sequence."""
        return io.BufferedReader(DecompressingReader(self.stream, self.algorithm))


class DecompressingReader(io.RawIOBase):
    def __init__(self, source: BinaryIO, algorithm: CompressionAlgorithm) -> None:
        super().__init__()
        self._source = source
        self._algorithm = algorithm
        self._codec = new_decompressor(algorithm)
        self._pending = bytearray()
        self._eof = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        try:
            while not self._pending and not self._eof:
                chunk = self._source.read(_CHUNK)
                if chunk:
                    self._pending += self._codec.process(chunk)
                else:
                    self._pending += self._codec.flush()
                    self._eof = True
        except (zlib.error, OSError, EOFError) as e:
            msg = f"Failed to decompress {self._algorithm.name} data: {e}"
            raise MalformedPacketError(msg, tag=PacketTag.COMPRESSED_DATA) from e

        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        del self._pending[:size]
        return size


@dataclass(frozen=True, kw_only=True)
class EncryptedData:
    """
    Body of an encrypted data packet, shared by every session key candidate.

    Attributes:
        integrity_protected: True for SEIPD packets carrying an MDC.
        head: Leading ciphertext octets, enough for the prefix quick check.
        body: The rest of the ciphertext.
    """

    integrity_protected: bool
    head: bytes
    body: BinaryIO

    @classmethod
    def open(cls, body: PacketBodyReader) -> "EncryptedData":
        integrity_protected = body.tag == PacketTag.SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA
        if integrity_protected:
            version = read_exact(body, 1)[0]
            if version != _SEIPD_VERSION:
                msg = f"Unsupported SEIPD version: {version}"
                raise MalformedPacketError(msg, tag=body.tag)
        head = b""
        while len(head) < _MAX_PREFIX_SIZE and (chunk := body.read(_MAX_PREFIX_SIZE - len(head))):
            head += chunk
        return cls(integrity_protected=integrity_protected, head=head, body=body)

    def decrypt(self, session_key: SessionKey, *, check_prefix: bool = True) -> "DecryptedStream":
        return DecryptedStream(self, session_key, check_prefix=check_prefix)


class DecryptedStream(io.RawIOBase):
    """
    Plaintext of an encrypted data packet.

    For integrity protected data the trailing MDC packet is held back from
    readers and checked by :meth:`verify` once the plaintext has been read.

    Raises:
        SessionKeyError: On construction, if ``check_prefix`` is set and the
            quick check fails.
    """

    def __init__(self, data: EncryptedData, session_key: SessionKey, *, check_prefix: bool = True) -> None:
        super().__init__()
        prefix_size = session_key.block_size + 2
        self._integrity_protected = data.integrity_protected
        self._cipher = OpenPgpCfbDecryptor(
            session_key,
            data.head[:prefix_size],
            resync=not data.integrity_protected,
            check=check_prefix,
        )
        self._source = data.body
        self._digest: Any = new_mdc_digest()
        self._digest.update(self._cipher.prefix)
        self._held = bytearray(self._cipher.update(data.head[prefix_size:]))
        self._eof = False
        self._verified: bool | None = None

    @property
    def integrity_protected(self) -> bool:
        return self._integrity_protected

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        reserve = MDC_PACKET_SIZE if self._integrity_protected else 0
        while not self._eof and len(self._held) - reserve < len(buffer):
            chunk = self._source.read(_CHUNK)
            if chunk:
                self._held += self._cipher.update(chunk)
            else:
                self._held += self._cipher.finalize()
                self._eof = True

        size = max(0, min(len(buffer), len(self._held) - reserve))
        released = bytes(self._held[:size])
        del self._held[:size]
        self._digest.update(released)
        buffer[:size] = released
        return size

    def verify(self) -> bool:
        """
        Check the modification detection code.

        Reads through whatever plaintext is left first, so it is only
        meaningful once the caller has consumed what it needed.
        """
        if not self._integrity_protected:
            return True
        if self._verified is None:
            while self.read(_CHUNK):
                pass
            mdc = bytes(self._held)
            digest = self._digest.copy()
            digest.update(MDC_HEADER)
            self._verified = (
                len(mdc) == MDC_PACKET_SIZE
                and mdc[:2] == MDC_HEADER
                and hmac.compare_digest(digest.digest(), mdc[2:])
            )
        return self._verified


@dataclass(frozen=True, kw_only=True)
class PassphraseProtected:
    """Encrypted data whose session key is protected by a passphrase."""

    packet: SymmetricKeyPacket
    data: EncryptedData


@dataclass(frozen=True, kw_only=True)
class PublicKeyProtected:
    """Encrypted data whose session key is encrypted to a public key."""

    packet: PublicKeyPacket
    data: EncryptedData

    @property
    def recipient_key_id(self) -> str:
        return self.packet.recipient_key_id


EncryptedObject = PassphraseProtected | PublicKeyProtected


@dataclass(frozen=True, kw_only=True)
class EncryptedList:
    """Encrypted data with every session key candidate that precedes it."""

    candidates: tuple[EncryptedObject, ...]
    data: EncryptedData


Packet = LiteralPacket | CompressedPacket | EncryptedList | PassphraseProtected | PublicKeyProtected


def _bind(session_key_packet: SymmetricKeyPacket | PublicKeyPacket, data: EncryptedData) -> EncryptedObject:
    if isinstance(session_key_packet, SymmetricKeyPacket):
        return PassphraseProtected(packet=session_key_packet, data=data)
    return PublicKeyProtected(packet=session_key_packet, data=data)


def read_packets(source: BinaryIO) -> Iterator[Packet]:
    """
    Lazily read the packets of a binary stream.

    Raises:
        MalformedPacketError: On unexpected tags, truncated packets, or session
            key packets that are not followed by encrypted data.
    """
    session_keys: list[SymmetricKeyPacket | PublicKeyPacket] = []
    while (header := read_header(source)) is not None:
        body = PacketBodyReader(source, header)
        match header.tag:
            case PacketTag.PUBLIC_KEY_ENCRYPTED_SESSION_KEY:
                session_keys.append(PublicKeyPacket.parse(body.read()))
            case PacketTag.SYMMETRIC_KEY_ENCRYPTED_SESSION_KEY:
                session_keys.append(SymmetricKeyPacket.parse(body.read()))
            case (
                PacketTag.SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA
                | PacketTag.SYMMETRICALLY_ENCRYPTED_DATA
            ):
                data = EncryptedData.open(body)
                candidates = tuple(_bind(packet, data) for packet in session_keys)
                session_keys = []
                yield EncryptedList(candidates=candidates, data=data)
            case PacketTag.COMPRESSED_DATA:
                yield CompressedPacket.open(body)
            case PacketTag.LITERAL_DATA:
                yield LiteralPacket.open(body)
            case tag if tag in _SKIPPED_TAGS:
                logger.warning("Skipping packet", tag=tag)
            case tag:
                msg = f"Unexpected packet tag {tag}"
                raise MalformedPacketError(msg, tag=tag)
        skipped = body.drain()
        if skipped:
            logger.debug("Skipped unread packet data", tag=header.tag, size=skipped)

    if session_keys:
        raise MalformedPacketError("Session key packets are not followed by encrypted data")
