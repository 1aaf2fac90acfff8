"""
Layer writers.

Each writer wraps an inner sink and transforms what is written to it into
one OpenPGP layer: literal data, compressed data, encrypted data or ASCII
armor. Writers are stacked outside-in by :mod:`pgp_message.composer`.
"""

from collections.abc import Iterable, Sequence
from types import TracebackType
from typing import Any

import structlog

from pgp_message.crypto.algorithms import canonical_name
from pgp_message.crypto.primitives import (
    OpenPgpCfbEncryptor,
    default_random,
    new_compressor,
    new_mdc_digest,
)
from pgp_message.crypto.protocol import PublicKeyBackend
from pgp_message.exceptions import InvalidEncryptorError, NoEncryptorsError, TooManyPassphrasesError
from pgp_message.models.credentials import Encryptor, Passphrase, PublicIdentity
from pgp_message.models.crypto import (
    CompressionAlgorithm,
    LiteralFormat,
    RandomSource,
    SessionKey,
    SymmetricAlgorithm,
)
from pgp_message.packets.armor import (
    CRC24_INIT,
    LINE_BYTES,
    MESSAGE_LABEL,
    begin_lines,
    crc24,
    encode_lines,
    end_lines,
)
from pgp_message.packets.framing import MDC_HEADER, PacketTag, PacketWriter, Sink
from pgp_message.packets.session_keys import DEFAULT_S2K_COUNT, SymmetricKeyPacket

logger = structlog.get_logger(__name__)

_SEIPD_VERSION = b"\x01"


class LayerWriter:
    """
    Base class for layer writers.

    Subclasses implement ``_write`` and ``_finish``. Closing is idempotent and
    never closes the inner sink.
    """

    def __init__(self, sink: Sink) -> None:
        self._sink = sink
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes | bytearray | memoryview) -> int:
        if self._closed:
            msg = f"write to closed {type(self).__name__}"
            raise ValueError(msg)
        data = bytes(data)
        if data:
            self._write(data)
        return len(data)

    def flush(self) -> None:
        """Packet chunks are emitted as they fill; a partial chunk stays buffered until close."""
        flush = getattr(self._sink, "flush", None)
        if flush is not None:
            flush()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._finish()

    def _write(self, data: bytes) -> None:
        raise NotImplementedError

    def _finish(self) -> None:
        raise NotImplementedError

    def __enter__(self) -> "LayerWriter":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_val is None:
            self.close()
            return
        try:
            self.close()
        except Exception as e:
            logger.warning("Failed to close layer after error", layer=type(self).__name__, error=str(e))


class LiteralWriter(LayerWriter):
    """Literal data packet (tag 11) holding the payload and its metadata."""

    def __init__(
        self,
        sink: Sink,
        *,
        format: LiteralFormat = LiteralFormat.BINARY,
        filename: str = "",
        mtime: int = 0,
        buffer_size: int = 4096,
    ) -> None:
        super().__init__(sink)
        name = filename.encode("utf-8")
        if len(name) > 255:
            msg = f"Literal filename too long: {len(name)} bytes"
            raise ValueError(msg)
        self._packet = PacketWriter(sink, PacketTag.LITERAL_DATA, buffer_size)
        self._packet.write(bytes([format, len(name)]) + name + mtime.to_bytes(4, "big"))
        logger.debug("Opened literal layer", format=canonical_name(format), filename=filename)

    def _write(self, data: bytes) -> None:
        self._packet.write(data)

    def _finish(self) -> None:
        self._packet.close()


class CompressedWriter(LayerWriter):
    """Compressed data packet (tag 8)."""

    def __init__(
        self,
        sink: Sink,
        algorithm: CompressionAlgorithm,
        *,
        buffer_size: int = 4096,
    ) -> None:
        super().__init__(sink)
        self._codec = new_compressor(algorithm)
        self._packet = PacketWriter(sink, PacketTag.COMPRESSED_DATA, buffer_size)
        self._packet.write(bytes([algorithm]))
        logger.debug("Opened compression layer", algorithm=canonical_name(algorithm))

    def _write(self, data: bytes) -> None:
        compressed = self._codec.process(data)
        if compressed:
            self._packet.write(compressed)

    def _finish(self) -> None:
        self._packet.write(self._codec.flush())
        self._packet.close()


def check_encryptors(encryptors: Sequence[Encryptor]) -> None:
    """
    Raises:
        NoEncryptorsError: If ``encryptors`` is empty.
        TooManyPassphrasesError: If more than one passphrase is given.
    """
    if not encryptors:
        raise NoEncryptorsError()
    if sum(isinstance(encryptor, Passphrase) for encryptor in encryptors) > 1:
        raise TooManyPassphrasesError()


class EncryptedWriter(LayerWriter):
    """
    Session key packets followed by an encrypted data packet.

    With ``integrity_packet`` the data goes in a SEIPD packet (tag 18) and a
    modification detection code is appended on close; otherwise a legacy
    Symmetrically Encrypted Data packet (tag 9) is written.
    """

    def __init__(
        self,
        sink: Sink,
        *,
        cipher: SymmetricAlgorithm,
        encryptors: Sequence[Encryptor],
        backend: PublicKeyBackend,
        integrity_packet: bool = True,
        buffer_size: int = 4096,
        random: RandomSource | None = None,
        s2k_count: int = DEFAULT_S2K_COUNT,
    ) -> None:
        super().__init__(sink)
        check_encryptors(encryptors)
        random = random or default_random
        session_key = SessionKey.generate(cipher, random)

        # Everything that can fail runs before the first byte reaches the sink.
        self._cfb = OpenPgpCfbEncryptor(session_key, random, resync=not integrity_packet)
        session_key_packets = [
            self._session_key_packet(encryptor, session_key, random, backend, s2k_count)
            for encryptor in encryptors
        ]

        for packet in session_key_packets:
            sink.write(packet)
        if integrity_packet:
            self._packet = PacketWriter(sink, PacketTag.SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA, buffer_size)
            self._packet.write(_SEIPD_VERSION)
            self._digest: Any = new_mdc_digest()
            self._digest.update(self._cfb.prefix)
        else:
            self._packet = PacketWriter(sink, PacketTag.SYMMETRICALLY_ENCRYPTED_DATA, buffer_size)
            self._digest = None
        self._packet.write(self._cfb.header)
        logger.debug(
            "Opened encryption layer",
            cipher=canonical_name(cipher),
            recipients=len(encryptors),
            integrity_packet=integrity_packet,
        )

    @staticmethod
    def _session_key_packet(
        encryptor: Encryptor,
        session_key: SessionKey,
        random: RandomSource,
        backend: PublicKeyBackend,
        s2k_count: int,
    ) -> bytes:
        match encryptor:
            case Passphrase(secret=secret):
                packet = SymmetricKeyPacket.build(secret, session_key, random, coded_count=s2k_count)
                return packet.to_bytes()
            case PublicIdentity():
                return backend.wrap_session_key(encryptor, session_key)
            case _:
                msg = f"Don't know how to encrypt data with {encryptor!r}"
                raise InvalidEncryptorError(msg, encryptor_type=type(encryptor).__name__)

    def _write(self, data: bytes) -> None:
        if self._digest is not None:
            self._digest.update(data)
        self._packet.write(self._cfb.update(data))

    def _finish(self) -> None:
        if self._digest is not None:
            self._digest.update(MDC_HEADER)
            self._packet.write(self._cfb.update(MDC_HEADER + self._digest.digest()))
        self._packet.write(self._cfb.finalize())
        self._packet.close()


class ArmoredWriter(LayerWriter):
    """ASCII armor around everything written, with a trailing CRC-24 line."""

    def __init__(
        self,
        sink: Sink,
        *,
        headers: Iterable[tuple[str, str]] = (),
        label: str = MESSAGE_LABEL,
    ) -> None:
        super().__init__(sink)
        self._label = label
        self._crc = CRC24_INIT
        self._pending = b""
        sink.write(begin_lines(label, headers))
        logger.debug("Opened armor layer", label=label)

    def _write(self, data: bytes) -> None:
        self._crc = crc24(data, self._crc)
        data = self._pending + data
        whole = len(data) - len(data) % LINE_BYTES
        self._pending = data[whole:]
        if whole:
            self._sink.write(encode_lines(data[:whole]))

    def _finish(self) -> None:
        self._sink.write(encode_lines(self._pending) + end_lines(self._crc, self._label))
        self._pending = b""
