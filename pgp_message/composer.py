"""
Output composer.

Turns :class:`~pgp_message.config.WriteOptions` into an ordered stack of
layer writers. The stack is planned and validated up front, opened
outside-in (armor, encryption, compression, literal) and closed inside-out.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from types import TracebackType

import structlog

from pgp_message.config import WriteOptions
from pgp_message.crypto.algorithms import canonical_name
from pgp_message.crypto.pgpy_backend import PgpyBackend
from pgp_message.crypto.primitives import is_supported_cipher
from pgp_message.crypto.protocol import PublicKeyBackend
from pgp_message.exceptions import UnsupportedAlgorithmError
from pgp_message.layers import (
    ArmoredWriter,
    CompressedWriter,
    EncryptedWriter,
    LayerWriter,
    LiteralWriter,
    check_encryptors,
)
from pgp_message.models.credentials import Encryptor
from pgp_message.models.crypto import (
    CompressionAlgorithm,
    LiteralFormat,
    RandomSource,
    SymmetricAlgorithm,
)
from pgp_message.packets.framing import Sink

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, kw_only=True)
class ArmorLayer:
    headers: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True, kw_only=True)
class EncryptionLayer:
    cipher: SymmetricAlgorithm
    encryptors: tuple[Encryptor, ...]
    integrity_packet: bool
    buffer_size: int
    random: RandomSource | None = None


@dataclass(frozen=True, kw_only=True)
class CompressionLayer:
    algorithm: CompressionAlgorithm
    buffer_size: int


@dataclass(frozen=True, kw_only=True)
class LiteralLayer:
    format: LiteralFormat
    filename: str
    mtime: int
    buffer_size: int


Layer = ArmorLayer | EncryptionLayer | CompressionLayer | LiteralLayer


def plan_layers(options: WriteOptions) -> tuple[Layer, ...]:
    """
    Plan the layer stack for ``options``, outermost first.

    Raises:
        TooManyPassphrasesError: If more than one passphrase encryptor is given.
        UnsupportedAlgorithmError: If the cipher has no implementation.
    """
    layers: list[Layer] = []
    if options.armor:
        layers.append(ArmorLayer(headers=options.armor_headers))
    if options.encryptors:
        check_encryptors(options.encryptors)
        if not is_supported_cipher(options.cipher):
            msg = f"Cannot encrypt with {canonical_name(options.cipher)}"
            raise UnsupportedAlgorithmError(msg, kind="symmetric-cipher", value=options.cipher)
        layers.append(
            EncryptionLayer(
                cipher=options.cipher,
                encryptors=options.encryptors,
                integrity_packet=options.integrity_packet,
                buffer_size=options.buffer_size,
                random=options.random,
            )
        )
    if options.compress is not None:
        layers.append(CompressionLayer(algorithm=options.compress, buffer_size=options.buffer_size))
    layers.append(
        LiteralLayer(
            format=options.format,
            filename=options.filename,
            mtime=options.timestamp,
            buffer_size=options.buffer_size,
        )
    )
    return tuple(layers)


def _open_layer(layer: Layer, sink: Sink, backend: PublicKeyBackend) -> LayerWriter:
    match layer:
        case ArmorLayer(headers=headers):
            return ArmoredWriter(sink, headers=headers)
        case EncryptionLayer():
            return EncryptedWriter(
                sink,
                cipher=layer.cipher,
                encryptors=layer.encryptors,
                backend=backend,
                integrity_packet=layer.integrity_packet,
                buffer_size=layer.buffer_size,
                random=layer.random,
            )
        case CompressionLayer(algorithm=algorithm, buffer_size=buffer_size):
            return CompressedWriter(sink, algorithm, buffer_size=buffer_size)
        case LiteralLayer():
            return LiteralWriter(
                sink,
                format=layer.format,
                filename=layer.filename,
                mtime=layer.mtime,
                buffer_size=layer.buffer_size,
            )
        case _:
            msg = f"Unknown layer: {layer!r}"
            raise TypeError(msg)


def _close_layers(writers: Sequence[LayerWriter]) -> BaseException | None:
    """Close ``writers`` innermost first. Returns the first error, logging any later ones."""
    first_error: BaseException | None = None
    for writer in reversed(writers):
        try:
            writer.close()
        except Exception as e:
            if first_error is None:
                first_error = e
            else:
                logger.warning("Failed to close layer", layer=type(writer).__name__, error=str(e))
    return first_error


class MessageWriter:
    """
    Writable end of a composed layer stack.

    Data written here goes to the literal layer. Closing finishes every layer
    exactly once; the sink passed to :func:`compose` is left open.
    """

    def __init__(self, writers: Sequence[LayerWriter]) -> None:
        self._writers = tuple(writers)
        self._closed = False

    @property
    def layers(self) -> tuple[LayerWriter, ...]:
        return self._writers

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes | bytearray | memoryview) -> int:
        if self._closed:
            raise ValueError("write to closed message")
        return self._writers[-1].write(data)

    def flush(self) -> None:
        self._writers[-1].flush()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        error = _close_layers(self._writers)
        if error is not None:
            raise error
        logger.debug("Closed message", layers=len(self._writers))

    def __enter__(self) -> "MessageWriter":
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
            logger.warning("Failed to close message after error", error=str(e))


def compose(
    sink: Sink,
    options: WriteOptions | None = None,
    backend: PublicKeyBackend | None = None,
) -> MessageWriter:
    """
    Open the layer stack for ``options`` over ``sink``.

    Args:
        sink: Destination with a ``write(bytes)`` method; never closed here.
        options: Write options, defaults if None.
        backend: Public-key backend for recipient keys, pgpy if None.

    Returns:
        A writer accepting the payload.

    Raises:
        EncryptionError: If the encryptors are unusable.
        UnknownAlgorithmError: If an algorithm is unknown or unsupported.
    """
    options = options or WriteOptions()
    layers = plan_layers(options)
    backend = backend or PgpyBackend()

    writers: list[LayerWriter] = []
    target: Sink = sink
    try:
        for layer in layers:
            writer = _open_layer(layer, target, backend)
            writers.append(writer)
            target = writer
    except Exception:
        error = _close_layers(writers)
        if error is not None:
            logger.warning("Failed to close layer after open error", error=str(error))
        raise

    logger.debug("Composed message", layers=[type(layer).__name__ for layer in layers])
    return MessageWriter(writers)
