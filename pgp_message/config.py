"""
Options for packaging and reading messages.
"""

from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, TypeVar

from pgp_message.crypto.algorithms import resolve_cipher, resolve_compression, resolve_format
from pgp_message.models.credentials import Decryptor, Encryptor, as_decryptor, as_encryptors
from pgp_message.models.crypto import (
    CompressionAlgorithm,
    LiteralFormat,
    RandomSource,
    SymmetricAlgorithm,
)

DEFAULT_FILENAME = "_CONSOLE"
_MAX_FILENAME_BYTES = 255
_MAX_TIMESTAMP = 0xFFFFFFFF

O = TypeVar("O", "WriteOptions", "ReadOptions")


@dataclass(frozen=True, kw_only=True)
class WriteOptions:
    """
    Attributes:
        buffer_size: Maximum number of bytes per streamed packet chunk.
        format: Literal data format (binary, text or utf8).
        filename: Filename recorded in the literal data packet.
        mtime: Modification time recorded in the literal data packet, now if None.
        compress: Compression algorithm, or None for no compression layer.
        cipher: Symmetric algorithm used when encryptors are given.
        encryptors: Passphrases and public keys to encrypt the session key to.
        integrity_packet: Whether to append a modification detection code.
        armor: Whether to ASCII-armor the output.
        armor_headers: Extra ``Name: value`` lines for the armor header block.
        random: Source of random bytes, ``os.urandom`` if None.
    """

    buffer_size: int = 4096
    format: LiteralFormat = LiteralFormat.BINARY
    filename: str = DEFAULT_FILENAME
    mtime: datetime | None = None
    compress: CompressionAlgorithm | None = None
    cipher: SymmetricAlgorithm = SymmetricAlgorithm.AES_256
    encryptors: tuple[Encryptor, ...] = ()
    integrity_packet: bool = True
    armor: bool = False
    armor_headers: tuple[tuple[str, str], ...] = ()
    random: RandomSource | None = None

    def __post_init__(self) -> None:
        if self.buffer_size <= 0:
            msg = "buffer_size must be positive"
            raise ValueError(msg)
        if len(self.filename.encode("utf-8")) > _MAX_FILENAME_BYTES:
            msg = f"filename must encode to at most {_MAX_FILENAME_BYTES} bytes"
            raise ValueError(msg)
        if self.mtime is not None and not 0 <= self.mtime.timestamp() <= _MAX_TIMESTAMP:
            msg = "mtime must fit in an unsigned 32-bit timestamp"
            raise ValueError(msg)
        object.__setattr__(self, "format", resolve_format(self.format))
        object.__setattr__(self, "cipher", resolve_cipher(self.cipher))
        if self.compress is not None:
            object.__setattr__(self, "compress", resolve_compression(self.compress))
        object.__setattr__(self, "encryptors", as_encryptors(self.encryptors))
        headers = self.armor_headers
        if isinstance(headers, Mapping):
            headers = headers.items()
        object.__setattr__(self, "armor_headers", tuple((str(k), str(v)) for k, v in headers))

    @property
    def timestamp(self) -> int:
        """Literal data modification time as whole seconds since the epoch."""
        mtime = self.mtime or datetime.now(timezone.utc)
        return int(mtime.timestamp())


@dataclass(frozen=True, kw_only=True)
class ReadOptions:
    """
    Attributes:
        decryptor: Passphrase, private key or key resolver used to open encrypted data.
    """

    decryptor: Decryptor | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "decryptor", as_decryptor(self.decryptor))


def with_overrides(options: O | None, default: type[O], **overrides: Any) -> O:
    """Apply keyword overrides to ``options``, or to fresh defaults."""
    if options is None:
        return default(**overrides)
    if not overrides:
        return options
    return replace(options, **overrides)
