"""
Cryptographic domain models.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum


class SymmetricAlgorithm(IntEnum):
    """OpenPGP symmetric algorithm identifiers."""

    PLAINTEXT = 0
    IDEA = 1
    TRIPLE_DES = 2
    CAST5 = 3
    BLOWFISH = 4
    SAFER = 5
    AES_128 = 7
    AES_192 = 8
    AES_256 = 9
    TWOFISH = 10
    CAMELLIA_128 = 11
    CAMELLIA_192 = 12
    CAMELLIA_256 = 13

    @property
    def key_size(self) -> int:
        """Get key size in bytes for this algorithm."""
        match self:
            case self.IDEA | self.AES_128 | self.CAST5 | self.BLOWFISH | self.CAMELLIA_128:
                return 16
            case self.AES_192 | self.TRIPLE_DES | self.CAMELLIA_192:
                return 24
            case self.AES_256 | self.TWOFISH | self.CAMELLIA_256:
                return 32
            case _:
                return 0

    @property
    def block_size(self) -> int:
        """Get block size in bytes for this algorithm."""
        match self:
            case self.IDEA | self.CAST5 | self.BLOWFISH | self.TRIPLE_DES:
                return 8
            case (
                self.AES_128
                | self.AES_192
                | self.AES_256
                | self.TWOFISH
                | self.CAMELLIA_128
                | self.CAMELLIA_192
                | self.CAMELLIA_256
            ):
                return 16
            case _:
                return 0


class CompressionAlgorithm(IntEnum):
    """OpenPGP compression algorithm identifiers."""

    UNCOMPRESSED = 0
    ZIP = 1
    ZLIB = 2
    BZIP2 = 3


class HashAlgorithm(IntEnum):
    """OpenPGP hash algorithm identifiers."""

    MD5 = 1
    SHA1 = 2
    RIPEMD160 = 3
    SHA256 = 8
    SHA384 = 9
    SHA512 = 10
    SHA224 = 11


class LiteralFormat(IntEnum):
    """Literal data format octets."""

    BINARY = ord("b")
    TEXT = ord("t")
    UTF8 = ord("u")

    @property
    def is_text(self) -> bool:
        return self is not LiteralFormat.BINARY


RandomSource = Callable[[int], bytes]


@dataclass(frozen=True, kw_only=True)
class SessionKey:
    """
    Symmetric key protecting the body of one encrypted message.

    Attributes:
        algorithm: The symmetric algorithm used.
        key_data: The raw key bytes.
    """

    algorithm: SymmetricAlgorithm
    key_data: bytes

    def __post_init__(self) -> None:
        """Validate key size matches algorithm."""
        expected = self.algorithm.key_size
        if not expected or (len(self.key_data) == expected):
            return
        msg = f"Key size mismatch: {self.algorithm.name} expects {expected} bytes, got {len(self.key_data)}"
        raise ValueError(msg)

    @classmethod
    def generate(cls, algorithm: SymmetricAlgorithm, random: RandomSource | None = None) -> "SessionKey":
        """Create a fresh random key for ``algorithm``."""
        random = random or os.urandom
        return cls(algorithm=algorithm, key_data=bytes(random(algorithm.key_size)))

    @property
    def block_size(self) -> int:
        """Get the block size for this key's algorithm."""
        return self.algorithm.block_size

    def __repr__(self) -> str:
        return f"SessionKey(algorithm={self.algorithm.name}, key_data=<{len(self.key_data)} bytes>)"
