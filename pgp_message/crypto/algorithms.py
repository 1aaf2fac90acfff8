"""
Bidirectional mapping between symbolic algorithm names and OpenPGP codes.

Names are case-insensitive and ignore ``-`` and ``_``, so ``"aes-256"``,
``"AES_256"`` and ``"aes256"`` all name the same cipher.
"""

from enum import IntEnum
from typing import Literal, TypeVar

from pgp_message.exceptions import UnknownAlgorithmError
from pgp_message.models.crypto import (
    CompressionAlgorithm,
    HashAlgorithm,
    LiteralFormat,
    SymmetricAlgorithm,
)

AlgorithmKind = Literal["compression", "symmetric-cipher", "literal-format", "hash"]

E = TypeVar("E", bound=IntEnum)

_KINDS: dict[str, type[IntEnum]] = {
    "compression": CompressionAlgorithm,
    "symmetric-cipher": SymmetricAlgorithm,
    "literal-format": LiteralFormat,
    "hash": HashAlgorithm,
}

_ALIASES: dict[str, dict[str, str]] = {
    "compression": {"none": "uncompressed", "deflate": "zip", "bz2": "bzip2"},
    "symmetric-cipher": {"3des": "tripledes", "null": "plaintext", "cast": "cast5"},
    "literal-format": {"utf-8": "utf8"},
    "hash": {"sha-1": "sha1"},
}


def _normalize(name: str) -> str:
    return name.strip().lower().replace("-", "").replace("_", "")


def _enum_for(kind: str) -> type[IntEnum]:
    try:
        return _KINDS[kind]
    except KeyError:
        msg = f"Unknown algorithm kind: {kind}"
        raise UnknownAlgorithmError(msg, kind=kind, value=kind) from None


def canonical_name(member: IntEnum) -> str:
    """Symbolic name of an algorithm member, e.g. ``aes-256``."""
    return member.name.lower().replace("_", "-")


def name_to_code(kind: AlgorithmKind, name: str) -> int:
    """
    Look up the protocol code for a symbolic algorithm name.

    Raises:
        UnknownAlgorithmError: If the name is not mapped.
    """
    enum = _enum_for(kind)
    wanted = _normalize(name)
    wanted = _normalize(_ALIASES.get(kind, {}).get(name.strip().lower(), wanted))
    for member in enum:
        if _normalize(member.name) == wanted:
            return int(member)
    msg = f"Unknown {kind} algorithm: {name}"
    raise UnknownAlgorithmError(msg, kind=kind, value=name)


def code_to_name(kind: AlgorithmKind, code: int) -> str:
    """
    Look up the symbolic name for a protocol code.

    Raises:
        UnknownAlgorithmError: If the code is not mapped.
    """
    return canonical_name(from_code(_enum_for(kind), code, kind))


def from_code(enum: type[E], code: int, kind: str) -> E:
    try:
        return enum(code)
    except ValueError:
        msg = f"Unknown {kind} algorithm code: {code}"
        raise UnknownAlgorithmError(msg, kind=kind, value=code) from None


def resolve(kind: AlgorithmKind, value: IntEnum | int | str) -> IntEnum:
    """Turn an enum member, a protocol code or a symbolic name into the enum member."""
    enum = _enum_for(kind)
    if isinstance(value, enum):
        return value
    if isinstance(value, str):
        return enum(name_to_code(kind, value))
    if isinstance(value, int):
        return from_code(enum, value, kind)
    msg = f"Cannot interpret {value!r} as a {kind} algorithm"
    raise UnknownAlgorithmError(msg, kind=kind, value=value)


def resolve_cipher(value: SymmetricAlgorithm | int | str) -> SymmetricAlgorithm:
    return SymmetricAlgorithm(resolve("symmetric-cipher", value))


def resolve_compression(value: CompressionAlgorithm | int | str) -> CompressionAlgorithm:
    return CompressionAlgorithm(resolve("compression", value))


def resolve_format(value: LiteralFormat | int | str) -> LiteralFormat:
    return LiteralFormat(resolve("literal-format", value))
