import pytest

from pgp_message.crypto.algorithms import (
    canonical_name,
    code_to_name,
    name_to_code,
    resolve_cipher,
    resolve_compression,
    resolve_format,
)
from pgp_message.exceptions import UnknownAlgorithmError
from pgp_message.models.crypto import CompressionAlgorithm, LiteralFormat, SymmetricAlgorithm


@pytest.mark.parametrize(
    ("kind", "name", "code"),
    [
        ("symmetric-cipher", "aes-256", 9),
        ("symmetric-cipher", "AES_128", 7),
        ("symmetric-cipher", "camellia192", 12),
        ("symmetric-cipher", "3des", 2),
        ("compression", "zip", 1),
        ("compression", "ZLIB", 2),
        ("compression", "bzip2", 3),
        ("compression", "none", 0),
        ("literal-format", "binary", ord("b")),
        ("literal-format", "utf-8", ord("u")),
        ("hash", "sha256", 8),
        ("hash", "SHA-1", 2),
    ],
)
def test_name_to_code_maps_names(kind: str, name: str, code: int) -> None:
    assert name_to_code(kind, name) == code  # type: ignore[arg-type]


def test_code_to_name_returns_canonical_names() -> None:
    assert code_to_name("symmetric-cipher", 9) == "aes-256"
    assert code_to_name("compression", 3) == "bzip2"
    assert code_to_name("literal-format", ord("t")) == "text"


def test_name_and_code_are_inverse() -> None:
    for member in SymmetricAlgorithm:
        assert name_to_code("symmetric-cipher", code_to_name("symmetric-cipher", member)) == member


def test_name_to_code_raises_on_unknown_name() -> None:
    with pytest.raises(UnknownAlgorithmError, match="Unknown compression algorithm") as exc_info:
        name_to_code("compression", "lzma")

    assert exc_info.value.kind == "compression"
    assert exc_info.value.value == "lzma"


def test_code_to_name_raises_on_unknown_code() -> None:
    with pytest.raises(UnknownAlgorithmError, match="code: 99"):
        code_to_name("symmetric-cipher", 99)


def test_unknown_kind_raises() -> None:
    with pytest.raises(UnknownAlgorithmError, match="Unknown algorithm kind"):
        name_to_code("signature", "rsa")  # type: ignore[arg-type]


def test_resolve_helpers_accept_members_codes_and_names() -> None:
    assert resolve_cipher(SymmetricAlgorithm.AES_192) is SymmetricAlgorithm.AES_192
    assert resolve_cipher(7) is SymmetricAlgorithm.AES_128
    assert resolve_compression("zip") is CompressionAlgorithm.ZIP
    assert resolve_format("utf8") is LiteralFormat.UTF8


def test_canonical_name() -> None:
    assert canonical_name(SymmetricAlgorithm.CAMELLIA_256) == "camellia-256"
