from datetime import datetime, timezone

import pytest

from pgp_message.config import ReadOptions, WriteOptions, with_overrides
from pgp_message.models.credentials import Passphrase
from pgp_message.models.crypto import CompressionAlgorithm, LiteralFormat, SymmetricAlgorithm


def test_write_options_defaults() -> None:
    options = WriteOptions()

    assert options.buffer_size == 4096
    assert options.format is LiteralFormat.BINARY
    assert options.filename == "_CONSOLE"
    assert options.compress is None
    assert options.cipher is SymmetricAlgorithm.AES_256
    assert options.encryptors == ()
    assert options.integrity_packet
    assert not options.armor


def test_write_options_resolve_names() -> None:
    options = WriteOptions(format="text", compress="bzip2", cipher="camellia-128", encryptors="pw")

    assert options.format is LiteralFormat.TEXT
    assert options.compress is CompressionAlgorithm.BZIP2
    assert options.cipher is SymmetricAlgorithm.CAMELLIA_128
    assert options.encryptors == (Passphrase("pw"),)


def test_write_options_reject_non_positive_buffer() -> None:
    with pytest.raises(ValueError, match="buffer_size must be positive"):
        WriteOptions(buffer_size=0)


def test_write_options_reject_long_filename() -> None:
    with pytest.raises(ValueError, match="at most 255 bytes"):
        WriteOptions(filename="é" * 128)


def test_write_options_reject_out_of_range_mtime() -> None:
    with pytest.raises(ValueError, match="32-bit"):
        WriteOptions(mtime=datetime(2200, 1, 1, tzinfo=timezone.utc))


def test_write_options_timestamp_uses_mtime() -> None:
    options = WriteOptions(mtime=datetime(1970, 1, 2, tzinfo=timezone.utc))

    assert options.timestamp == 86400


def test_with_overrides_builds_defaults_and_replaces() -> None:
    assert with_overrides(None, WriteOptions, armor=True).armor
    base = WriteOptions(compress="zip")
    assert with_overrides(base, WriteOptions) is base
    assert with_overrides(base, WriteOptions, armor=True).compress is CompressionAlgorithm.ZIP


def test_read_options_coerce_decryptor() -> None:
    assert ReadOptions(decryptor="pw").decryptor == Passphrase("pw")
    assert ReadOptions().decryptor is None
