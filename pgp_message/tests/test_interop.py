import pgpy
from pgpy.constants import CompressionAlgorithm, SymmetricKeyAlgorithm

from pgp_message.message import decrypt, encrypt, package, read_messages
from pgp_message.models.crypto import LiteralFormat


def test_pgpy_reads_armored_literal_message() -> None:
    armored = package(b"plain literal", armor=True, filename="plain.bin")

    message = pgpy.PGPMessage.from_blob(armored)

    assert bytes(message.message) == b"plain literal"
    assert message.filename == "plain.bin"


def test_pgpy_decrypts_public_key_message(alice_key: pgpy.PGPKey) -> None:
    armored = encrypt(b"for pgpy", alice_key.pubkey, compress="zip", armor=True)

    message = pgpy.PGPMessage.from_blob(armored)
    decrypted = alice_key.decrypt(message)

    assert bytes(decrypted.message) == b"for pgpy"


def test_pgpy_decrypts_passphrase_message() -> None:
    armored = encrypt(b"symmetric for pgpy", "s3cr3t", cipher="aes-128", armor=True)

    decrypted = pgpy.PGPMessage.from_blob(armored).decrypt("s3cr3t")

    assert bytes(decrypted.message) == b"symmetric for pgpy"


def test_reads_pgpy_public_key_message(alice_key: pgpy.PGPKey) -> None:
    message = pgpy.PGPMessage.new(b"from pgpy", compression=CompressionAlgorithm.ZLIB)
    encrypted = alice_key.pubkey.encrypt(message)

    [decoded] = read_messages(bytes(encrypted), decryptor=alice_key)

    assert decrypt(str(encrypted), alice_key) == "from pgpy"
    assert decoded.data == "from pgpy"
    assert decoded.format is LiteralFormat.TEXT


def test_reads_pgpy_passphrase_message() -> None:
    message = pgpy.PGPMessage.new(b"pgpy symmetric", compression=CompressionAlgorithm.Uncompressed)
    encrypted = message.encrypt("s3cr3t", cipher=SymmetricKeyAlgorithm.AES128)

    assert decrypt(str(encrypted), "s3cr3t") == "pgpy symmetric"


def test_reads_pgpy_binary_message() -> None:
    message = pgpy.PGPMessage.new(bytes(range(256)), compression=CompressionAlgorithm.Uncompressed)
    encrypted = message.encrypt("s3cr3t", cipher=SymmetricKeyAlgorithm.AES128)

    [decoded] = read_messages(str(encrypted), decryptor="s3cr3t")

    assert decoded.data == bytes(range(256))
    assert decoded.format is LiteralFormat.BINARY


def test_reads_pgpy_text_message() -> None:
    message = pgpy.PGPMessage.new("text from pgpy", compression=CompressionAlgorithm.Uncompressed)

    [decoded] = read_messages(str(message))

    assert decoded.data == "text from pgpy"
