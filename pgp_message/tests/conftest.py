import pgpy
import pytest
from pgpy.constants import (
    CompressionAlgorithm,
    HashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)

KEY_PASSPHRASE = "key-passphrase"

_ENCRYPTION_USAGE = {KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage}


def _create_test_key(name: str, usage: set[KeyFlags] | None = None) -> pgpy.PGPKey:
    key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, 2048)
    uid = pgpy.PGPUID.new(name, comment="test", email=f"{name.lower()}@test.com")
    key.add_uid(
        uid,
        usage=usage or {KeyFlags.Sign, *_ENCRYPTION_USAGE},
        hashes=[HashAlgorithm.SHA256],
        ciphers=[SymmetricKeyAlgorithm.AES256],
        compression=[CompressionAlgorithm.Uncompressed],
    )
    return key


@pytest.fixture(scope="session")
def alice_key() -> pgpy.PGPKey:
    return _create_test_key("Alice")


@pytest.fixture(scope="session")
def bob_key() -> pgpy.PGPKey:
    return _create_test_key("Bob")


@pytest.fixture(scope="session")
def mallory_key() -> pgpy.PGPKey:
    return _create_test_key("Mallory")


@pytest.fixture(scope="session")
def subkey_key() -> pgpy.PGPKey:
    """Signing-only primary key with a separate encryption subkey."""
    key = _create_test_key("Carol", usage={KeyFlags.Sign, KeyFlags.Certify})
    subkey = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, 2048)
    key.add_subkey(subkey, usage=_ENCRYPTION_USAGE)
    return key


@pytest.fixture(scope="session")
def protected_key() -> pgpy.PGPKey:
    key = _create_test_key("Dave")
    key.protect(KEY_PASSPHRASE, SymmetricKeyAlgorithm.AES256, HashAlgorithm.SHA256)
    return key
