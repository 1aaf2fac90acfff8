"""
OpenPGP message packaging and decoding.

Wraps payloads in literal data, optional compression, optional passphrase or
public-key encryption with an integrity check, and optional ASCII armor, and
reads them back.

Example:
    ```python
    import pgpy
    from pgp_message import decrypt, encrypt

    key, _ = pgpy.PGPKey.from_file("alice.asc")
    secret = encrypt("hello", [key.pubkey, "backup passphrase"], compress="zlib", armor=True)

    assert decrypt(secret, key) == b"hello"
    assert decrypt(secret, "backup passphrase") == b"hello"
    ```
"""

from pgp_message.composer import MessageWriter, compose, plan_layers
from pgp_message.config import ReadOptions, WriteOptions
from pgp_message.exceptions import (
    DecryptionError,
    EncryptionError,
    IntegrityError,
    InvalidEncryptorError,
    MalformedPacketError,
    NoEncryptorsError,
    NoMatchingKeyError,
    PgpMessageError,
    SessionKeyError,
    TooManyPassphrasesError,
    UnknownAlgorithmError,
    UnsupportedAlgorithmError,
)
from pgp_message.message import decrypt, encrypt, package, read_messages, reduce_messages
from pgp_message.models import (
    CompressionAlgorithm,
    KeyResolver,
    LiteralFormat,
    Message,
    Passphrase,
    PrivateIdentity,
    PublicIdentity,
    SymmetricAlgorithm,
)

__version__ = "0.1.0"

__all__ = [
    # Façade
    "package",
    "encrypt",
    "decrypt",
    "read_messages",
    "reduce_messages",
    # Composition
    "compose",
    "plan_layers",
    "MessageWriter",
    "WriteOptions",
    "ReadOptions",
    # Models
    "Message",
    "Passphrase",
    "PublicIdentity",
    "PrivateIdentity",
    "KeyResolver",
    "SymmetricAlgorithm",
    "CompressionAlgorithm",
    "LiteralFormat",
    # Exceptions
    "PgpMessageError",
    "EncryptionError",
    "InvalidEncryptorError",
    "TooManyPassphrasesError",
    "NoEncryptorsError",
    "DecryptionError",
    "NoMatchingKeyError",
    "SessionKeyError",
    "IntegrityError",
    "UnknownAlgorithmError",
    "UnsupportedAlgorithmError",
    "MalformedPacketError",
]
