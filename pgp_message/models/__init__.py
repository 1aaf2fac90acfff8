"""
Domain models for pgp_message.

These are immutable (frozen) dataclasses and enums describing algorithms,
credentials and decoded messages.
"""

from pgp_message.models.credentials import (
    Decryptor,
    Encryptor,
    KeyResolver,
    Passphrase,
    PrivateIdentity,
    PublicIdentity,
    as_decryptor,
    as_encryptor,
    as_encryptors,
)
from pgp_message.models.crypto import (
    CompressionAlgorithm,
    HashAlgorithm,
    LiteralFormat,
    SessionKey,
    SymmetricAlgorithm,
)
from pgp_message.models.message import Message

__all__ = [
    # Algorithms
    "SymmetricAlgorithm",
    "CompressionAlgorithm",
    "HashAlgorithm",
    "LiteralFormat",
    "SessionKey",
    # Credentials
    "Encryptor",
    "Decryptor",
    "Passphrase",
    "PublicIdentity",
    "PrivateIdentity",
    "KeyResolver",
    "as_encryptor",
    "as_encryptors",
    "as_decryptor",
    # Messages
    "Message",
]
