"""
pgp_message exception hierarchy.

All exceptions inherit from PgpMessageError for easy catching.
"""

from typing import Any


class PgpMessageError(Exception):
    """Base exception for all pgp_message errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class EncryptionError(PgpMessageError):
    """A message could not be enciphered with the requested encryptors."""


class InvalidEncryptorError(EncryptionError):
    """Encryptor is neither a passphrase nor a public key."""

    def __init__(self, message: str, *, encryptor_type: str | None = None) -> None:
        super().__init__(message, encryptor_type=encryptor_type)
        self.encryptor_type = encryptor_type


class TooManyPassphrasesError(EncryptionError):
    """More than one passphrase encryptor was given for a single message."""

    def __init__(self, message: str = "Only one passphrase encryptor is supported") -> None:
        super().__init__(message)


class NoEncryptorsError(EncryptionError):
    """Encryption was requested without any usable encryptor."""

    def __init__(self, message: str = "Cannot encrypt data stream without encryptors") -> None:
        super().__init__(message)


class DecryptionError(PgpMessageError):
    """Encrypted data could not be deciphered."""


class NoMatchingKeyError(DecryptionError):
    """None of the encrypted session keys can be opened with the decryptor."""


class SessionKeyError(DecryptionError):
    """A session key was recovered but is unusable (bad checksum, quick check failed)."""


class IntegrityError(DecryptionError):
    """Modification detection code did not match the decrypted data."""


class UnknownAlgorithmError(PgpMessageError):
    """Algorithm name or code has no mapping."""

    def __init__(self, message: str, *, kind: str, value: object) -> None:
        super().__init__(message, kind=kind, value=value)
        self.kind = kind
        self.value = value


class UnsupportedAlgorithmError(UnknownAlgorithmError):
    """Algorithm is known but no primitive implements it."""


class MalformedPacketError(PgpMessageError):
    """Packet stream does not follow the OpenPGP packet grammar."""

    def __init__(self, message: str, *, tag: int | None = None) -> None:
        super().__init__(message, tag=tag)
        self.tag = tag
