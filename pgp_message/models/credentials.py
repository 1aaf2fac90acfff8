"""
Encryptors and decryptors.

A collection of encryptors may be used to encipher a message, and any
corresponding decryptor will be able to decipher it. For symmetric encryption
both sides use the same passphrase. For public-key encryption the encryptor is
a public key and the decryptor is the matching private key, or a resolver that
looks the private key up by key id on demand.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass

import pgpy

from pgp_message.exceptions import InvalidEncryptorError


@dataclass(frozen=True)
class Passphrase:
    """Shared secret used both to encrypt and to decrypt."""

    secret: str

    def __repr__(self) -> str:
        return "Passphrase(<hidden>)"


@dataclass(frozen=True)
class PublicIdentity:
    """Recipient public key; the session key is wrapped for it."""

    key: pgpy.PGPKey

    @property
    def key_id(self) -> str:
        return str(self.key.fingerprint.keyid)


@dataclass(frozen=True)
class PrivateIdentity:
    """
    Private key able to unwrap session keys encrypted to it or its subkeys.

    Attributes:
        key: The pgpy private key.
        passphrase: Unlocks ``key`` while a session key is unwrapped, if it is protected.
    """

    key: pgpy.PGPKey
    passphrase: str | None = None

    @property
    def key_id(self) -> str:
        return str(self.key.fingerprint.keyid)

    def __repr__(self) -> str:
        return f"PrivateIdentity(key_id={self.key_id!r})"


@dataclass(frozen=True)
class KeyResolver:
    """Looks up the private identity for a recipient key id, or returns None."""

    resolve: Callable[[str], "PrivateIdentity | pgpy.PGPKey | None"]

    def __call__(self, key_id: str) -> PrivateIdentity | None:
        found = self.resolve(key_id)
        if found is None or isinstance(found, PrivateIdentity):
            return found
        return PrivateIdentity(found)


Encryptor = Passphrase | PublicIdentity
Decryptor = Passphrase | PrivateIdentity | KeyResolver


def as_encryptor(value: object) -> Encryptor:
    """
    Coerce a caller value into an encryptor.

    Strings become passphrases and pgpy keys become public identities.

    Raises:
        InvalidEncryptorError: If the value has any other shape.
    """
    match value:
        case Passphrase() | PublicIdentity():
            return value
        case str():
            return Passphrase(value)
        case pgpy.PGPKey():
            return PublicIdentity(value)
        case _:
            msg = f"Don't know how to encrypt data with {value!r}"
            raise InvalidEncryptorError(msg, encryptor_type=type(value).__name__)


def as_encryptors(values: object) -> tuple[Encryptor, ...]:
    """Coerce a single encryptor or a collection of them, dropping None entries."""
    if values is None:
        return ()
    if isinstance(values, (str, pgpy.PGPKey, Passphrase, PublicIdentity)):
        values = [values]
    if not isinstance(values, Iterable):
        return (as_encryptor(values),)
    return tuple(as_encryptor(value) for value in values if value is not None)


def as_decryptor(value: object) -> Decryptor | None:
    """
    Coerce a caller value into a decryptor.

    Strings become passphrases, pgpy keys become private identities and any
    other callable becomes a key resolver.
    """
    match value:
        case None | Passphrase() | PrivateIdentity() | KeyResolver():
            return value
        case str():
            return Passphrase(value)
        case pgpy.PGPKey():
            return PrivateIdentity(value)
        case _ if callable(value):
            return KeyResolver(value)
        case _:
            msg = f"Don't know how to decrypt data with {type(value).__name__}"
            raise TypeError(msg)
