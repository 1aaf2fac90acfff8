"""
Packet decoder.

Folds a packet stream into an accumulator. Compressed and encrypted packets
are opened and their children decoded recursively; every literal packet
reached is handed to the reducer as a :class:`~pgp_message.models.Message`
carrying the compression and encryption it was found under.

The reducer receives the payload as a stream and must read what it needs
before returning; whatever it leaves is skipped. The modification detection
code of an encrypted packet is only checked once all of its children have
been reduced, so a caller that stops early loses the integrity guarantee.
"""

import io
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import BinaryIO, TypeVar

import structlog

from pgp_message.config import ReadOptions
from pgp_message.crypto.algorithms import canonical_name
from pgp_message.crypto.pgpy_backend import PgpyBackend
from pgp_message.crypto.primitives import quick_check
from pgp_message.crypto.protocol import PublicKeyBackend
from pgp_message.exceptions import IntegrityError, NoMatchingKeyError, SessionKeyError
from pgp_message.models.credentials import Decryptor, KeyResolver, Passphrase, PrivateIdentity
from pgp_message.models.crypto import CompressionAlgorithm, SessionKey, SymmetricAlgorithm
from pgp_message.models.message import Message
from pgp_message.packets.reader import (
    CompressedPacket,
    EncryptedData,
    EncryptedList,
    EncryptedObject,
    LiteralPacket,
    Packet,
    PassphraseProtected,
    PublicKeyProtected,
    read_packets,
)

logger = structlog.get_logger(__name__)

A = TypeVar("A")
Reducer = Callable[[A, Message], A]


@dataclass(frozen=True, kw_only=True)
class DecodeContext:
    """Metadata threaded from enclosing packets down to the literal data."""

    compress: CompressionAlgorithm | None = None
    cipher: SymmetricAlgorithm | None = None
    encrypted_for: str | None = None


def _identity_for(obj: PublicKeyProtected, decryptor: Decryptor | None) -> PrivateIdentity | None:
    match decryptor:
        case PrivateIdentity():
            return decryptor
        case KeyResolver():
            return decryptor(obj.recipient_key_id)
        case _:
            return None


def can_decrypt(
    obj: EncryptedObject,
    decryptor: Decryptor | None,
    backend: PublicKeyBackend | None = None,
) -> bool:
    """
    Whether ``decryptor`` can open the session key of ``obj``.

    A passphrase matches when the session key it unwraps passes the quick
    check on the encrypted data. A private key (or the key a resolver returns
    for the recipient key id) matches when it holds the recipient key.
    """
    match obj:
        case PassphraseProtected() if isinstance(decryptor, Passphrase):
            try:
                session_key = obj.packet.unwrap(decryptor.secret)
            except SessionKeyError:
                return False
            return quick_check(session_key, obj.data.head)
        case PublicKeyProtected():
            identity = _identity_for(obj, decryptor)
            if identity is None:
                return False
            backend = backend or PgpyBackend()
            return obj.recipient_key_id in backend.key_ids(identity.key)
        case _:
            return False


def _open_session_key(
    obj: EncryptedObject,
    decryptor: Decryptor | None,
    backend: PublicKeyBackend,
) -> tuple[SessionKey, str | None]:
    match obj:
        case PassphraseProtected() if isinstance(decryptor, Passphrase):
            return obj.packet.unwrap(decryptor.secret), None
        case PublicKeyProtected():
            identity = _identity_for(obj, decryptor)
            if identity is not None and obj.recipient_key_id in backend.key_ids(identity.key):
                return backend.unwrap_session_key(identity, obj.packet), obj.recipient_key_id
            msg = f"No private key for recipient {obj.recipient_key_id}"
            raise NoMatchingKeyError(msg, key_id=obj.recipient_key_id)
        case _:
            raise NoMatchingKeyError("Data is passphrase-protected and no passphrase was given")


def _unwraps_cleanly(obj: PassphraseProtected, passphrase: Passphrase) -> bool:
    try:
        session_key = obj.packet.unwrap(passphrase.secret)
    except SessionKeyError:
        return False
    return session_key.algorithm == obj.packet.cipher


def _select_candidate(
    packet: EncryptedList,
    decryptor: Decryptor | None,
    backend: PublicKeyBackend,
) -> EncryptedObject | None:
    """
    First candidate ``decryptor`` can open.

    A damaged prefix fails the quick check even for the right passphrase. For
    integrity protected data the first passphrase candidate whose session key
    unwraps cleanly is then taken, and the modification detection code decides.
    """
    for candidate in packet.candidates:
        if can_decrypt(candidate, decryptor, backend):
            return candidate
    if not packet.data.integrity_protected or not isinstance(decryptor, Passphrase):
        return None
    for candidate in packet.candidates:
        if isinstance(candidate, PassphraseProtected) and _unwraps_cleanly(candidate, decryptor):
            logger.warning("Quick check failed, relying on modification detection code")
            return candidate
    return None


def _recipients(packet: EncryptedList) -> list[str]:
    return [
        candidate.recipient_key_id if isinstance(candidate, PublicKeyProtected) else "passphrase"
        for candidate in packet.candidates
    ]


def reduce_packet(
    packet: Packet,
    acc: A,
    reducer: Reducer[A],
    options: ReadOptions,
    context: DecodeContext | None = None,
    backend: PublicKeyBackend | None = None,
) -> A:
    """
    Reduce one packet, recursing into compressed and encrypted ones.

    Raises:
        NoMatchingKeyError: If no session key candidate opens with the decryptor.
        SessionKeyError: If an opened session key does not decrypt legacy data.
        IntegrityError: If the modification detection code does not match, or
            integrity protected data fails to decode and its code does not match.
        MalformedPacketError: If the packet structure is invalid.
    """
    context = context or DecodeContext()
    backend = backend or PgpyBackend()

    match packet:
        case LiteralPacket():
            message = Message(
                format=packet.format,
                filename=packet.filename,
                mtime=packet.mtime,
                data=packet.stream,
                compress=context.compress,
                cipher=context.cipher,
                encrypted_for=context.encrypted_for,
            )
            return reducer(acc, message)

        case CompressedPacket():
            stream = packet.decompress()
            try:
                return reduce_stream(
                    stream, acc, reducer, options, replace(context, compress=packet.algorithm), backend
                )
            finally:
                stream.close()

        case EncryptedList():
            candidate = _select_candidate(packet, options.decryptor, backend)
            if candidate is not None:
                return reduce_packet(candidate, acc, reducer, options, context, backend)
            msg = "No decryptor matches any session key of the encrypted data"
            raise NoMatchingKeyError(msg, recipients=_recipients(packet))

        case PassphraseProtected() | PublicKeyProtected():
            session_key, encrypted_for = _open_session_key(packet, options.decryptor, backend)
            context = replace(context, cipher=session_key.algorithm, encrypted_for=encrypted_for)
            return _reduce_encrypted(packet.data, session_key, acc, reducer, options, context, backend)

        case _:
            msg = f"Cannot reduce {type(packet).__name__}"
            raise TypeError(msg)


def _reduce_encrypted(
    data: EncryptedData,
    session_key: SessionKey,
    acc: A,
    reducer: Reducer[A],
    options: ReadOptions,
    context: DecodeContext,
    backend: PublicKeyBackend,
) -> A:
    # Integrity protected data is judged by its MDC, not by the prefix.
    stream = data.decrypt(session_key, check_prefix=not data.integrity_protected)
    logger.debug(
        "Decrypting data",
        cipher=canonical_name(session_key.algorithm),
        integrity_protected=data.integrity_protected,
        encrypted_for=context.encrypted_for,
    )
    reader = io.BufferedReader(stream)
    try:
        try:
            acc = reduce_stream(reader, acc, reducer, options, context, backend)
        except Exception as e:
            if stream.integrity_protected and not stream.verify():
                raise IntegrityError("Encrypted data was modified") from e
            raise
        if not stream.verify():
            raise IntegrityError("Modification detection code mismatch")
        return acc
    finally:
        reader.close()


def reduce_stream(
    source: BinaryIO,
    acc: A,
    reducer: Reducer[A],
    options: ReadOptions,
    context: DecodeContext | None = None,
    backend: PublicKeyBackend | None = None,
) -> A:
    """Reduce every packet read from ``source``, in order."""
    backend = backend or PgpyBackend()
    for packet in read_packets(source):
        acc = reduce_packet(packet, acc, reducer, options, context, backend)
    return acc
