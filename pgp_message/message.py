"""
Message façade.

One-call helpers over the composer and the decoder:

    armored = package("hello", armor=True, compress="zip")
    secret = encrypt(b"data", ["passphrase", recipient_key], armor=True)
    plain = decrypt(secret, private_key)
"""

import io
from dataclasses import replace
from typing import Any, BinaryIO, TypeVar

import structlog

from pgp_message.composer import compose
from pgp_message.config import ReadOptions, WriteOptions, with_overrides
from pgp_message.decoder import Reducer, reduce_stream
from pgp_message.exceptions import MalformedPacketError, NoEncryptorsError
from pgp_message.models.credentials import as_encryptors
from pgp_message.models.crypto import LiteralFormat
from pgp_message.models.message import Message
from pgp_message.packets.armor import dearmor, is_armored

logger = structlog.get_logger(__name__)

A = TypeVar("A")

Payload = bytes | bytearray | memoryview | str | BinaryIO
MessageInput = bytes | bytearray | str | BinaryIO

_ARMOR_PEEK = 64


def _payload_stream(data: Payload) -> BinaryIO:
    match data:
        case str():
            return io.BytesIO(data.encode("utf-8"))
        case bytes() | bytearray() | memoryview():
            return io.BytesIO(bytes(data))
        case _:
            return data


def _copy(source: BinaryIO, target: Any, buffer_size: int) -> int:
    total = 0
    while chunk := source.read(buffer_size):
        target.write(chunk)
        total += len(chunk)
    return total


def package(data: Payload, options: WriteOptions | None = None, **overrides: Any) -> bytes | str:
    """
    Wrap ``data`` in a literal packet and the layers ``options`` ask for.

    Args:
        data: Payload bytes, text (encoded as UTF-8) or a binary stream.
        options: Write options, defaults if None.
        **overrides: WriteOptions fields overriding ``options``.

    Returns:
        The message bytes, or ASCII text when armored.

    Raises:
        EncryptionError: If the encryptors are unusable.
        UnknownAlgorithmError: If an algorithm name or code is unknown.
    """
    options = with_overrides(options, WriteOptions, **overrides)
    sink = io.BytesIO()
    with compose(sink, options) as writer:
        size = _copy(_payload_stream(data), writer, options.buffer_size)
    output = sink.getvalue()
    logger.debug("Packaged message", payload_size=size, message_size=len(output), armor=options.armor)
    if options.armor:
        return output.decode("ascii")
    return output


def encrypt(
    data: Payload,
    encryptors: Any,
    options: WriteOptions | None = None,
    **overrides: Any,
) -> bytes | str:
    """
    Package ``data`` encrypted for every encryptor.

    ``encryptors`` may be a single passphrase or key, or a collection of them.

    Raises:
        NoEncryptorsError: If no encryptor is given.
        TooManyPassphrasesError: If more than one passphrase is given.
        InvalidEncryptorError: If an encryptor is neither a passphrase nor a key.
    """
    encryptors = as_encryptors(encryptors)
    if not encryptors:
        raise NoEncryptorsError()
    return package(data, options, encryptors=encryptors, **overrides)


def _peek(stream: BinaryIO) -> tuple[BinaryIO, bytes]:
    peek = getattr(stream, "peek", None)
    if peek is not None:
        return stream, peek(_ARMOR_PEEK)[:_ARMOR_PEEK]
    if stream.seekable():
        position = stream.tell()
        head = stream.read(_ARMOR_PEEK)
        stream.seek(position)
        return stream, head
    buffered = io.BufferedReader(stream)  # type: ignore[arg-type]
    return buffered, buffered.peek(_ARMOR_PEEK)[:_ARMOR_PEEK]


def _open_input(source: MessageInput) -> BinaryIO:
    """Binary packet stream for ``source``, removing ASCII armor if present."""
    match source:
        case str():
            data = source.encode("utf-8")
        case bytes() | bytearray():
            data = bytes(source)
        case _:
            stream, head = _peek(source)
            if not is_armored(head):
                return stream
            data = stream.read()
    if is_armored(data[:_ARMOR_PEEK]):
        block = dearmor(data)
        logger.debug("Removed armor", label=block.label, headers=list(block.headers))
        return io.BytesIO(block.data)
    return io.BytesIO(data)


def reduce_messages(
    source: MessageInput,
    acc: A,
    reducer: Reducer[A],
    options: ReadOptions | None = None,
    **overrides: Any,
) -> A:
    """
    Fold every literal message in ``source`` into ``acc``.

    ``reducer(acc, message)`` receives each :class:`Message` with its payload
    as a stream, which must be read before the reducer returns.

    Raises:
        NoMatchingKeyError: If encrypted data cannot be opened with the decryptor.
        IntegrityError: If encrypted data was modified.
        MalformedPacketError: If the input is not a valid message.
    """
    options = with_overrides(options, ReadOptions, **overrides)
    return reduce_stream(_open_input(source), acc, reducer, options)


def _read_payload(message: Message) -> Message:
    data = message.data.read()
    if message.format.is_text:
        errors = "strict" if message.format is LiteralFormat.UTF8 else "replace"
        data = data.decode("utf-8", errors=errors)
    return replace(message, data=data)


def _collect(messages: list[Message], message: Message) -> list[Message]:
    messages.append(_read_payload(message))
    return messages


def read_messages(
    source: MessageInput,
    options: ReadOptions | None = None,
    **overrides: Any,
) -> list[Message]:
    """
    Read every message in ``source`` with its payload materialized.

    Text and UTF-8 payloads become ``str``; binary payloads stay ``bytes``.
    """
    return reduce_messages(source, [], _collect, options, **overrides)


def decrypt(
    source: MessageInput,
    decryptor: Any,
    options: ReadOptions | None = None,
    **overrides: Any,
) -> bytes | str:
    """
    Decrypt ``source`` and return the payload of its first message.

    ``decryptor`` is a passphrase, a private key or a callable mapping a
    recipient key id to a private key (or None).

    Raises:
        MalformedPacketError: If the input holds no literal data.
    """
    messages = read_messages(source, options, decryptor=decryptor, **overrides)
    if not messages:
        raise MalformedPacketError("Input contains no literal data")
    return messages[0].data
