"""
Cryptographic primitive provider.

Streaming OpenPGP CFB transforms built on ``cryptography``, the MDC digest
and the compression codecs. String-to-key derivation is delegated to pgpy in
:mod:`pgp_message.packets.session_keys`.

Everything here is a plain transform; packet framing lives in
:mod:`pgp_message.packets`.
"""

import bz2
import hashlib
import os
import zlib
from typing import Any, Protocol

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.decrepit.ciphers import algorithms as decrepit_algorithms
from cryptography.hazmat.primitives.ciphers import Cipher, CipherContext, algorithms, modes

from pgp_message.exceptions import SessionKeyError, UnsupportedAlgorithmError
from pgp_message.models.crypto import (
    CompressionAlgorithm,
    RandomSource,
    SessionKey,
    SymmetricAlgorithm,
)


def default_random(size: int) -> bytes:
    return os.urandom(size)


def _cipher_algorithm(session_key: SessionKey) -> Any:
    key = session_key.key_data
    match session_key.algorithm:
        case SymmetricAlgorithm.AES_128 | SymmetricAlgorithm.AES_192 | SymmetricAlgorithm.AES_256:
            return algorithms.AES(key)
        case (
            SymmetricAlgorithm.CAMELLIA_128
            | SymmetricAlgorithm.CAMELLIA_192
            | SymmetricAlgorithm.CAMELLIA_256
        ):
            return algorithms.Camellia(key)
        case SymmetricAlgorithm.TRIPLE_DES:
            return decrepit_algorithms.TripleDES(key)
        case SymmetricAlgorithm.CAST5:
            return decrepit_algorithms.CAST5(key)
        case SymmetricAlgorithm.BLOWFISH:
            return decrepit_algorithms.Blowfish(key)
        case SymmetricAlgorithm.IDEA:
            return decrepit_algorithms.IDEA(key)
        case _:
            msg = f"No cipher implementation for {session_key.algorithm.name}"
            raise UnsupportedAlgorithmError(
                msg, kind="symmetric-cipher", value=session_key.algorithm
            )


def is_supported_cipher(algorithm: SymmetricAlgorithm) -> bool:
    """Whether a CFB transform can be built for ``algorithm``."""
    if algorithm.key_size == 0:
        return False
    try:
        _cipher_algorithm(SessionKey(algorithm=algorithm, key_data=bytes(algorithm.key_size)))
    except UnsupportedAlgorithmError:
        return False
    return True


def new_cfb_encryptor(session_key: SessionKey, iv: bytes | None = None) -> CipherContext:
    iv = iv if iv is not None else bytes(session_key.block_size)
    cipher = Cipher(_cipher_algorithm(session_key), modes.CFB(iv), backend=default_backend())
    return cipher.encryptor()


def new_cfb_decryptor(session_key: SessionKey, iv: bytes | None = None) -> CipherContext:
    iv = iv if iv is not None else bytes(session_key.block_size)
    cipher = Cipher(_cipher_algorithm(session_key), modes.CFB(iv), backend=default_backend())
    return cipher.decryptor()


class OpenPgpCfbEncryptor:
    """
    OpenPGP CFB encryption of a data stream.

    The stream starts with ``block_size`` random octets followed by a repeat of
    the last two (the quick check). With ``resync`` the CFB state restarts
    after the prefix, as legacy Symmetrically Encrypted Data packets require.

    Attributes:
        prefix: Plaintext prefix, needed when hashing the stream for the MDC.
        header: Ciphertext of the prefix; emit before any :meth:`update` output.
    """

    def __init__(
        self, session_key: SessionKey, random: RandomSource, *, resync: bool = False
    ) -> None:
        block_size = session_key.block_size
        if not block_size:
            msg = f"Unknown block size for {session_key.algorithm.name}"
            raise UnsupportedAlgorithmError(
                msg, kind="symmetric-cipher", value=session_key.algorithm
            )
        random_block = bytes(random(block_size))
        self.prefix = random_block + random_block[-2:]
        self._context = new_cfb_encryptor(session_key)
        self.header = self._context.update(self.prefix)
        if resync:
            self._context.finalize()
            self._context = new_cfb_encryptor(session_key, iv=self.header[2:])

    def update(self, data: bytes) -> bytes:
        return self._context.update(data)

    def finalize(self) -> bytes:
        return self._context.finalize()


class OpenPgpCfbDecryptor:
    """
    Counterpart of :class:`OpenPgpCfbEncryptor`.

    Constructed from the ciphertext prefix (``block_size + 2`` octets). With
    ``check`` off a failed quick check is tolerated; the caller then has to
    rely on the modification detection code instead.

    Raises:
        SessionKeyError: If ``check`` is set and the quick check fails, which
            means the wrong key.
    """

    def __init__(
        self,
        session_key: SessionKey,
        header: bytes,
        *,
        resync: bool = False,
        check: bool = True,
    ) -> None:
        self.prefix = decrypt_prefix(session_key, header)
        if check and not _quick_check_passes(self.prefix, session_key.block_size):
            raise SessionKeyError(
                "CFB prefix verification failed, possibly wrong key",
                algorithm=session_key.algorithm.name,
            )
        block_size = session_key.block_size
        if resync:
            self._context = new_cfb_decryptor(session_key, iv=header[2 : block_size + 2])
        else:
            # Plain CFB: keep going from where the prefix left off.
            self._context = new_cfb_decryptor(session_key)
            self._context.update(header[: block_size + 2])

    def update(self, data: bytes) -> bytes:
        return self._context.update(data)

    def finalize(self) -> bytes:
        return self._context.finalize()


def decrypt_prefix(session_key: SessionKey, header: bytes) -> bytes:
    block_size = session_key.block_size
    prefix_size = block_size + 2
    if len(header) < prefix_size:
        msg = f"Encrypted data too short: {len(header)} < {prefix_size}"
        raise SessionKeyError(msg)
    decryptor = new_cfb_decryptor(session_key)
    return decryptor.update(header[:prefix_size]) + decryptor.finalize()


def quick_check(session_key: SessionKey, header: bytes) -> bool:
    """Whether ``session_key`` decrypts the prefix of ``header`` consistently."""
    if not session_key.block_size or len(header) < session_key.block_size + 2:
        return False
    return _quick_check_passes(decrypt_prefix(session_key, header), session_key.block_size)


def _quick_check_passes(prefix: bytes, block_size: int) -> bool:
    return prefix[block_size - 2 : block_size] == prefix[block_size : block_size + 2]


def new_mdc_digest() -> Any:
    """Running SHA-1 accumulator used for modification detection codes."""
    return hashlib.sha1()


class Codec(Protocol):
    """Streaming compressor or decompressor."""

    def process(self, data: bytes) -> bytes: ...

    def flush(self) -> bytes: ...


class _Passthrough:
    def process(self, data: bytes) -> bytes:
        return data

    def flush(self) -> bytes:
        return b""


class _ZlibCompressor:
    def __init__(self, wbits: int, level: int) -> None:
        self._compressor = zlib.compressobj(level, zlib.DEFLATED, wbits)

    def process(self, data: bytes) -> bytes:
        return self._compressor.compress(data)

    def flush(self) -> bytes:
        return self._compressor.flush()


class _ZlibDecompressor:
    def __init__(self, wbits: int) -> None:
        self._decompressor = zlib.decompressobj(wbits)

    def process(self, data: bytes) -> bytes:
        return self._decompressor.decompress(data)

    def flush(self) -> bytes:
        return self._decompressor.flush()


class _Bz2Compressor:
    def __init__(self) -> None:
        self._compressor = bz2.BZ2Compressor()

    def process(self, data: bytes) -> bytes:
        return self._compressor.compress(data)

    def flush(self) -> bytes:
        return self._compressor.flush()


class _Bz2Decompressor:
    def __init__(self) -> None:
        self._decompressor = bz2.BZ2Decompressor()

    def process(self, data: bytes) -> bytes:
        if self._decompressor.eof:
            return b""
        return self._decompressor.decompress(data)

    def flush(self) -> bytes:
        return b""


def new_compressor(algorithm: CompressionAlgorithm, level: int = zlib.Z_DEFAULT_COMPRESSION) -> Codec:
    match algorithm:
        case CompressionAlgorithm.UNCOMPRESSED:
            return _Passthrough()
        case CompressionAlgorithm.ZIP:
            return _ZlibCompressor(-zlib.MAX_WBITS, level)
        case CompressionAlgorithm.ZLIB:
            return _ZlibCompressor(zlib.MAX_WBITS, level)
        case CompressionAlgorithm.BZIP2:
            return _Bz2Compressor()
        case _:
            msg = f"No compressor for {algorithm!r}"
            raise UnsupportedAlgorithmError(msg, kind="compression", value=algorithm)


def new_decompressor(algorithm: CompressionAlgorithm) -> Codec:
    match algorithm:
        case CompressionAlgorithm.UNCOMPRESSED:
            return _Passthrough()
        case CompressionAlgorithm.ZIP:
            return _ZlibDecompressor(-zlib.MAX_WBITS)
        case CompressionAlgorithm.ZLIB:
            return _ZlibDecompressor(zlib.MAX_WBITS)
        case CompressionAlgorithm.BZIP2:
            return _Bz2Decompressor()
        case _:
            msg = f"No decompressor for {algorithm!r}"
            raise UnsupportedAlgorithmError(msg, kind="compression", value=algorithm)
