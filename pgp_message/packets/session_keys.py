"""
Encrypted session key packets.

Symmetric-Key Encrypted Session Key (SKESK, tag 3) packets are built and
opened here. Public-Key Encrypted Session Key (PKESK, tag 1) packets are only
parsed far enough to learn the recipient key id; wrapping and unwrapping the
key material is the public-key backend's job.
"""

from dataclasses import dataclass
from enum import IntEnum

from pgpy.packet.fields import String2Key

from pgp_message.crypto.algorithms import from_code
from pgp_message.crypto.primitives import new_cfb_decryptor, new_cfb_encryptor
from pgp_message.exceptions import (
    MalformedPacketError,
    SessionKeyError,
    UnknownAlgorithmError,
    UnsupportedAlgorithmError,
)
from pgp_message.models.crypto import HashAlgorithm, RandomSource, SessionKey, SymmetricAlgorithm
from pgp_message.packets.framing import PacketTag, encode_packet

_SKESK_VERSION = 4
_PKESK_VERSION = 3
_MIN_PKESK_BODY_LENGTH = 10
_SALT_SIZE = 8
DEFAULT_S2K_COUNT = 0x60  # 65536 octets


class S2KMode(IntEnum):
    SIMPLE = 0
    SALTED = 1
    ITERATED_SALTED = 3


@dataclass(frozen=True, kw_only=True)
class S2K:
    """String-to-key specifier."""

    mode: S2KMode
    hash_algorithm: HashAlgorithm
    salt: bytes = b""
    coded_count: int = 0

    @classmethod
    def new(
        cls,
        random: RandomSource,
        hash_algorithm: HashAlgorithm = HashAlgorithm.SHA256,
        coded_count: int = DEFAULT_S2K_COUNT,
    ) -> "S2K":
        return cls(
            mode=S2KMode.ITERATED_SALTED,
            hash_algorithm=hash_algorithm,
            salt=bytes(random(_SALT_SIZE)),
            coded_count=coded_count,
        )

    def derive(self, passphrase: str, algorithm: SymmetricAlgorithm) -> bytes:
        """
        Derive a key for ``algorithm`` from ``passphrase``.

        Raises:
            UnsupportedAlgorithmError: If pgpy cannot size the key or hash with this algorithm.
        """
        s2k = String2Key()
        s2k.specifier = int(self.mode)
        s2k.salt = bytearray(self.salt)
        s2k.count = self.coded_count
        try:
            s2k.halg = int(self.hash_algorithm)
            s2k.encalg = int(algorithm)
            return bytes(s2k.derive_key(passphrase))
        except (ValueError, NotImplementedError) as e:
            msg = f"Cannot derive a {algorithm.name} key with {self.hash_algorithm.name}: {e}"
            raise UnsupportedAlgorithmError(msg, kind="symmetric-cipher", value=algorithm) from e

    def to_bytes(self) -> bytes:
        data = bytes([self.mode, self.hash_algorithm])
        if self.mode is not S2KMode.SIMPLE:
            data += self.salt
        if self.mode is S2KMode.ITERATED_SALTED:
            data += bytes([self.coded_count])
        return data

    @classmethod
    def parse(cls, data: bytes) -> tuple["S2K", int]:
        """Parse an S2K specifier. Returns it with the number of bytes consumed."""
        if len(data) < 2:
            raise MalformedPacketError("S2K specifier too short", tag=PacketTag.SYMMETRIC_KEY_ENCRYPTED_SESSION_KEY)
        try:
            mode = S2KMode(data[0])
        except ValueError:
            msg = f"Unsupported S2K type: {data[0]}"
            raise MalformedPacketError(msg, tag=PacketTag.SYMMETRIC_KEY_ENCRYPTED_SESSION_KEY) from None
        hash_algorithm = from_code(HashAlgorithm, data[1], "hash")

        match mode:
            case S2KMode.SIMPLE:
                return cls(mode=mode, hash_algorithm=hash_algorithm), 2
            case S2KMode.SALTED:
                end = 2 + _SALT_SIZE
                return cls(mode=mode, hash_algorithm=hash_algorithm, salt=_slice(data, 2, end)), end
            case S2KMode.ITERATED_SALTED:
                end = 3 + _SALT_SIZE
                specifier = _slice(data, 0, end)
                return (
                    cls(
                        mode=mode,
                        hash_algorithm=hash_algorithm,
                        salt=specifier[2 : 2 + _SALT_SIZE],
                        coded_count=specifier[-1],
                    ),
                    end,
                )


def _slice(data: bytes, start: int, end: int) -> bytes:
    if len(data) < end:
        raise MalformedPacketError(
            "S2K specifier truncated", tag=PacketTag.SYMMETRIC_KEY_ENCRYPTED_SESSION_KEY
        )
    return data[start:end]


@dataclass(frozen=True, kw_only=True)
class SymmetricKeyPacket:
    """
    Version 4 SKESK packet.

    Attributes:
        cipher: Algorithm of the S2K-derived key.
        s2k: How the passphrase becomes a key.
        encrypted_session_key: Algorithm octet and session key, CFB-encrypted
            with the derived key. Empty when the derived key is the session key.
    """

    cipher: SymmetricAlgorithm
    s2k: S2K
    encrypted_session_key: bytes = b""

    @classmethod
    def build(
        cls,
        passphrase: str,
        session_key: SessionKey,
        random: RandomSource,
        *,
        coded_count: int = DEFAULT_S2K_COUNT,
    ) -> "SymmetricKeyPacket":
        """Wrap ``session_key`` under a key derived from ``passphrase``."""
        s2k = S2K.new(random, coded_count=coded_count)
        key_encryption_key = SessionKey(
            algorithm=session_key.algorithm,
            key_data=s2k.derive(passphrase, session_key.algorithm),
        )
        encryptor = new_cfb_encryptor(key_encryption_key)
        plain = bytes([session_key.algorithm]) + session_key.key_data
        wrapped = encryptor.update(plain) + encryptor.finalize()
        return cls(cipher=session_key.algorithm, s2k=s2k, encrypted_session_key=wrapped)

    def to_bytes(self) -> bytes:
        body = bytes([_SKESK_VERSION, self.cipher]) + self.s2k.to_bytes() + self.encrypted_session_key
        return encode_packet(PacketTag.SYMMETRIC_KEY_ENCRYPTED_SESSION_KEY, body)

    @classmethod
    def parse(cls, body: bytes) -> "SymmetricKeyPacket":
        if len(body) < 4:
            msg = f"SKESK body too short: {len(body)} bytes"
            raise MalformedPacketError(msg, tag=PacketTag.SYMMETRIC_KEY_ENCRYPTED_SESSION_KEY)
        if body[0] != _SKESK_VERSION:
            msg = f"Unsupported SKESK version: {body[0]}"
            raise MalformedPacketError(msg, tag=PacketTag.SYMMETRIC_KEY_ENCRYPTED_SESSION_KEY)
        cipher = from_code(SymmetricAlgorithm, body[1], "symmetric-cipher")
        s2k, consumed = S2K.parse(body[2:])
        return cls(cipher=cipher, s2k=s2k, encrypted_session_key=body[2 + consumed :])

    def unwrap(self, passphrase: str) -> SessionKey:
        """
        Recover the session key with ``passphrase``.

        Raises:
            SessionKeyError: If the decrypted key is inconsistent, usually a wrong passphrase.
        """
        derived = SessionKey(
            algorithm=self.cipher,
            key_data=self.s2k.derive(passphrase, self.cipher),
        )
        if not self.encrypted_session_key:
            return derived

        decryptor = new_cfb_decryptor(derived)
        plain = decryptor.update(self.encrypted_session_key) + decryptor.finalize()
        try:
            algorithm = from_code(SymmetricAlgorithm, plain[0], "symmetric-cipher")
            return SessionKey(algorithm=algorithm, key_data=plain[1:])
        except (UnknownAlgorithmError, ValueError) as e:
            raise SessionKeyError("Failed to unwrap passphrase-protected session key") from e


@dataclass(frozen=True, kw_only=True)
class PublicKeyPacket:
    """
    Version 3 PKESK packet, kept raw for the public-key backend.

    Attributes:
        recipient_key_id: Upper-case hex key id the session key is encrypted to.
        algorithm: Public-key algorithm code.
        body: Packet body as read.
    """

    recipient_key_id: str
    algorithm: int
    body: bytes

    @classmethod
    def parse(cls, body: bytes) -> "PublicKeyPacket":
        if len(body) < _MIN_PKESK_BODY_LENGTH:
            msg = f"PKESK body too short: {len(body)} bytes"
            raise MalformedPacketError(msg, tag=PacketTag.PUBLIC_KEY_ENCRYPTED_SESSION_KEY)
        if body[0] != _PKESK_VERSION:
            msg = f"Unsupported PKESK version: {body[0]}"
            raise MalformedPacketError(msg, tag=PacketTag.PUBLIC_KEY_ENCRYPTED_SESSION_KEY)
        return cls(recipient_key_id=body[1:9].hex().upper(), algorithm=body[9], body=body)

    def to_bytes(self) -> bytes:
        return encode_packet(PacketTag.PUBLIC_KEY_ENCRYPTED_SESSION_KEY, self.body)
