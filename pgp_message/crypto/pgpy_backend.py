"""
Public-key backend implementation using pgpy library.

pgpy does the public-key arithmetic; this module only decides which key or
subkey to use and moves session keys in and out of PKESK packets.
"""

import binascii
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager

import pgpy
import structlog
from pgpy.constants import KeyFlags
from pgpy.packet import Packet
from pgpy.packet.packets import PKESessionKeyV3

from pgp_message.crypto.algorithms import from_code
from pgp_message.exceptions import EncryptionError, SessionKeyError, UnknownAlgorithmError
from pgp_message.models.credentials import PrivateIdentity, PublicIdentity
from pgp_message.models.crypto import SessionKey, SymmetricAlgorithm
from pgp_message.packets.session_keys import PublicKeyPacket

logger = structlog.get_logger(__name__)

_ENCRYPTION_FLAGS = {KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage}


class PgpyBackend:
    """
    Public-key backend using pgpy.

    Example:
        backend = PgpyBackend()
        packet = backend.wrap_session_key(PublicIdentity(key.pubkey), session_key)
    """

    @staticmethod
    def key_ids(key: pgpy.PGPKey) -> list[str]:
        return [str(key.fingerprint.keyid)] + [
            str(subkey.fingerprint.keyid) for subkey in key.subkeys.values()
        ]

    def wrap_session_key(self, identity: PublicIdentity, session_key: SessionKey) -> bytes:
        encryption_key = self._find_encryption_key(identity)
        key_id = str(encryption_key.fingerprint.keyid)
        try:
            pkesk = PKESessionKeyV3()
            pkesk.encrypter = bytearray(binascii.unhexlify(key_id))
            pkesk.pkalg = encryption_key.key_algorithm
            pkesk.encrypt_sk(encryption_key._key, session_key.algorithm, session_key.key_data)
        except Exception as e:
            msg = f"Failed to wrap session key: {e}"
            raise EncryptionError(msg, key_id=key_id) from e
        logger.debug("Wrapped session key", key_id=key_id)
        return bytes(pkesk)

    def unwrap_session_key(self, identity: PrivateIdentity, packet: PublicKeyPacket) -> SessionKey:
        decryption_key = self._find_decryption_key(identity.key, packet.recipient_key_id)
        try:
            pkesk = Packet(bytearray(packet.to_bytes()))
            if not isinstance(pkesk, PKESessionKeyV3):
                msg = f"Unexpected session key packet {type(pkesk).__name__}"
                raise SessionKeyError(msg)
            with self.unlock_key(identity):
                algorithm_id, key_data = pkesk.decrypt_sk(decryption_key._key)
            algorithm = from_code(SymmetricAlgorithm, int(algorithm_id), "symmetric-cipher")
            return SessionKey(algorithm=algorithm, key_data=bytes(key_data))
        except SessionKeyError:
            raise
        except (UnknownAlgorithmError, ValueError) as e:
            msg = f"Recovered session key is invalid: {e}"
            raise SessionKeyError(msg, key_id=packet.recipient_key_id) from e
        except Exception as e:
            msg = f"Failed to extract session key: {e}"
            raise SessionKeyError(msg, key_id=packet.recipient_key_id) from e

    @staticmethod
    @contextmanager
    def unlock_key(identity: PrivateIdentity) -> Iterator[pgpy.PGPKey]:
        """
        Unlock a protected key with the identity's passphrase for the duration of the block.

        Raises:
            SessionKeyError: If the key is protected and no (or a wrong) passphrase is known.
        """
        key = identity.key
        with ExitStack() as stack:
            if key.is_protected and not key.is_unlocked:
                if identity.passphrase is None:
                    msg = "Private key is locked and no passphrase was given"
                    raise SessionKeyError(msg, key_id=identity.key_id)
                try:
                    stack.enter_context(key.unlock(identity.passphrase))
                except Exception as e:
                    msg = f"Failed to unlock key: {e}"
                    raise SessionKeyError(msg, key_id=identity.key_id) from e
            yield key

    @staticmethod
    def _find_encryption_key(identity: PublicIdentity) -> pgpy.PGPKey:
        """First subkey flagged for encryption, else the primary key if it is."""
        key = identity.key
        for candidate in (*key.subkeys.values(), key):
            try:
                flags = set(candidate._get_key_flags())
            except StopIteration:
                continue
            if flags & _ENCRYPTION_FLAGS:
                return candidate
        msg = "Key has no encryption-capable key or subkey"
        raise EncryptionError(msg, key_id=identity.key_id)

    @staticmethod
    def _find_decryption_key(key: pgpy.PGPKey, key_id: str) -> pgpy.PGPKey:
        for candidate in (key, *key.subkeys.values()):
            if str(candidate.fingerprint.keyid) == key_id:
                return candidate
        msg = f"Key {key.fingerprint.keyid} holds no key with id {key_id}"
        raise SessionKeyError(msg)
