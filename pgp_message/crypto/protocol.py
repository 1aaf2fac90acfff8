"""
Public-key backend protocol definition.

This defines the interface for wrapping session keys to public keys, allowing
different implementations (pgpy, python-gnupg, a custom parser) to be swapped
without changing the layer writers or the decoder.
"""

from typing import Any, Protocol, runtime_checkable

from pgp_message.models.credentials import PrivateIdentity, PublicIdentity
from pgp_message.models.crypto import SessionKey
from pgp_message.packets.session_keys import PublicKeyPacket


@runtime_checkable
class PublicKeyBackend(Protocol):
    """Abstract interface for public-key session key operations."""

    def key_ids(self, key: Any) -> list[str]:
        """
        List the key ids a key can receive messages under.

        Args:
            key: Backend key object.

        Returns:
            Upper-case hex key ids, primary key first.
        """
        ...

    def wrap_session_key(self, identity: PublicIdentity, session_key: SessionKey) -> bytes:
        """
        Encrypt a session key to a recipient.

        Args:
            identity: Recipient public identity.
            session_key: Session key protecting the message body.

        Returns:
            A serialized PKESK packet.

        Raises:
            EncryptionError: If the key cannot be used for encryption.
        """
        ...

    def unwrap_session_key(self, identity: PrivateIdentity, packet: PublicKeyPacket) -> SessionKey:
        """
        Decrypt a session key encrypted to one of the identity's keys.

        Args:
            identity: Private identity holding the recipient key.
            packet: Parsed PKESK packet.

        Returns:
            The recovered session key.

        Raises:
            SessionKeyError: If the key is locked or decryption fails.
        """
        ...
