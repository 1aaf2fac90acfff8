"""
Decoded message model.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pgp_message.models.crypto import CompressionAlgorithm, LiteralFormat, SymmetricAlgorithm


@dataclass(frozen=True, kw_only=True)
class Message:
    """
    One literal payload recovered from a message.

    Attributes:
        format: Literal data format.
        filename: Filename recorded by the sender.
        mtime: Modification time recorded by the sender (UTC).
        data: Payload stream while reducing; bytes or str once materialized.
        compress: Compression algorithm of the enclosing compressed packet, if any.
        cipher: Symmetric algorithm of the enclosing encrypted packet, if any.
        encrypted_for: Key id of the recipient key that unlocked the message, if any.
    """

    format: LiteralFormat
    filename: str
    mtime: datetime
    data: Any
    compress: CompressionAlgorithm | None = None
    cipher: SymmetricAlgorithm | None = None
    encrypted_for: str | None = None
