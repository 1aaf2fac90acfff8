from datetime import datetime, timezone

from pgp_message.models.crypto import LiteralFormat
from pgp_message.models.message import Message


def test_message_defaults_to_no_layers() -> None:
    message = Message(
        format=LiteralFormat.BINARY,
        filename="data.bin",
        mtime=datetime(2024, 1, 1, tzinfo=timezone.utc),
        data=b"payload",
    )

    assert message.compress is None
    assert message.cipher is None
    assert message.encrypted_for is None
