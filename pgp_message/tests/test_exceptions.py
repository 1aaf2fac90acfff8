from pgp_message.exceptions import (
    DecryptionError,
    EncryptionError,
    IntegrityError,
    InvalidEncryptorError,
    MalformedPacketError,
    NoEncryptorsError,
    NoMatchingKeyError,
    PgpMessageError,
    TooManyPassphrasesError,
    UnknownAlgorithmError,
    UnsupportedAlgorithmError,
)


def test_pgp_message_error_str_without_context() -> None:
    error = PgpMessageError("Something failed")

    assert str(error) == "Something failed"


def test_pgp_message_error_str_with_context() -> None:
    error = PgpMessageError("Failed", key_id="ABCD", attempt=3)

    assert "Failed" in str(error)
    assert "key_id='ABCD'" in str(error)
    assert "attempt=3" in str(error)


def test_encryption_errors_share_base() -> None:
    assert issubclass(InvalidEncryptorError, EncryptionError)
    assert issubclass(TooManyPassphrasesError, EncryptionError)
    assert issubclass(NoEncryptorsError, EncryptionError)


def test_decryption_errors_share_base() -> None:
    assert issubclass(NoMatchingKeyError, DecryptionError)
    assert issubclass(IntegrityError, DecryptionError)
    assert issubclass(DecryptionError, PgpMessageError)


def test_encryptor_errors_have_default_messages() -> None:
    assert str(TooManyPassphrasesError()) == "Only one passphrase encryptor is supported"
    assert str(NoEncryptorsError()) == "Cannot encrypt data stream without encryptors"


def test_unsupported_algorithm_error_carries_kind_and_value() -> None:
    error = UnsupportedAlgorithmError("No cipher", kind="symmetric-cipher", value=10)

    assert isinstance(error, UnknownAlgorithmError)
    assert error.kind == "symmetric-cipher"
    assert error.value == 10


def test_malformed_packet_error_carries_tag() -> None:
    error = MalformedPacketError("Bad packet", tag=11)

    assert error.tag == 11
    assert "tag=11" in str(error)
