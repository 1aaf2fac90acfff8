import hashlib
import io
import zlib
from datetime import datetime, timezone

import pytest

from pgp_message.crypto.primitives import OpenPgpCfbEncryptor
from pgp_message.exceptions import MalformedPacketError, SessionKeyError, UnknownAlgorithmError
from pgp_message.models.crypto import CompressionAlgorithm, LiteralFormat, SessionKey, SymmetricAlgorithm
from pgp_message.packets.framing import MDC_HEADER, PacketTag, encode_packet
from pgp_message.packets.reader import (
    CompressedPacket,
    EncryptedList,
    LiteralPacket,
    PassphraseProtected,
    read_packets,
)
from pgp_message.packets.session_keys import SymmetricKeyPacket

SESSION_KEY = SessionKey(algorithm=SymmetricAlgorithm.AES_128, key_data=bytes(range(16)))


def _literal(data: bytes, filename: bytes = b"a.txt", fmt: bytes = b"b", timestamp: int = 0) -> bytes:
    body = fmt + bytes([len(filename)]) + filename + timestamp.to_bytes(4, "big") + data
    return encode_packet(PacketTag.LITERAL_DATA, body)


def _seipd(plaintext: bytes, mdc: bool = True) -> bytes:
    encryptor = OpenPgpCfbEncryptor(SESSION_KEY, lambda n: bytes(range(n)))
    tail = b""
    if mdc:
        digest = hashlib.sha1(encryptor.prefix + plaintext + MDC_HEADER).digest()
        tail = MDC_HEADER + digest
    body = encryptor.header + encryptor.update(plaintext + tail) + encryptor.finalize()
    return encode_packet(PacketTag.SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA, b"\x01" + body)


def test_read_packets_yields_literal_with_metadata() -> None:
    source = io.BytesIO(_literal(b"payload", timestamp=1_700_000_000))

    packets = read_packets(source)
    packet = next(packets)

    assert isinstance(packet, LiteralPacket)
    assert packet.format is LiteralFormat.BINARY
    assert packet.filename == "a.txt"
    assert packet.mtime == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
    assert packet.stream.read() == b"payload"
    assert list(packets) == []


def test_read_packets_skips_unread_payload() -> None:
    source = io.BytesIO(_literal(b"first") + _literal(b"second"))

    packets = list(read_packets(source))

    assert len(packets) == 2
    assert packets[1].stream.read() == b""  # type: ignore[union-attr]


def test_read_packets_opens_compressed_data() -> None:
    inner = _literal(b"compressed payload")
    compressor = zlib.compressobj(wbits=zlib.MAX_WBITS)
    body = bytes([CompressionAlgorithm.ZLIB]) + compressor.compress(inner) + compressor.flush()
    source = io.BytesIO(encode_packet(PacketTag.COMPRESSED_DATA, body))

    packet = next(read_packets(source))

    assert isinstance(packet, CompressedPacket)
    assert packet.algorithm is CompressionAlgorithm.ZLIB
    child = next(read_packets(packet.decompress()))
    assert isinstance(child, LiteralPacket)
    assert child.stream.read() == b"compressed payload"


def test_decompress_raises_malformed_on_corrupt_data() -> None:
    body = bytes([CompressionAlgorithm.ZLIB]) + b"not zlib at all"
    packet = next(read_packets(io.BytesIO(encode_packet(PacketTag.COMPRESSED_DATA, body))))

    with pytest.raises(MalformedPacketError, match="Failed to decompress ZLIB"):
        packet.decompress().read()  # type: ignore[union-attr]


def test_read_packets_rejects_unknown_compression() -> None:
    source = io.BytesIO(encode_packet(PacketTag.COMPRESSED_DATA, b"\x6e data"))

    with pytest.raises(UnknownAlgorithmError):
        next(read_packets(source))


def test_read_packets_skips_marker_and_signature_packets() -> None:
    source = io.BytesIO(
        encode_packet(PacketTag.MARKER, b"PGP")
        + encode_packet(PacketTag.ONE_PASS_SIGNATURE, bytes(13))
        + _literal(b"data")
        + encode_packet(PacketTag.SIGNATURE, bytes(20))
    )

    packets = list(read_packets(source))

    assert [type(packet) for packet in packets] == [LiteralPacket]


def test_read_packets_rejects_unexpected_tag() -> None:
    source = io.BytesIO(encode_packet(6, b"public key"))

    with pytest.raises(MalformedPacketError, match="Unexpected packet tag 6"):
        next(read_packets(source))


def test_read_packets_rejects_dangling_session_keys() -> None:
    skesk = SymmetricKeyPacket.build("pw", SESSION_KEY, lambda n: bytes(n))

    with pytest.raises(MalformedPacketError, match="not followed by encrypted data"):
        list(read_packets(io.BytesIO(skesk.to_bytes())))


def test_read_packets_groups_session_keys_with_encrypted_data() -> None:
    skesk = SymmetricKeyPacket.build("pw", SESSION_KEY, lambda n: bytes(n))
    source = io.BytesIO(skesk.to_bytes() + _seipd(_literal(b"secret")))

    packet = next(read_packets(source))

    assert isinstance(packet, EncryptedList)
    assert len(packet.candidates) == 1
    candidate = packet.candidates[0]
    assert isinstance(candidate, PassphraseProtected)
    assert candidate.data is packet.data
    assert packet.data.integrity_protected


def test_decrypted_stream_verifies_mdc() -> None:
    packet = next(read_packets(io.BytesIO(_seipd(_literal(b"secret")))))
    assert isinstance(packet, EncryptedList)

    stream = packet.data.decrypt(SESSION_KEY)

    assert stream.read() == _literal(b"secret")
    assert stream.verify()


def test_decrypted_stream_detects_bad_mdc() -> None:
    message = bytearray(_seipd(_literal(b"secret" * 20)))
    message[-30] ^= 0x01
    packet = next(read_packets(io.BytesIO(bytes(message))))
    assert isinstance(packet, EncryptedList)

    assert not packet.data.decrypt(SESSION_KEY).verify()


def test_decrypted_stream_without_mdc_fails_verification() -> None:
    packet = next(read_packets(io.BytesIO(_seipd(_literal(b"secret"), mdc=False))))
    assert isinstance(packet, EncryptedList)

    assert not packet.data.decrypt(SESSION_KEY).verify()


def test_decrypt_with_wrong_key_fails_quick_check() -> None:
    packet = next(read_packets(io.BytesIO(_seipd(_literal(b"secret")))))
    assert isinstance(packet, EncryptedList)
    wrong_key = SessionKey(algorithm=SymmetricAlgorithm.AES_128, key_data=b"\xee" * 16)

    with pytest.raises(SessionKeyError):
        packet.data.decrypt(wrong_key)


def test_read_packets_rejects_unknown_seipd_version() -> None:
    source = io.BytesIO(encode_packet(PacketTag.SYM_ENCRYPTED_INTEGRITY_PROTECTED_DATA, b"\x02" + bytes(40)))

    with pytest.raises(MalformedPacketError, match="Unsupported SEIPD version: 2"):
        next(read_packets(source))
