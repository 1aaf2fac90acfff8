"""
ASCII armor: radix-64 framing of a binary packet stream with a CRC-24 checksum.
"""

import base64
import warnings
from collections.abc import Iterable
from dataclasses import dataclass, field

from pgpy.errors import PGPError
from pgpy.types import Armorable

from pgp_message.exceptions import MalformedPacketError

MESSAGE_LABEL = "PGP MESSAGE"

CRC24_INIT = 0xB704CE
_CRC24_POLY = 0x1864CFB
LINE_BYTES = 48  # 64 base64 characters per line


def _crc24_table() -> list[int]:
    table = []
    for index in range(256):
        crc = index << 16
        for _ in range(8):
            crc <<= 1
            if crc & 0x1000000:
                crc ^= _CRC24_POLY
        table.append(crc & 0xFFFFFF)
    return table


_CRC24_TABLE = _crc24_table()


def crc24(data: bytes, crc: int = CRC24_INIT) -> int:
    """OpenPGP CRC-24, optionally continuing from a previous value."""
    for byte in data:
        crc = ((crc << 8) & 0xFFFFFF) ^ _CRC24_TABLE[((crc >> 16) ^ byte) & 0xFF]
    return crc


def _checksum_line(crc: int) -> bytes:
    return b"=" + base64.b64encode(crc.to_bytes(3, "big")) + b"\n"


def begin_lines(label: str = MESSAGE_LABEL, headers: Iterable[tuple[str, str]] = ()) -> bytes:
    """Armor header line, optional `Name: value` headers and the separating blank line."""
    lines = [f"-----BEGIN {label}-----\n"]
    lines += [f"{name}: {value}\n" for name, value in headers]
    lines.append("\n")
    return "".join(lines).encode("ascii")


def encode_lines(data: bytes) -> bytes:
    """Base64 body lines, 64 characters each except possibly the last."""
    return b"".join(
        base64.b64encode(data[i : i + LINE_BYTES]) + b"\n"
        for i in range(0, len(data), LINE_BYTES)
    )


def end_lines(crc: int, label: str = MESSAGE_LABEL) -> bytes:
    """Checksum line and armor tail line."""
    return _checksum_line(crc) + f"-----END {label}-----\n".encode("ascii")


@dataclass(frozen=True, kw_only=True)
class ArmorBlock:
    """A decoded armored block."""

    label: str
    headers: dict[str, str] = field(default_factory=dict)
    data: bytes = b""


def is_armored(head: bytes) -> bool:
    """Whether the first bytes of an input look like an armored block."""
    return head.lstrip().startswith(b"-----BEGIN PGP")


def dearmor(text: bytes | str) -> ArmorBlock:
    """
    Decode the first armored block in ``text`` with pgpy's armor parser.

    Raises:
        MalformedPacketError: If the framing, base64 or checksum is invalid.
    """
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            parsed = Armorable.ascii_unarmor(text)
    except (ValueError, TypeError, PGPError) as e:
        msg = f"Invalid armor: {e}"
        raise MalformedPacketError(msg) from e
    if parsed["magic"] is None:
        raise MalformedPacketError("No armored block found")

    data = bytes(parsed["body"])
    if Armorable.crc24(bytearray(data)) != parsed["crc"]:
        raise MalformedPacketError("Armor checksum mismatch")
    return ArmorBlock(
        label=f"PGP {parsed['magic']}",
        headers=dict(parsed["headers"] or {}),
        data=data,
    )
