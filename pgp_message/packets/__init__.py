"""
OpenPGP packet layer: framing, armor, session key packets and the packet reader.
"""

from pgp_message.packets.armor import ArmorBlock, crc24, dearmor, is_armored
from pgp_message.packets.framing import PacketHeader, PacketTag, PacketWriter, read_header
from pgp_message.packets.reader import (
    CompressedPacket,
    EncryptedData,
    EncryptedList,
    LiteralPacket,
    PassphraseProtected,
    PublicKeyProtected,
    read_packets,
)
from pgp_message.packets.session_keys import S2K, PublicKeyPacket, SymmetricKeyPacket

__all__ = [
    # Framing
    "PacketTag",
    "PacketHeader",
    "PacketWriter",
    "read_header",
    # Armor
    "ArmorBlock",
    "crc24",
    "dearmor",
    "is_armored",
    # Session keys
    "S2K",
    "SymmetricKeyPacket",
    "PublicKeyPacket",
    # Reader
    "LiteralPacket",
    "CompressedPacket",
    "EncryptedData",
    "EncryptedList",
    "PassphraseProtected",
    "PublicKeyProtected",
    "read_packets",
]
