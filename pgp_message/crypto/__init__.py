"""
Cryptographic building blocks for pgp_message.

This module provides:
- The algorithm directory (symbolic names <-> OpenPGP codes)
- OpenPGP CFB transforms and MDC digests
- Streaming compression codecs

The public-key backend lives in :mod:`pgp_message.crypto.pgpy_backend`.
"""

from pgp_message.crypto.algorithms import (
    canonical_name,
    code_to_name,
    name_to_code,
    resolve,
    resolve_cipher,
    resolve_compression,
    resolve_format,
)
from pgp_message.crypto.primitives import (
    OpenPgpCfbDecryptor,
    OpenPgpCfbEncryptor,
    is_supported_cipher,
    new_compressor,
    new_decompressor,
    quick_check,
)

__all__ = [
    "name_to_code",
    "code_to_name",
    "canonical_name",
    "resolve",
    "resolve_cipher",
    "resolve_compression",
    "resolve_format",
    "OpenPgpCfbEncryptor",
    "OpenPgpCfbDecryptor",
    "is_supported_cipher",
    "new_compressor",
    "new_decompressor",
    "quick_check",
]
