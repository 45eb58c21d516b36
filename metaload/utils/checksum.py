"""
Metaload Checksum Utility
SHA-256 digests guarding the backup trailer.
"""
import hashlib
from typing import Union


def calculate_bytes_digest(data: Union[bytes, str]) -> bytes:
    """
    Calculates the raw SHA-256 digest of a byte string or text string.

    Args:
        data: The input data (bytes or string)

    Returns:
        bytes: The 32-byte digest
    """
    if isinstance(data, str):
        data = data.encode('utf-8')

    sha256_hash = hashlib.sha256()
    sha256_hash.update(data)
    return sha256_hash.digest()


__all__ = ["calculate_bytes_digest"]
