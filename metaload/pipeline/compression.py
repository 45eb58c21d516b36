"""
Metaload Compression Layer
Filename suffix picks the decoder: .gz, .zstd or none.
"""
import gzip
from enum import Enum
from typing import BinaryIO

import zstandard as zstd

from ..errors import DecodeInitError


class Compression(Enum):
    NONE = ''
    GZIP = '.gz'
    ZSTD = '.zstd'

    @classmethod
    def from_path(cls, path: str) -> 'Compression':
        if path.endswith(cls.GZIP.value):
            return cls.GZIP
        if path.endswith(cls.ZSTD.value):
            return cls.ZSTD
        return cls.NONE


MAGIC = {
    Compression.GZIP: b'\x1f\x8b',
    Compression.ZSTD: b'\x28\xb5\x2f\xfd',
}

# 0x184D2A50..0x184D2A5F, little endian; the decoder steps over these frames
ZSTD_SKIPPABLE_TAIL = b'\x2a\x4d\x18'


def has_compression_suffix(path: str) -> bool:
    return Compression.from_path(path) is not Compression.NONE


def _is_skippable_zstd(kind: Compression, head: bytes) -> bool:
    return (kind is Compression.ZSTD and len(head) == 4
            and head[0] & 0xF0 == 0x50 and head[1:] == ZSTD_SKIPPABLE_TAIL)


def _check_magic(fp: BinaryIO, kind: Compression, source: str):
    """Peek at the leading bytes of a seekable stream and rewind"""
    magic = MAGIC[kind]
    start = fp.tell()
    head = fp.read(len(magic))
    fp.seek(start)
    if head != magic and not _is_skippable_zstd(kind, head):
        raise DecodeInitError(
            f"{source} is not a valid {kind.name.lower()} stream (bad magic bytes)",
            path=source
        )


def wrap_decompressor(fp: BinaryIO, kind: Compression, source: str = '<stream>'):
    """
    Put a decoder over fp. The decoder never closes fp;
    for Compression.NONE the stream itself is returned.
    """
    if kind is Compression.NONE:
        return fp

    _check_magic(fp, kind, source)

    if kind is Compression.GZIP:
        return gzip.GzipFile(fileobj=fp, mode='rb')
    if kind is Compression.ZSTD:
        return zstd.ZstdDecompressor().stream_reader(fp, read_across_frames=True, closefd=False)
    raise ValueError(f"unknown compression: {kind}")


__all__ = ["Compression", "has_compression_suffix", "wrap_decompressor"]
