"""
Metaload Backup Format
Binary container of named segments with a trailer index.

Segments are appended as they are produced; the index of
name -> (entry count, offset) is written once, at the end, so a reader
can list or jump to any segment without scanning the body.

Segment record:
    b'MSEG' | name_len (u8) | payload_len (u32) | name | payload (JSON array)
Trailer:
    footer JSON | sha256(footer JSON) (32 bytes) | version (u8) | footer_len (u32) | b'MBAK'
"""
import json
import os
import struct
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, BinaryIO, Dict, List, Mapping

from ..errors import MalformedFooterError, SegmentReadError
from ..utils.checksum import calculate_bytes_digest

SEGMENT_MAGIC = b'MSEG'
FOOTER_MAGIC = b'MBAK'
VERSION = 1

SEGMENT_HEADER = struct.Struct('>4sBL')
TRAILER = struct.Struct('>32sBL4s')


@dataclass(frozen=True)
class SegmentInfo:
    num: int
    offset: int


@dataclass(frozen=True)
class BackupFooter:
    version: int
    infos: Mapping[str, SegmentInfo] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'infos', MappingProxyType(dict(self.infos)))

    def to_json(self) -> bytes:
        doc = {
            'version': self.version,
            'infos': {name: {'num': info.num, 'offset': info.offset} for name, info in self.infos.items()},
        }
        return json.dumps(doc, sort_keys=True).encode('utf-8')


@dataclass
class Segment:
    name: str
    entries: List[Any]

    def __str__(self):
        return json.dumps(self.entries, sort_keys=True, ensure_ascii=False)


def _file_size(fp: BinaryIO) -> int:
    current = fp.tell()
    size = fp.seek(0, os.SEEK_END)
    fp.seek(current)
    return size


class BakFormat:
    def read_footer(self, fp: BinaryIO, source: str = None) -> BackupFooter:
        source = source or getattr(fp, 'name', '<stream>')
        size = _file_size(fp)
        if size < TRAILER.size:
            raise MalformedFooterError(f"{source} is too short to hold a backup footer", path=source)

        fp.seek(size - TRAILER.size)
        digest, version, footer_len, magic = TRAILER.unpack(fp.read(TRAILER.size))
        if magic != FOOTER_MAGIC:
            raise MalformedFooterError(f"{source} is not a metadata backup (bad footer magic)", path=source)
        if version != VERSION:
            raise MalformedFooterError(f"unsupported backup version {version} in {source}", path=source)
        if footer_len > size - TRAILER.size:
            raise MalformedFooterError(f"footer length {footer_len} exceeds file size in {source}", path=source)

        fp.seek(size - TRAILER.size - footer_len)
        footer_bytes = fp.read(footer_len)
        if calculate_bytes_digest(footer_bytes) != digest:
            raise MalformedFooterError(f"footer checksum mismatch in {source}", path=source)

        try:
            doc = json.loads(footer_bytes.decode('utf-8'))
            infos = {
                str(name): SegmentInfo(num=int(info['num']), offset=int(info['offset']))
                for name, info in doc['infos'].items()
            }
            return BackupFooter(version=int(doc['version']), infos=infos)
        except (UnicodeDecodeError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise MalformedFooterError(f"invalid footer in {source}: {e}", path=source) from e

    def read_segment(self, fp: BinaryIO, offset: int, source: str = None) -> Segment:
        source = source or getattr(fp, 'name', '<stream>')
        size = _file_size(fp)
        if offset < 0 or offset + SEGMENT_HEADER.size > size:
            raise SegmentReadError(f"offset {offset} is out of bounds for {source} ({size} bytes)",
                                   path=source, offset=offset)

        fp.seek(offset)
        magic, name_len, payload_len = SEGMENT_HEADER.unpack(fp.read(SEGMENT_HEADER.size))
        if magic != SEGMENT_MAGIC:
            raise SegmentReadError(f"no segment at offset {offset} in {source}", path=source, offset=offset)

        body = fp.read(name_len + payload_len)
        if len(body) != name_len + payload_len:
            raise SegmentReadError(f"truncated segment at offset {offset} in {source}", path=source, offset=offset)

        try:
            name = body[:name_len].decode('utf-8')
            entries = json.loads(body[name_len:].decode('utf-8'))
        except (UnicodeDecodeError, ValueError) as e:
            raise SegmentReadError(f"corrupt segment at offset {offset} in {source}: {e}",
                                   path=source, offset=offset) from e
        if not isinstance(entries, list):
            raise SegmentReadError(f"segment payload at offset {offset} in {source} is not a list",
                                   path=source, offset=offset)
        return Segment(name=name, entries=entries)


class BackupWriter:
    """Single-pass writer: segments first, footer on close()"""

    def __init__(self, fp: BinaryIO):
        self.fp = fp
        self._infos: Dict[str, SegmentInfo] = {}
        self._closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.close()

    def write_segment(self, name: str, entries: List[Any]) -> SegmentInfo:
        if self._closed:
            raise ValueError("backup writer is closed")
        if name in self._infos:
            raise ValueError(f"segment {name!r} already written")

        name_bytes = name.encode('utf-8')
        if not name_bytes or len(name_bytes) > 255:
            raise ValueError(f"segment name must be 1-255 bytes: {name!r}")
        entries = list(entries)
        payload = json.dumps(entries, ensure_ascii=False).encode('utf-8')

        offset = self.fp.tell()
        self.fp.write(SEGMENT_HEADER.pack(SEGMENT_MAGIC, len(name_bytes), len(payload)))
        self.fp.write(name_bytes)
        self.fp.write(payload)

        info = SegmentInfo(num=len(entries), offset=offset)
        self._infos[name] = info
        return info

    def close(self) -> BackupFooter:
        if self._closed:
            raise ValueError("backup writer is closed")
        footer = BackupFooter(version=VERSION, infos=self._infos)
        footer_bytes = footer.to_json()
        self.fp.write(footer_bytes)
        self.fp.write(TRAILER.pack(calculate_bytes_digest(footer_bytes), VERSION, len(footer_bytes), FOOTER_MAGIC))
        self.fp.flush()
        self._closed = True
        return footer


__all__ = [
    "BakFormat",
    "BackupWriter",
    "BackupFooter",
    "SegmentInfo",
    "Segment",
    "SEGMENT_MAGIC",
    "FOOTER_MAGIC",
    "VERSION",
]
