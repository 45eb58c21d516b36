"""
Metaload Backup Inspector
Peek inside a binary metadata backup without loading it.
"""
from typing import List, Optional

from ..backup.format import BakFormat, BackupFooter, Segment
from ..errors import SourceNotFoundError
from ..utils.logger import get_logger

SHOW_ALL_OFFSETS = -1


class Inspector:
    def __init__(self, bak: BakFormat = None, logger=None):
        self.bak = bak or BakFormat()
        self.logger = get_logger(logger)

    def stat(self, path: str, offset: Optional[int] = None) -> List[str]:
        """
        offset None -> summary, -1 -> summary with offsets,
        anything else -> the segment stored at that offset.
        """
        self.logger.info(f"load backup from {path}")
        try:
            fp = open(path, 'rb')
        except OSError as e:
            raise SourceNotFoundError(f"failed to open file {path}: {e}", path=path) from e

        with fp:
            if offset is None or offset == SHOW_ALL_OFFSETS:
                footer = self.bak.read_footer(fp, source=path)
                lines = self.render_summary(footer, with_offset=offset is not None)
            else:
                segment = self.bak.read_segment(fp, offset, source=path)
                lines = self.render_detail(segment)

        self._print(lines)
        return lines

    def render_summary(self, footer: BackupFooter, with_offset: bool = False) -> List[str]:
        rows = sorted(footer.infos.items())

        lines = [f"Backup Version: {footer.version}"]
        if with_offset:
            lines.append('-' * 34)
            lines.append(f"{'Name':<10}| {'Num':<10}| {'Offset':<10}")
            lines.append('-' * 34)
        else:
            lines.append('-' * 23)
            lines.append(f"{'Name':<10}| {'Num':<10}")
            lines.append('-' * 23)

        for name, info in rows:
            line = f"{name:<10}| {str(info.num):<10}|"
            if with_offset:
                line += f" {str(info.offset):<10}"
            lines.append(line)
        return lines

    def render_detail(self, segment: Segment) -> List[str]:
        return [
            f"Segment: {segment.name}",
            f"Value: {segment}",
        ]

    def _print(self, lines: List[str]):
        for line in lines:
            print(line)


__all__ = ["Inspector", "SHOW_ALL_OFFSETS"]
