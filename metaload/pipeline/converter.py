"""
Metaload Converter
Materializes an encrypted and/or compressed backup into a plain sibling
file once, and reuses that file on every later run.
"""
import os
import shutil
import zlib

import zstandard as zstd

from ..crypto.encryptor import Algorithm
from ..errors import CopyError, CreateTargetError
from ..utils.logger import get_logger
from .compression import has_compression_suffix
from .reader import StreamComposer


def plain_path_for(path: str) -> str:
    """Drop the outermost suffix: meta.bin.gz -> meta.bin"""
    head, name = os.path.split(path)
    dot = name.rfind('.')
    if dot <= 0:
        return path
    return os.path.join(head, name[:dot])


class Converter:
    CHUNK_SIZE = 65536

    def __init__(self, composer: StreamComposer = None, chunk_size: int = None, logger=None):
        self.logger = get_logger(logger)
        self.composer = composer or StreamComposer(logger=self.logger)
        self.chunk_size = chunk_size or self.CHUNK_SIZE

    def materialize(self, path: str, key: str = None, algorithm=Algorithm.AES256GCM_RSA) -> str:
        """
        Return a path whose content is the fully decoded backup.

        Plain uncompressed sources come back unchanged. An existing plain
        sibling is trusted as-is; a failed copy leaves its partial output
        behind, so remove it before retrying.
        """
        if not key and not has_compression_suffix(path):
            return path

        target = plain_path_for(path)
        if target == path:
            raise CreateTargetError(
                f"cannot derive a plain backup name from {path} (no suffix to strip)",
                path=path, target=target
            )

        if os.path.exists(target):
            self.logger.info(f"plain backup {target} already exists, skip conversion")
            return target

        with self.composer.open(path, key, algorithm) as reader:
            try:
                writer = open(target, 'xb')
            except OSError as e:
                raise CreateTargetError(
                    f"failed to create plain backup {target}: {e}",
                    path=path, target=target
                ) from e

            with writer:
                try:
                    shutil.copyfileobj(reader, writer, self.chunk_size)
                except (OSError, EOFError, zlib.error, zstd.ZstdError) as e:
                    raise CopyError(
                        f"failed to convert {path} to {target}: {e}",
                        path=path, target=target
                    ) from e

        self.logger.info(f"converted backup {path} to {target}")
        return target


__all__ = ["Converter", "plain_path_for"]
