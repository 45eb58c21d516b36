"""
Metaload Stream Composer
Builds one readable stream that undoes encryption, then compression.
"""
import io
import os

from ..crypto.encryptor import Algorithm
from ..crypto.keys import KeyLoader
from ..errors import DecodeInitError, SourceNotFoundError
from ..storage.file_storage import EncryptedStorage, create_storage
from ..utils.logger import get_logger
from .compression import Compression, wrap_decompressor


class ComposedStream(io.RawIOBase):
    """
    Owns both layers. Reads come from the compression layer; close()
    closes it, then the base layer unless both are the same object.
    """

    def __init__(self, compression_layer, base_layer):
        super().__init__()
        self.compression_layer = compression_layer
        self.base_layer = base_layer

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            return self.readall()
        return self.compression_layer.read(size)

    def readinto(self, buffer) -> int:
        data = self.compression_layer.read(len(buffer))
        n = len(data)
        buffer[:n] = data
        return n

    def close(self):
        if self.closed:
            return
        try:
            try:
                self.compression_layer.close()
            finally:
                if self.base_layer is not self.compression_layer:
                    self.base_layer.close()
        finally:
            super().close()


class StreamComposer:
    def __init__(self, key_loader: KeyLoader = None, logger=None):
        self.logger = get_logger(logger)
        self.key_loader = key_loader or KeyLoader(logger=self.logger)

    def open(self, src: str, key: str = None, algorithm=Algorithm.AES256GCM_RSA) -> ComposedStream:
        """
        Args:
            src: backup path; a .gz/.zstd suffix selects the decoder
            key: RSA private key (inline PEM or path), None for plain sources
            algorithm: envelope algorithm the backup was sealed with
        """
        if key:
            base = self._open_encrypted(src, key, algorithm)
        else:
            base = self._open_plain(src)

        kind = Compression.from_path(src)
        try:
            layer = wrap_decompressor(base, kind, source=src)
        except Exception:
            base.close()
            raise

        self.logger.debug(f"Opened {src} [encrypted={bool(key)}, compression={kind.name.lower()}]")
        return ComposedStream(compression_layer=layer, base_layer=base)

    def _open_plain(self, src: str):
        try:
            return open(src, 'rb')
        except OSError as e:
            raise SourceNotFoundError(f"failed to open {src}: {e}", path=src) from e

    def _open_encrypted(self, src: str, key: str, algorithm):
        encryptor = self.key_loader.load(key, algorithm)

        try:
            os.stat(src)
        except OSError as e:
            raise SourceNotFoundError(f"failed to stat {src}: {e}", path=src) from e

        abs_path = os.path.abspath(src)
        storage = create_storage('file', os.path.dirname(abs_path))
        blob = EncryptedStorage(storage, encryptor)
        try:
            return blob.get(os.path.basename(abs_path), 0, -1)
        except DecodeInitError as e:
            raise DecodeInitError(f"failed to decrypt {src}: {e}", path=src) from e


__all__ = ["ComposedStream", "StreamComposer"]
