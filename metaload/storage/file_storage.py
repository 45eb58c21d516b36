"""
Metaload Object Storage
Directory-rooted object access, optionally behind an encryption envelope.
"""
import io
import os
from pathlib import Path
from typing import BinaryIO

from ..errors import SourceNotFoundError


class FileStorage:
    """Objects are plain files below a root directory"""

    def __init__(self, root: str):
        self.root = Path(root)

    def __str__(self):
        return f"file://{self.root}/"

    def _path(self, key: str) -> Path:
        return self.root / key

    def get(self, key: str, offset: int = 0, limit: int = -1) -> BinaryIO:
        """
        Open an object for reading.

        Args:
            key: object name relative to the root
            offset: first byte to return
            limit: number of bytes to return, -1 means to the end
        """
        path = self._path(key)
        try:
            f = open(path, 'rb')
        except OSError as e:
            raise SourceNotFoundError(f"failed to open object {path}: {e}", path=str(path)) from e

        if offset > 0:
            f.seek(offset)
        if limit < 0:
            return f
        with f:
            return io.BytesIO(f.read(limit))

    def put(self, key: str, data: bytes):
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + '.tmp')
        with open(tmp_path, 'wb') as f:
            f.write(data)
        os.replace(tmp_path, path)


class EncryptedStorage:
    """Whole objects are sealed with a DataEncryptor; ranges apply to plaintext"""

    def __init__(self, storage, encryptor):
        self.storage = storage
        self.encryptor = encryptor

    def __str__(self):
        return str(self.storage)

    def get(self, key: str, offset: int = 0, limit: int = -1) -> BinaryIO:
        with self.storage.get(key, 0, -1) as f:
            ciphertext = f.read()
        plaintext = self.encryptor.decrypt(ciphertext)
        end = None if limit < 0 else offset + limit
        return io.BytesIO(plaintext[offset:end])

    def put(self, key: str, data: bytes):
        self.storage.put(key, self.encryptor.encrypt(data))


STORAGE_TYPES = {
    'file': FileStorage,
}


def create_storage(scheme: str, root: str):
    try:
        storage_cls = STORAGE_TYPES[scheme]
    except KeyError:
        raise ValueError(f"unsupported storage type: {scheme}")
    return storage_cls(root)


__all__ = ["FileStorage", "EncryptedStorage", "create_storage"]
