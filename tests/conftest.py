import io

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from metaload.backup.format import BackupWriter
from metaload.crypto.encryptor import DataEncryptor, RSAEncryptor
from metaload.storage.file_storage import EncryptedStorage, FileStorage
from metaload.utils.logger import setup_logger, close_logger

PASSPHRASE_ENV = "METALOAD_RSA_PASSPHRASE"


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def plain_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def encrypted_pem(rsa_key) -> str:
    # Legacy OpenSSL layout: "Proc-Type: 4,ENCRYPTED" header
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.BestAvailableEncryption(b"s3cret"),
    ).decode()


@pytest.fixture(scope="session")
def pkcs8_encrypted_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.BestAvailableEncryption(b"s3cret"),
    ).decode()


@pytest.fixture
def key_file(tmp_path, plain_pem):
    path = tmp_path / "keys" / "backup.pem"
    path.parent.mkdir()
    path.write_text(plain_pem)
    return str(path)


@pytest.fixture(autouse=True)
def no_passphrase(monkeypatch):
    monkeypatch.delenv(PASSPHRASE_ENV, raising=False)


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def logger(log_stream):
    log = setup_logger(verbose=True, stream=log_stream, name="metaload.test")
    yield log
    close_logger(log)


@pytest.fixture
def seal(rsa_key):
    """Write data at path the way an encrypted backup is stored"""
    def _seal(path, data: bytes, algorithm="aes256gcm-rsa", key=None):
        encryptor = DataEncryptor(RSAEncryptor(key or rsa_key), algorithm)
        EncryptedStorage(FileStorage(str(path.parent)), encryptor).put(path.name, data)
        return str(path)
    return _seal


def write_backup(path, segments: dict) -> dict:
    """segments: name -> entries; returns name -> SegmentInfo"""
    infos = {}
    with open(path, "wb") as f:
        with BackupWriter(f) as writer:
            for name, entries in segments.items():
                infos[name] = writer.write_segment(name, entries)
    return infos


@pytest.fixture
def sample_segments():
    return {
        "format": [{"name": "myjfs", "uuid": "1234", "secret_key": "abc"}],
        "node": [{"inode": i, "type": "file", "length": i * 10} for i in range(1, 6)],
        "edge": [{"parent": 1, "name": f"f{i}", "inode": i} for i in range(2, 6)],
        "counters": [{"name": "nextInode", "value": 6}],
    }
