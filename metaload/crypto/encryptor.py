"""
Metaload Data Encryptor
RSA-wrapped AEAD envelope used for encrypted backup objects.

Envelope layout:
    key_len (2 bytes, big-endian) | nonce_len (1 byte) |
    RSA-OAEP(data key) | nonce | AEAD ciphertext + tag
"""
import os
import struct
from enum import Enum

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..errors import DecodeInitError, KeyResolutionError


class Algorithm(str, Enum):
    AES256GCM_RSA = 'aes256gcm-rsa'
    CHACHA20_RSA = 'chacha20-rsa'

    @classmethod
    def parse(cls, value) -> 'Algorithm':
        try:
            return cls(value)
        except ValueError:
            choices = ', '.join(a.value for a in cls)
            raise KeyResolutionError(f"unsupported encrypt algorithm {value!r} (expected one of: {choices})")


_AEAD = {
    Algorithm.AES256GCM_RSA: AESGCM,
    Algorithm.CHACHA20_RSA: ChaCha20Poly1305,
}

_HEADER = struct.Struct('>HB')
DATA_KEY_SIZE = 32
NONCE_SIZE = 12


class RSAEncryptor:
    """Wraps and unwraps per-object data keys with an RSA key pair"""

    LABEL = b'keys'

    def __init__(self, private_key: rsa.RSAPrivateKey):
        self.private_key = private_key

    def _padding(self):
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=hashes.SHA256()),
            algorithm=hashes.SHA256(),
            label=self.LABEL
        )

    def encrypt(self, plaintext: bytes) -> bytes:
        return self.private_key.public_key().encrypt(plaintext, self._padding())

    def decrypt(self, ciphertext: bytes) -> bytes:
        return self.private_key.decrypt(ciphertext, self._padding())


class DataEncryptor:
    def __init__(self, key_encryptor: RSAEncryptor, algorithm):
        self.key_encryptor = key_encryptor
        self.algorithm = Algorithm.parse(algorithm)
        self._aead = _AEAD[self.algorithm]

    def encrypt(self, data: bytes) -> bytes:
        key = os.urandom(DATA_KEY_SIZE)
        nonce = os.urandom(NONCE_SIZE)
        cipher_key = self.key_encryptor.encrypt(key)
        sealed = self._aead(key).encrypt(nonce, data, None)
        return _HEADER.pack(len(cipher_key), len(nonce)) + cipher_key + nonce + sealed

    def decrypt(self, data: bytes) -> bytes:
        if len(data) < _HEADER.size:
            raise DecodeInitError("encrypted object is too short")

        key_len, nonce_len = _HEADER.unpack_from(data)
        body = data[_HEADER.size:]
        if len(body) < key_len + nonce_len:
            raise DecodeInitError("encrypted object header is truncated")

        cipher_key = body[:key_len]
        nonce = body[key_len:key_len + nonce_len]
        sealed = body[key_len + nonce_len:]

        try:
            key = self.key_encryptor.decrypt(cipher_key)
        except ValueError as e:
            raise DecodeInitError(f"failed to unwrap data key: {e}") from e

        try:
            return self._aead(key).decrypt(nonce, sealed, None)
        except (InvalidTag, ValueError) as e:
            raise DecodeInitError(f"failed to decrypt object ({self.algorithm.value})") from e


__all__ = ["Algorithm", "RSAEncryptor", "DataEncryptor"]
