"""
Metaload Key Loader
Resolves an RSA private key reference into a data encryptor.
The passphrase only ever comes from the environment.
"""
import os
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from ..errors import KeyResolutionError, PassphraseRequiredError
from ..utils.logger import get_logger
from .encryptor import Algorithm, DataEncryptor, RSAEncryptor

PEM_PREFIX = '-----BEGIN'
DEFAULT_PASSPHRASE_ENV = 'METALOAD_RSA_PASSPHRASE'


def read_key_material(key_ref: str) -> bytes:
    """Inline PEM is used as-is, anything else is a path to a PEM file"""
    if key_ref.lstrip().startswith(PEM_PREFIX):
        return key_ref.encode('utf-8')
    try:
        return Path(key_ref).read_bytes()
    except OSError as e:
        raise KeyResolutionError(f"failed to read private key {key_ref}: {e}", path=key_ref) from e


def pem_is_encrypted(pem: bytes) -> bool:
    """
    True when the first PEM block carries a passphrase.
    Covers legacy OpenSSL headers (Proc-Type: 4,ENCRYPTED) and PKCS#8
    'ENCRYPTED PRIVATE KEY' blocks.
    """
    text = pem.decode('utf-8', errors='replace')
    in_block = False
    for line in text.splitlines():
        line = line.strip()
        if not in_block:
            if line.startswith(PEM_PREFIX):
                if 'ENCRYPTED' in line:
                    return True
                in_block = True
            continue
        if not line or line.startswith('-----END'):
            break
        if ':' not in line:
            # base64 body reached, headers are over
            break
        name, _, value = line.partition(':')
        if name.strip() == 'Proc-Type' and 'ENCRYPTED' in value:
            return True
    return False


class KeyLoader:
    def __init__(self, passphrase_env: str = DEFAULT_PASSPHRASE_ENV, logger=None):
        self.passphrase_env = passphrase_env
        self.logger = get_logger(logger)

    def load(self, key_ref: str, algorithm=Algorithm.AES256GCM_RSA) -> DataEncryptor:
        algo = Algorithm.parse(algorithm)
        pem = read_key_material(key_ref)
        passphrase = os.environ.get(self.passphrase_env, '')

        encrypted = pem_is_encrypted(pem)
        # Must fail here, before any crypto call, so the user sees what to set
        if encrypted and not passphrase:
            raise PassphraseRequiredError(self.passphrase_env)

        try:
            private_key = load_pem_private_key(pem, password=passphrase.encode() if encrypted else None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise KeyResolutionError(f"parse rsa: {e}") from e

        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise KeyResolutionError(f"parse rsa: expected an RSA private key, got {type(private_key).__name__}")

        self.logger.debug(f"Loaded RSA private key ({private_key.key_size} bits) for {algo.value}")
        return DataEncryptor(RSAEncryptor(private_key), algo)


__all__ = ["KeyLoader", "read_key_material", "pem_is_encrypted"]
