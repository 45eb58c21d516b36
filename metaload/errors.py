"""
Metaload Errors
Every failure the decode pipeline and the backup inspector can raise.
None of them are retried: they are either configuration mistakes
or data-integrity problems.
"""
from typing import Optional


class MetaloadError(Exception):
    """Base class for all metaload failures"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class KeyResolutionError(MetaloadError):
    """Private key could not be read, parsed or bound to an algorithm"""


class PassphraseRequiredError(MetaloadError):
    """Private key is passphrase-encrypted but no passphrase was provided"""

    def __init__(self, env_name: str):
        super().__init__(
            f"passphrase is required to private key, please try again after "
            f"setting the '{env_name}' environment variable"
        )
        self.env_name = env_name


class SourceNotFoundError(MetaloadError):
    pass


class DecodeInitError(MetaloadError):
    """Decryption or decompression layer could not be set up"""


class CreateTargetError(MetaloadError):
    def __init__(self, message: str, path: Optional[str] = None, target: Optional[str] = None):
        super().__init__(message, path)
        self.target = target


class CopyError(MetaloadError):
    def __init__(self, message: str, path: Optional[str] = None, target: Optional[str] = None):
        super().__init__(message, path)
        self.target = target


class MalformedFooterError(MetaloadError):
    pass


class MetaEngineError(MetaloadError):
    """The metadata store refused or failed a load"""


class UnsupportedMetaURLError(MetaEngineError, ValueError):
    """META-URL names an engine this build does not ship"""


class SegmentReadError(MetaloadError):
    def __init__(self, message: str, path: Optional[str] = None, offset: Optional[int] = None):
        super().__init__(message, path)
        self.offset = offset


__all__ = [
    "MetaloadError",
    "KeyResolutionError",
    "PassphraseRequiredError",
    "SourceNotFoundError",
    "DecodeInitError",
    "CreateTargetError",
    "CopyError",
    "MalformedFooterError",
    "SegmentReadError",
    "MetaEngineError",
    "UnsupportedMetaURLError",
]
