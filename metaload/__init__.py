"""
Metaload
Decode encrypted/compressed metadata backups and inspect binary backup containers.
"""
from .errors import MetaloadError

__version__ = "0.1.0"

__all__ = ["MetaloadError", "__version__"]
