from .compression import Compression
from .reader import ComposedStream, StreamComposer
from .converter import Converter

__all__ = [
    "Compression",
    "ComposedStream",
    "StreamComposer",
    "Converter"
]
