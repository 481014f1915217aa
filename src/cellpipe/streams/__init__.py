from .channel import (
    InputStream,
    OutputStream,
    UninitializedInputStream,
    UninitializedOutputStream,
    empty_stream,
    unlimited_streams,
)

__all__ = [
    "InputStream",
    "OutputStream",
    "UninitializedInputStream",
    "UninitializedOutputStream",
    "empty_stream",
    "unlimited_streams",
]
