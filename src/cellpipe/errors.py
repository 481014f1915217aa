class CellpipeError(Exception):
    """Base class for every recoverable error raised by cellpipe."""


class ArgumentError(CellpipeError):
    """
    Raised when the arguments handed to a command are not valid.
    This covers wrong arity, wrong value kind for a named option and malformed
    sub-syntax such as a broken ``name:type`` column descriptor.
    """


class CastError(CellpipeError):
    """Raised when a cell can not be converted into the requested type."""


class UnimplementedConversionError(CastError):
    """Raised when the (source, target) pair is missing from the conversion table"""

    def __init__(self, message: str = "Unimplemented conversion"):
        super().__init__(message)


class SchemaError(CellpipeError):
    """Raised when a stream schema is misused or a row does not fit its schema."""


class StreamError(CellpipeError):
    pass


class ChannelClosedError(StreamError):
    """Raised by a producer when the consumer side of its stream has been dropped."""


class EndOfStream(StreamError):
    """Terminal signal of a stream: the producer side is closed and the queue is empty."""


class InvalidStreamUseError(StreamError):
    """
    Raised when a live stream is used in a way that would break its single
    ownership, e.g. cloning an Output cell or draining it twice.
    """

    def __init__(self, message: str = "Invalid use of stream"):
        super().__init__(message)


class UnhashableCellError(TypeError):
    """
    Raised when hashing a cell whose type is not hashable.

    This is a programming error, not a runtime condition, and therefore does not
    derive from CellpipeError. Check ``cell.cell_type.is_hashable`` first.
    """
