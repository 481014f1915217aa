"""
Typed, unbounded channels carrying rows between pipeline stages.

``unlimited_streams()`` returns a producer/consumer pair. Both ends start out
uninitialized: the producing command settles the schema exactly once through
``UninitializedOutputStream.initialize``; the consumer's ``initialize`` blocks
until that has happened and then hands out the single reading handle.

Rows are delivered in emission order. Sending never blocks, but fails once the
consumer has been closed, which is the only cancellation signal a producer
receives. Closing the producer makes the consumer report EndOfStream after the
queued rows.
"""

import logging
import queue
import threading
import weakref
from collections.abc import Iterable, Iterator
from typing import Self

from cellpipe.data.rows import Row, Rows
from cellpipe.errors import (
    ChannelClosedError,
    EndOfStream,
    InvalidStreamUseError,
    SchemaError,
    StreamError,
)
from cellpipe.hashing import hash_schema
from cellpipe.types import CellType, ColumnType, Schema, format_schema

logger = logging.getLogger(__name__)

# queued after the last row once the producer side is closed
_END_OF_STREAM = object()


class _Channel:
    """State shared by the two ends of one stream."""

    def __init__(self, label: str | None = None):
        self.label = label
        self.rows: queue.SimpleQueue = queue.SimpleQueue()
        self.lock = threading.Lock()
        self.schema: Schema | None = None
        self.schema_settled = threading.Event()
        self.sender_closed = False
        self.receiver_closed = False
        self.consumer_taken = False

    def close_sender(self) -> bool:
        with self.lock:
            if self.sender_closed:
                return False
            self.sender_closed = True
        self.rows.put(_END_OF_STREAM)
        # wake up a consumer still waiting for a schema that will never come
        self.schema_settled.set()
        return True

    def close_receiver(self) -> None:
        with self.lock:
            self.receiver_closed = True

    def __str__(self) -> str:
        return self.label or f"stream@{id(self):x}"


class UninitializedOutputStream:
    """Producer side of a stream whose schema has not been decided yet."""

    def __init__(self, channel: _Channel):
        self._channel = channel

    def initialize(self, schema: Iterable[ColumnType]) -> "OutputStream":
        """
        Fix the schema of the stream and return the active producer handle.

        Raises:
            SchemaError: if the schema was already initialized or the producer
                was closed
        """
        columns = tuple(schema)
        channel = self._channel
        with channel.lock:
            if channel.sender_closed:
                raise SchemaError("Can not initialize a closed stream")
            if channel.schema is not None:
                raise SchemaError(
                    f"Stream {channel} already initialized with schema "
                    f"{format_schema(channel.schema)}"
                )
            channel.schema = columns
        channel.schema_settled.set()
        logger.debug(
            f"Initialized {channel} with schema {format_schema(columns)} "
            f"({hash_schema(columns).to_hex()})"
        )
        return OutputStream(channel)

    def close(self) -> None:
        """Drop the producer without ever producing. The consumer sees a SchemaError."""
        if self._channel.close_sender():
            logger.debug(f"Closed {self._channel} before initialization")

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


class OutputStream:
    """Active producer side of a stream."""

    def __init__(self, channel: _Channel):
        self._channel = channel

    @property
    def schema(self) -> Schema:
        assert self._channel.schema is not None
        return self._channel.schema

    @property
    def is_closed(self) -> bool:
        return self._channel.sender_closed

    def send(self, row: Row) -> None:
        """
        Enqueue a row. Never blocks.

        Raises:
            SchemaError: if the row does not fit the stream's schema
            ChannelClosedError: if the consumer side has been dropped; the
                producer should stop working
            StreamError: if this producer was already closed
        """
        row.validate(self.schema)
        channel = self._channel
        with channel.lock:
            if channel.receiver_closed:
                raise ChannelClosedError(f"Consumer of {channel} has been dropped")
            if channel.sender_closed:
                raise StreamError(f"Can not send on closed {channel}")
            channel.rows.put(row)

    def close(self) -> None:
        if self._channel.close_sender():
            logger.debug(f"Closed producer of {self._channel}")

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


class UninitializedInputStream:
    """Consumer side of a stream whose schema may not be settled yet."""

    def __init__(self, channel: _Channel):
        self._channel = channel

    def initialize(self, timeout: float | None = None) -> "InputStream":
        """
        Wait for the producer to settle the schema and return the reading handle.
        A stream has exactly one reader, so this can only succeed once.

        Raises:
            StreamError: if no schema was settled within ``timeout`` seconds
            SchemaError: if the producer was closed without initializing
            InvalidStreamUseError: if the reading handle was already handed out
        """
        channel = self._channel
        if not channel.schema_settled.wait(timeout):
            raise StreamError(f"Timed out waiting for the schema of {channel}")
        with channel.lock:
            if channel.schema is None:
                raise SchemaError(f"Producer of {channel} closed before initializing")
            if channel.consumer_taken:
                raise InvalidStreamUseError()
            channel.consumer_taken = True
        return InputStream(channel)

    def close(self) -> None:
        """Drop the consumer before reading, cancelling the producer."""
        self._channel.close_receiver()
        logger.debug(f"Closed consumer of {self._channel} before initialization")

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


class InputStream:
    """Single reading handle of an initialized stream."""

    def __init__(self, channel: _Channel):
        self._channel = channel
        self._ended = False
        self._materialized = False
        # a handle that is dropped without being closed still cancels the producer
        self._finalizer = weakref.finalize(self, channel.close_receiver)

    @property
    def schema(self) -> Schema:
        assert self._channel.schema is not None
        return self._channel.schema

    @property
    def cell_type(self) -> CellType:
        return CellType.output(self.schema)

    @property
    def label(self) -> str:
        return str(self._channel)

    def recv(self, timeout: float | None = None) -> Row:
        """
        Block until the next row is available.

        Raises:
            EndOfStream: once the producer is closed and every row was read
            StreamError: if no row arrived within ``timeout`` seconds
            InvalidStreamUseError: if this handle was closed
        """
        if self._channel.receiver_closed:
            raise InvalidStreamUseError(f"Can not read from closed {self._channel}")
        if self._ended:
            raise EndOfStream(f"{self._channel} is exhausted")
        try:
            item = self._channel.rows.get(timeout=timeout)
        except queue.Empty:
            raise StreamError(f"Timed out waiting for a row on {self._channel}") from None
        if item is _END_OF_STREAM:
            self._ended = True
            raise EndOfStream(f"{self._channel} is exhausted")
        return item

    def __iter__(self) -> Iterator[Row]:
        while True:
            try:
                yield self.recv()
            except EndOfStream:
                return

    def to_rows(self) -> Rows:
        """
        Drain the stream into a materialized table. Destructive, one time only.

        Raises:
            InvalidStreamUseError: if the stream was already materialized
        """
        if self._materialized:
            raise InvalidStreamUseError()
        self._materialized = True
        rows = list(self)
        logger.debug(f"Materialized {len(rows)} rows from {self._channel}")
        return Rows(self.schema, rows)

    def close(self) -> None:
        """Drop the consumer. The producer's next send fails with ChannelClosedError."""
        self._finalizer()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"InputStream({self._channel}, {format_schema(self.schema)})"


def unlimited_streams(
    label: str | None = None,
) -> tuple[UninitializedOutputStream, UninitializedInputStream]:
    """Create a producer/consumer pair over an unbounded queue."""
    channel = _Channel(label)
    return UninitializedOutputStream(channel), UninitializedInputStream(channel)


def empty_stream(label: str | None = None) -> UninitializedInputStream:
    """A consumer end with an empty schema whose producer is already closed."""
    sender, receiver = unlimited_streams(label)
    sender.initialize(()).close()
    return receiver
