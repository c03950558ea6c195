# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Push/pull stream primitives.

These classes provide the readable, writable, duplex and transform building
blocks that the capability-tagged streams wrap. Callers supply the
implementation functions; the primitives own buffering, lifecycle state and
event emission.

Implementation functions receive the stream as their first argument:

- ``read(stream, size)`` pushes up to ``size`` bytes with ``stream.push()``
  and ``stream.push(None)`` at end of data.
- ``write(stream, chunk, encoding, callback)`` consumes ``chunk`` and calls
  ``callback()`` (or ``callback(error)``) once it is handled.
- ``final(stream, callback)`` runs after the last write is acknowledged.
- ``transform(stream, chunk, encoding, callback)`` may call
  ``callback(None, data)`` to push output.
- ``flush(stream, callback)`` runs before a transform's readable side ends.

Events: ``data``, ``end``, ``finish``, ``error``, ``close`` (plus ``open`` and
``ready`` on the file-backed subclasses).

All delivery is synchronous on the calling thread. Errors raised inside an
implementation are reported on the ``error`` event, stored on
``stream.errored`` and raised again by the ``read()``/``write()``/``end()``
call that encounters them.
"""

from __future__ import annotations

import codecs
from collections import deque
from collections.abc import Callable, Iterator
from typing import Protocol, Self, override

from ..runtime.logging import StructuredLogger, get_logger
from ._events import EventEmitter
from ._options import DEFAULT_ENCODING, DEFAULT_HIGH_WATER_MARK

__all__ = [
    "Duplex",
    "FinalImpl",
    "FlushImpl",
    "ReadImpl",
    "Readable",
    "Transform",
    "TransformCallback",
    "TransformImpl",
    "Writable",
    "WriteCallback",
    "WriteImpl",
]

logger: StructuredLogger = get_logger(__name__, context={"component": "native_stream"})

type Chunk = bytes | bytearray | memoryview | str


class WriteCallback(Protocol):
    """Acknowledgement passed to write and final implementations."""

    def __call__(self, error: BaseException | None = None, /) -> None: ...


class TransformCallback(Protocol):
    """Acknowledgement passed to transform and flush implementations."""

    def __call__(
        self, error: BaseException | None = None, data: Chunk | None = None, /
    ) -> None: ...


type ReadImpl = Callable[["Readable", int], object]
type WriteImpl = Callable[["Writable", bytes, str | None, WriteCallback], object]
type FinalImpl = Callable[["Writable", WriteCallback], object]
type TransformImpl = Callable[
    ["Transform", bytes, str | None, TransformCallback], object
]
type FlushImpl = Callable[["Transform", TransformCallback], object]


class _StreamBase(EventEmitter):
    """Lifecycle shared by both stream sides: destroy, error channel, ``with``."""

    def __init__(self) -> None:
        super().__init__()
        self._destroyed = False
        self._errored: BaseException | None = None

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def errored(self) -> BaseException | None:
        """First error reported on this stream, if any."""
        return self._errored

    def destroy(self, error: BaseException | None = None) -> None:
        """Release resources, report ``error`` and emit ``close``.

        Safe to call more than once; only the first call has any effect.
        """
        if self._destroyed:
            return
        self._destroyed = True
        try:
            self._destroy()
        except OSError as close_error:
            error = error if error is not None else close_error
        if error is not None:
            self._report(error)
        _ = self.emit("close")

    def _destroy(self) -> None:
        """Release underlying resources. Subclasses override."""

    def _report(self, error: BaseException) -> None:
        if self._errored is None:
            self._errored = error
        if not self.emit("error", error):
            logger.warning(
                "Stream error without an error listener.",
                event="stream.error_unhandled",
                context={"stream": repr(self), "error": repr(error)},
            )

    def _raise_if_errored(self) -> None:
        if self._errored is not None:
            raise self._errored

    def _check_open(self) -> None:
        self._raise_if_errored()
        if self._destroyed:
            msg = "I/O operation on closed stream"
            raise ValueError(msg)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.destroy()


class Readable(_StreamBase):
    """Pull-based readable stream fed through ``push()``.

    ``read(size)`` asks the implementation for more data until ``size`` bytes
    are buffered, the implementation pushes ``None``, or a pull produces
    nothing (a source that has no data available yet).
    """

    def __init__(
        self,
        *,
        read: ReadImpl | None = None,
        encoding: str | None = None,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
    ) -> None:
        super().__init__()
        self._init_readable(read, encoding, high_water_mark)

    def _init_readable(
        self,
        read: ReadImpl | None,
        encoding: str | None,
        high_water_mark: int,
    ) -> None:
        self._read_impl = read
        self._read_encoding = encoding
        self._decoder = (
            codecs.getincrementaldecoder(encoding)() if encoding is not None else None
        )
        self._read_buffer: deque[bytes] = deque()
        self._buffered = 0
        self._pushed_eof = False
        self._end_emitted = False
        self.readable_high_water_mark = high_water_mark

    @property
    def readable_ended(self) -> bool:
        """True once ``end`` has been emitted."""
        return self._end_emitted

    @property
    def readable_length(self) -> int:
        """Bytes buffered and not yet read."""
        return self._buffered

    def _read(self, size: int) -> None:
        if self._read_impl is None:
            msg = f"{type(self).__name__} has no read implementation"
            raise NotImplementedError(msg)
        _ = self._read_impl(self, size)

    def push(self, chunk: Chunk | None) -> bool:
        """Append ``chunk`` to the read buffer; ``None`` signals end of data.

        Returns:
            True while the buffer is below the high-water mark.
        """
        if chunk is None:
            self._pushed_eof = True
            return False
        if self._pushed_eof:
            self._report(ValueError("stream.push() after EOF"))
            return False
        if isinstance(chunk, str):
            data = chunk.encode(self._read_encoding or DEFAULT_ENCODING)
        else:
            data = bytes(chunk)
        if data:
            self._read_buffer.append(data)
            self._buffered += len(data)
        return self._buffered < self.readable_high_water_mark

    def read(self, size: int = -1) -> bytes | str:
        """Read up to ``size`` bytes (all remaining data when negative).

        Returns ``str`` when the stream has an encoding. Returns an empty
        value at end of data, or when the source has nothing available.
        """
        self._raise_if_errored()
        if self._end_emitted:
            return self._decode(b"")
        self._check_open()
        while True:
            self._fill(size)
            self._raise_if_errored()
            data = self._take(size)
            if not data:
                break
            result = self._decode(data)
            if result:
                _ = self.emit("data", result)
                self._maybe_end()
                return result
        self._maybe_end()
        return self._decode(b"")

    def chunks(self, size: int = DEFAULT_HIGH_WATER_MARK) -> Iterator[bytes | str]:
        """Iterate over chunks of at most ``size`` bytes until no data is left."""
        while True:
            chunk = self.read(size)
            if not chunk:
                return
            yield chunk

    def __iter__(self) -> Iterator[bytes | str]:
        return self.chunks(self.readable_high_water_mark)

    def pipe[W: Writable](self, destination: W, *, end: bool = True) -> W:
        """Drain this stream into ``destination`` and end it unless ``end=False``."""
        for chunk in self:
            _ = destination.write(chunk)
        if end:
            _ = destination.end()
        return destination

    def _fill(self, size: int) -> None:
        while (
            not self._pushed_eof
            and not self._destroyed
            and (size < 0 or self._buffered < size)
        ):
            before = self._buffered
            try:
                self._read(size if size > 0 else self.readable_high_water_mark)
            except Exception as error:
                self.destroy(error)
                raise
            if self._buffered == before and not self._pushed_eof:
                break

    def _take(self, size: int) -> bytes:
        if size < 0 or size >= self._buffered:
            data = b"".join(self._read_buffer)
            self._read_buffer.clear()
            self._buffered = 0
            return data
        parts: list[bytes] = []
        remaining = size
        while remaining:
            head = self._read_buffer[0]
            if len(head) <= remaining:
                parts.append(self._read_buffer.popleft())
                remaining -= len(head)
            else:
                parts.append(head[:remaining])
                self._read_buffer[0] = head[remaining:]
                remaining = 0
        self._buffered -= size
        return b"".join(parts)

    def _decode(self, data: bytes) -> bytes | str:
        if self._decoder is None:
            return data
        return self._decoder.decode(data, final=self._pushed_eof and not self._buffered)

    def _maybe_end(self) -> None:
        if self._pushed_eof and not self._buffered and not self._end_emitted:
            self._end_emitted = True
            _ = self.emit("end")
            self._after_end()

    def _after_end(self) -> None:
        """Hook run once after ``end`` is emitted."""


class Writable(_StreamBase):
    """Writable stream that hands each chunk to a write implementation.

    ``finish`` is emitted once ``end()`` has been called and every write has
    been acknowledged through its callback.
    """

    def __init__(
        self,
        *,
        write: WriteImpl | None = None,
        final: FinalImpl | None = None,
        encoding: str | None = None,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
    ) -> None:
        super().__init__()
        self._init_writable(write, final, encoding, high_water_mark)

    def _init_writable(
        self,
        write: WriteImpl | None,
        final: FinalImpl | None,
        encoding: str | None,
        high_water_mark: int,
    ) -> None:
        self._write_impl = write
        self._final_impl = final
        self._write_encoding = encoding
        self._pending_writes = 0
        self._pending_bytes = 0
        self._bytes_written = 0
        self._ending = False
        self._finishing = False
        self._finished = False
        self.writable_high_water_mark = high_water_mark

    @property
    def bytes_written(self) -> int:
        """Bytes acknowledged by the write implementation."""
        return self._bytes_written

    @property
    def writable_ended(self) -> bool:
        """True once ``end()`` has been called."""
        return self._ending

    @property
    def writable_finished(self) -> bool:
        """True once ``finish`` has been emitted."""
        return self._finished

    def _write(self, chunk: bytes, encoding: str | None, callback: WriteCallback) -> None:
        if self._write_impl is None:
            msg = f"{type(self).__name__} has no write implementation"
            raise NotImplementedError(msg)
        _ = self._write_impl(self, chunk, encoding, callback)

    def _final(self, callback: WriteCallback) -> None:
        if self._final_impl is None:
            callback()
            return
        _ = self._final_impl(self, callback)

    def write(
        self,
        chunk: Chunk,
        encoding: str | None = None,
        callback: WriteCallback | None = None,
    ) -> bool:
        """Write ``chunk``; ``str`` chunks are encoded first.

        Returns:
            True while unacknowledged bytes stay below the high-water mark.

        Raises:
            ValueError: If the stream was ended or destroyed.
            TypeError: If ``chunk`` is neither ``str`` nor bytes-like.
        """
        self._check_open()
        if self._ending:
            msg = "write after end"
            raise ValueError(msg)
        if isinstance(chunk, str):
            encoding = encoding or self._write_encoding or DEFAULT_ENCODING
            data = chunk.encode(encoding)
        elif isinstance(chunk, (bytes, bytearray, memoryview)):
            encoding = None
            data = bytes(chunk)
        else:
            msg = f"write() argument must be str or bytes-like, not {type(chunk).__name__}"
            raise TypeError(msg)

        size = len(data)
        self._pending_writes += 1
        self._pending_bytes += size
        acknowledged = False

        def acknowledge(error: BaseException | None = None, /) -> None:
            nonlocal acknowledged
            if acknowledged:
                self._report(ValueError("write callback called multiple times"))
                return
            acknowledged = True
            self._pending_writes -= 1
            self._pending_bytes -= size
            if error is not None:
                self.destroy(error)
            else:
                self._bytes_written += size
            if callback is not None:
                callback(error)
            if error is None:
                self._maybe_finish()

        try:
            self._write(data, encoding, acknowledge)
        except Exception as error:
            if acknowledged:
                self.destroy(error)
            else:
                acknowledge(error)
        self._raise_if_errored()
        return self._pending_bytes < self.writable_high_water_mark

    def end(
        self,
        chunk: Chunk | None = None,
        encoding: str | None = None,
        callback: Callable[[], object] | None = None,
    ) -> Self:
        """Signal that no more data will be written.

        ``callback`` is registered as a one-shot ``finish`` listener.
        """
        if chunk is not None:
            _ = self.write(chunk, encoding)
        if callback is not None:
            _ = self.once("finish", callback)
        if not self._ending:
            self._check_open()
            self._ending = True
            self._maybe_finish()
        self._raise_if_errored()
        return self

    def _maybe_finish(self) -> None:
        if (
            not self._ending
            or self._finishing
            or self._pending_writes
            or self._destroyed
        ):
            return
        self._finishing = True

        def done(error: BaseException | None = None, /) -> None:
            if error is not None:
                self.destroy(error)
                return
            self._finished = True
            _ = self.emit("finish")
            self._after_finish()

        try:
            self._final(done)
        except Exception as error:
            self.destroy(error)

    def _after_finish(self) -> None:
        """Hook run once after ``finish`` is emitted."""


class Duplex(Readable, Writable):
    """Stream with independent readable and writable sides."""

    def __init__(
        self,
        *,
        read: ReadImpl | None = None,
        write: WriteImpl | None = None,
        final: FinalImpl | None = None,
        encoding: str | None = None,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
    ) -> None:
        _StreamBase.__init__(self)
        self._init_readable(read, encoding, high_water_mark)
        self._init_writable(write, final, encoding, high_water_mark)


class Transform(Duplex):
    """Duplex whose readable side is produced from what is written to it."""

    def __init__(
        self,
        *,
        transform: TransformImpl | None = None,
        flush: FlushImpl | None = None,
        encoding: str | None = None,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
    ) -> None:
        super().__init__(encoding=encoding, high_water_mark=high_water_mark)
        self._transform_impl = transform
        self._flush_impl = flush

    @override
    def _read(self, size: int) -> None:
        # Output only arrives through writes.
        return

    @override
    def _write(self, chunk: bytes, encoding: str | None, callback: WriteCallback) -> None:
        if self._transform_impl is None:
            msg = f"{type(self).__name__} has no transform implementation"
            raise NotImplementedError(msg)

        def done(error: BaseException | None = None, data: Chunk | None = None, /) -> None:
            if error is None and data is not None:
                _ = self.push(data)
            callback(error)

        _ = self._transform_impl(self, chunk, encoding, done)

    @override
    def _final(self, callback: WriteCallback) -> None:
        def done(error: BaseException | None = None, data: Chunk | None = None, /) -> None:
            if error is None:
                if data is not None:
                    _ = self.push(data)
                _ = self.push(None)
            callback(error)

        if self._flush_impl is None:
            done()
            return
        _ = self._flush_impl(self, done)
