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

"""Capability tags for raw streams.

A :class:`TaggedStream` pairs a raw stream with a fixed :class:`Capability`.
Operations inside the capability delegate to the raw stream; operations
outside it raise :class:`~capstream.errors.CapabilityViolationError` at the
call site. The raw stream's own byte-level behavior is left untouched.

Example::

    from capstream.streams import tag_input

    stream = tag_input(io.BytesIO(b"payload"))
    stream.read()         # b"payload"
    stream.make_writer()  # raises CapabilityViolationError
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from enum import Flag, auto
from typing import Any, Protocol, Self, cast, runtime_checkable

from ..errors import CapabilityViolationError, InvalidArgumentError
from ._events import EventHandler
from ._options import DEFAULT_HIGH_WATER_MARK

__all__ = [
    "Capability",
    "SupportsRead",
    "SupportsWrite",
    "TaggedStream",
    "tag_duplex",
    "tag_input",
    "tag_output",
]


class Capability(Flag):
    """Operations a tagged stream supports."""

    READ = auto()
    WRITE = auto()
    DUPLEX = READ | WRITE


@runtime_checkable
class SupportsRead(Protocol):
    """Raw stream that can be read from."""

    def read(self, size: int = -1, /) -> Any: ...  # noqa: ANN401


@runtime_checkable
class SupportsWrite(Protocol):
    """Raw stream that can be written to."""

    def write(self, data: Any, /) -> Any: ...  # noqa: ANN401


_STREAM_NAMES = {
    Capability.READ: "InputStream",
    Capability.WRITE: "OutputStream",
}


class TaggedStream[S]:
    """A raw stream with a capability tag fixed at construction.

    Read-side operations (``read``, ``chunks``, iteration, ``pipe``,
    ``make_reader``, ``make_input_stream``) require :attr:`Capability.READ`.
    Write-side operations (``write``, ``end``, ``make_writer``,
    ``make_output_stream``) require :attr:`Capability.WRITE`. Event
    subscription and closing are available on every stream.
    """

    def __init__(self, stream: S, capability: Capability) -> None:
        super().__init__()
        self._stream = stream
        self._capability = capability

    @property
    def stream(self) -> S:
        """The underlying raw stream."""
        return self._stream

    @property
    def capability(self) -> Capability:
        return self._capability

    @property
    def readable(self) -> bool:
        return Capability.READ in self._capability

    @property
    def writable(self) -> bool:
        return Capability.WRITE in self._capability

    def _require(self, capability: Capability, operation: str) -> None:
        if capability not in self._capability:
            msg = f"Cannot open {self!r} as an {_STREAM_NAMES[capability]}."
            raise CapabilityViolationError(msg, stream=self, operation=operation)

    # Factory operations: allowed ones hand back the stream itself.

    def make_reader(self) -> Self:
        self._require(Capability.READ, "make_reader")
        return self

    def make_input_stream(self) -> Self:
        self._require(Capability.READ, "make_input_stream")
        return self

    def make_writer(self) -> Self:
        self._require(Capability.WRITE, "make_writer")
        return self

    def make_output_stream(self) -> Self:
        self._require(Capability.WRITE, "make_output_stream")
        return self

    # Read side

    def read(self, size: int = -1) -> Any:  # noqa: ANN401
        """Read up to ``size`` bytes from the raw stream."""
        self._require(Capability.READ, "read")
        return self._raw_read(size)

    def chunks(self, size: int = DEFAULT_HIGH_WATER_MARK) -> Iterator[Any]:
        """Iterate over chunks of at most ``size`` bytes until exhausted."""
        self._require(Capability.READ, "chunks")
        return self._iter_chunks(size)

    def __iter__(self) -> Iterator[Any]:
        return self.chunks()

    def pipe[T: TaggedStream[Any]](self, destination: T, *, end: bool = True) -> T:
        """Copy every chunk into ``destination`` and end it unless ``end=False``."""
        self._require(Capability.READ, "pipe")
        destination._require(Capability.WRITE, "pipe")
        for chunk in self._iter_chunks(DEFAULT_HIGH_WATER_MARK):
            _ = destination.write(chunk)
        if end:
            destination.end()
        return destination

    def _raw_read(self, size: int) -> Any:  # noqa: ANN401
        return cast(SupportsRead, self._stream).read(size)

    def _iter_chunks(self, size: int) -> Iterator[Any]:
        while True:
            chunk = self._raw_read(size)
            if not chunk:
                return
            yield chunk

    # Write side

    def write(self, chunk: Any, *args: Any) -> Any:  # noqa: ANN401
        """Write ``chunk`` to the raw stream."""
        self._require(Capability.WRITE, "write")
        return cast(Any, self._stream).write(chunk, *args)

    def end(
        self,
        chunk: Any = None,  # noqa: ANN401
        encoding: str | None = None,
        callback: Callable[[], object] | None = None,
    ) -> None:
        """Finish writing, flushing ``chunk`` first when given.

        ``encoding`` and ``callback`` are forwarded to the raw stream's
        ``end``. Raw streams without an ``end`` method are closed instead,
        after which ``callback`` is called.
        """
        self._require(Capability.WRITE, "end")
        end = getattr(self._stream, "end", None)
        if end is not None:
            _ = end(chunk, encoding, callback)
            return
        if chunk is not None:
            if isinstance(chunk, str) and encoding is not None:
                chunk = chunk.encode(encoding)
            _ = cast(SupportsWrite, self._stream).write(chunk)
        self._close_raw()
        if callback is not None:
            _ = callback()

    # Lifecycle

    def on(self, event: str, handler: EventHandler) -> Self:
        _ = cast(Any, self._stream).on(event, handler)
        return self

    def once(self, event: str, handler: EventHandler) -> Self:
        _ = cast(Any, self._stream).once(event, handler)
        return self

    def off(self, event: str, handler: EventHandler) -> bool:
        return bool(cast(Any, self._stream).off(event, handler))

    def close(self) -> None:
        """Destroy (or close) the raw stream."""
        self._close_raw()

    def _close_raw(self) -> None:
        destroy = getattr(self._stream, "destroy", None)
        if destroy is not None:
            _ = destroy()
            return
        close = getattr(self._stream, "close", None)
        if close is not None:
            _ = close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._capability.name} {self._stream!r}>"


def _check_untagged(stream: object, *required: type) -> None:
    if isinstance(stream, TaggedStream):
        msg = f"{stream!r} already carries a capability tag."
        raise InvalidArgumentError(msg)
    for protocol in required:
        if not isinstance(stream, protocol):
            operation = "read" if protocol is SupportsRead else "write"
            msg = f"{type(stream).__name__} object does not support {operation}()."
            raise InvalidArgumentError(msg)


def tag_input[S](stream: S) -> TaggedStream[S]:
    """Tag ``stream`` as input-only."""
    _check_untagged(stream, SupportsRead)
    return TaggedStream(stream, Capability.READ)


def tag_output[S](stream: S) -> TaggedStream[S]:
    """Tag ``stream`` as output-only."""
    _check_untagged(stream, SupportsWrite)
    return TaggedStream(stream, Capability.WRITE)


def tag_duplex[S](stream: S) -> TaggedStream[S]:
    """Tag ``stream`` as readable and writable."""
    _check_untagged(stream, SupportsRead, SupportsWrite)
    return TaggedStream(stream, Capability.DUPLEX)
