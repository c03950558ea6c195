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

"""In-memory streaming implementations.

Provides BufferReadStream, an input stream that serves slices of a bytes
buffer through a read cursor, and BufferWriteStream, an output stream that
accumulates written chunks and joins them into one buffer on ``finish``.
Neither touches the filesystem.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Unpack

from ..errors import InvalidArgumentError
from ..runtime.logging import StructuredLogger, get_logger
from ._capability import Capability, TaggedStream
from ._native import Readable, Writable, WriteCallback
from ._options import DEFAULT_HIGH_WATER_MARK, StreamOptions, check_options

__all__ = [
    "BufferReadStream",
    "BufferWriteStream",
]

logger: StructuredLogger = get_logger(__name__, context={"component": "buffer_stream"})


class BufferReadStream(TaggedStream[Readable]):
    """Input stream that reads from an in-memory buffer.

    Each pull of ``size`` bytes pushes ``source[position:position + size]`` and
    advances the cursor; once the cursor reaches the end the next pull signals
    end of data. The source is copied, so later mutation of a ``bytearray``
    does not leak into the stream.

    Example::

        stream = BufferReadStream(b"hello world")
        stream.read(5)   # b"hello"
        stream.read()    # b" world"
        stream.read()    # b""
    """

    def __init__(
        self,
        source: bytes | bytearray | memoryview,
        **options: Unpack[StreamOptions],
    ) -> None:
        if "read" in options:
            msg = "BufferReadStream provides its own read implementation; read is not accepted."
            raise InvalidArgumentError(msg)
        if not isinstance(source, (bytes, bytearray, memoryview)):
            msg = f"source must be a bytes-like buffer, got {type(source).__name__}"
            raise InvalidArgumentError(msg)
        check_options(options)
        self._source = bytes(source)
        self._offset = 0
        native = Readable(
            read=self._pull,
            encoding=options.get("encoding"),
            high_water_mark=options.get("high_water_mark", DEFAULT_HIGH_WATER_MARK),
        )
        super().__init__(native, Capability.READ)

    @property
    def size(self) -> int:
        """Length of the source buffer."""
        return len(self._source)

    @property
    def position(self) -> int:
        """Bytes handed to the stream so far."""
        return min(self._offset, len(self._source))

    def _pull(self, stream: Readable, size: int) -> None:
        if self._offset < len(self._source):
            _ = stream.push(self._source[self._offset : self._offset + size])
            self._offset += size
        else:
            _ = stream.push(None)


class BufferWriteStream(TaggedStream[Writable]):
    """Output stream that collects written chunks in memory.

    Chunks are kept in write order and joined into a single buffer when the
    stream finishes (after ``end()``). ``on_complete`` then receives that
    buffer exactly once.

    Example::

        sink = BufferWriteStream(print)
        sink.write(b"hello ")
        sink.end(b"world")   # prints b'hello world'
        sink.to_string()     # 'hello world'
    """

    def __init__(
        self,
        on_complete: Callable[[bytes], object] | None = None,
        **options: Unpack[StreamOptions],
    ) -> None:
        if on_complete is not None and not callable(on_complete):
            msg = f"on_complete must be callable, got {type(on_complete).__name__}"
            raise InvalidArgumentError(msg)
        check_options(options)
        self._chunks: list[bytes] = []
        self._buffer: bytes | None = None
        self._on_complete = on_complete
        self._encoding = options.get("encoding")
        native = Writable(
            write=self._accumulate,
            encoding=self._encoding,
            high_water_mark=options.get("high_water_mark", DEFAULT_HIGH_WATER_MARK),
        )
        _ = native.once("finish", self._materialize)
        super().__init__(native, Capability.WRITE)

    def _accumulate(
        self,
        stream: Writable,
        chunk: bytes,
        encoding: str | None,
        callback: WriteCallback,
    ) -> None:
        self._chunks.append(chunk)
        callback()

    def _materialize(self) -> None:
        buffer = b"".join(self._chunks)
        count = len(self._chunks)
        self._chunks.clear()
        self._buffer = buffer
        logger.debug(
            "Buffer stream finished.",
            event="buffer_stream.finished",
            context={"chunks": count, "size": len(buffer)},
        )
        if self._on_complete is not None:
            _ = self._on_complete(buffer)

    def to_bytes(self) -> bytes | None:
        """The joined buffer, or None before the stream has finished."""
        return self._buffer

    def to_string(self) -> str | None:
        """Text form of the joined buffer, or None before the stream has finished."""
        if self._buffer is None:
            return None
        return self._buffer.decode(self._encoding or "utf-8")
