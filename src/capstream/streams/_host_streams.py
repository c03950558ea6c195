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

"""Host filesystem streaming implementations.

Provides ReadStream and WriteStream, readable and writable primitives backed
by raw OS file descriptors.

Opening never happens inside the constructor. When an asyncio event loop is
running the open is scheduled with ``loop.call_soon``; otherwise it happens on
the first read, write or end. Either way a successful open emits
``open(fd)`` followed by ``ready``, and a failed open is reported on the
``error`` event without ever raising from the constructor.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Mapping
from typing import cast, override

from ._native import Readable, Writable, WriteCallback
from ._options import DEFAULT_HIGH_WATER_MARK, DEFAULT_MODE, open_flags

__all__ = [
    "ReadStream",
    "WriteStream",
    "create_read_stream",
    "create_write_stream",
]


def _schedule_open(callback: Callable[[], None]) -> None:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return  # no loop: opened lazily by the first I/O call
    _ = loop.call_soon(callback)


class ReadStream(Readable):
    """Readable stream over a host file.

    Attributes:
        path: Path being read, or None when reading from a caller's ``fd``.
        fd: Open descriptor; None before open and after close.
        flags: Flag string the file is opened with.
        bytes_read: Bytes read from the descriptor so far.
    """

    def __init__(
        self,
        path: str | None,
        *,
        flags: str = "r",
        mode: int = DEFAULT_MODE,
        fd: int | None = None,
        encoding: str | None = None,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
        autoclose: bool = True,
    ) -> None:
        super().__init__(encoding=encoding, high_water_mark=high_water_mark)
        self.path = path
        self.fd = fd
        self.flags = flags
        self.mode = mode
        self.autoclose = autoclose
        self.bytes_read = 0
        self._flag_bits = open_flags(flags)
        self._opened = False
        _schedule_open(self._open)

    def _open(self) -> None:
        if self._opened or self._destroyed:
            return
        self._opened = True
        if self.fd is None:
            try:
                self.fd = os.open(cast(str, self.path), self._flag_bits, self.mode)
            except OSError as error:
                self.destroy(error)
                return
        _ = self.emit("open", self.fd)
        _ = self.emit("ready")

    @override
    def _read(self, size: int) -> None:
        self._open()
        if self._destroyed or self.fd is None:
            return
        try:
            data = os.read(self.fd, size)
        except OSError as error:
            self.destroy(error)
            return
        self.bytes_read += len(data)
        _ = self.push(data if data else None)

    @override
    def _after_end(self) -> None:
        if self.autoclose:
            self.destroy()

    @override
    def _destroy(self) -> None:
        fd, self.fd = self.fd, None
        if fd is not None and self.autoclose:
            os.close(fd)

    def __repr__(self) -> str:
        return f"<ReadStream path={self.path!r} fd={self.fd!r}>"


class WriteStream(Writable):
    """Writable stream over a host file.

    Every chunk is written with ``os.write`` until fully persisted before the
    write is acknowledged, so bytes land in the file in write order.

    Attributes:
        path: Path being written, or None when writing to a caller's ``fd``.
        fd: Open descriptor; None before open and after close.
        flags: Flag string the file is opened with.
    """

    def __init__(
        self,
        path: str | None,
        *,
        flags: str = "w",
        mode: int = DEFAULT_MODE,
        fd: int | None = None,
        encoding: str | None = None,
        high_water_mark: int = DEFAULT_HIGH_WATER_MARK,
        autoclose: bool = True,
    ) -> None:
        super().__init__(encoding=encoding, high_water_mark=high_water_mark)
        self.path = path
        self.fd = fd
        self.flags = flags
        self.mode = mode
        self.autoclose = autoclose
        self._flag_bits = open_flags(flags)
        self._opened = False
        _schedule_open(self._open)

    def _open(self) -> None:
        if self._opened or self._destroyed:
            return
        self._opened = True
        if self.fd is None:
            try:
                self.fd = os.open(cast(str, self.path), self._flag_bits, self.mode)
            except OSError as error:
                self.destroy(error)
                return
        _ = self.emit("open", self.fd)
        _ = self.emit("ready")

    @override
    def _write(self, chunk: bytes, encoding: str | None, callback: WriteCallback) -> None:
        self._open()
        if self._errored is not None or self.fd is None:
            callback(self._errored)
            return
        view = memoryview(chunk)
        try:
            while view:
                view = view[os.write(self.fd, view) :]
        except OSError as error:
            callback(error)
            return
        callback()

    @override
    def _final(self, callback: WriteCallback) -> None:
        self._open()
        callback(self._errored)

    @override
    def _after_finish(self) -> None:
        if self.autoclose:
            self.destroy()

    @override
    def _destroy(self) -> None:
        fd, self.fd = self.fd, None
        if fd is not None and self.autoclose:
            os.close(fd)

    def __repr__(self) -> str:
        return f"<WriteStream path={self.path!r} fd={self.fd!r}>"


def _native_kwargs(options: Mapping[str, object], default_flags: str) -> dict[str, object]:
    return {
        "flags": options.get("flags") or default_flags,
        "mode": options.get("mode", DEFAULT_MODE),
        "fd": options.get("fd"),
        "encoding": options.get("encoding"),
        "high_water_mark": options.get("high_water_mark", DEFAULT_HIGH_WATER_MARK),
        "autoclose": options.get("autoclose", True),
    }


def create_read_stream(path: str | None, options: Mapping[str, object]) -> ReadStream:
    """Create a ReadStream for ``path`` (or ``options["fd"]``)."""
    return ReadStream(path, **_native_kwargs(options, "r"))  # pyright: ignore[reportArgumentType]


def create_write_stream(path: str | None, options: Mapping[str, object]) -> WriteStream:
    """Create a WriteStream for ``path`` (or ``options["fd"]``)."""
    return WriteStream(path, **_native_kwargs(options, "w"))  # pyright: ignore[reportArgumentType]
