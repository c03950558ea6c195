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

"""Tests for descriptor-backed host file streams."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from capstream.errors import InvalidArgumentError
from capstream.streams import (
    DEFAULT_MODE,
    ReadStream,
    WriteStream,
    create_read_stream,
    create_write_stream,
)

if TYPE_CHECKING:
    from tests.conftest import EventRecorder


class TestReadStream:
    """Reading host files through raw descriptors."""

    def test_opens_lazily_without_event_loop(
        self, tmp_path: Path, recorder: EventRecorder
    ) -> None:
        target = tmp_path / "data.bin"
        _ = target.write_bytes(b"payload")
        stream = ReadStream(str(target))
        recorder.watch(stream, "open", "ready", "end", "close")

        assert stream.fd is None
        assert stream.read() == b"payload"

        assert recorder.names() == ["open", "ready", "end", "close"]
        (fd,) = recorder.args("open")[0]
        assert isinstance(fd, int)
        assert stream.fd is None
        assert stream.bytes_read == len(b"payload")

    def test_open_is_scheduled_on_running_loop(self, tmp_path: Path) -> None:
        target = tmp_path / "data.txt"
        _ = target.write_text("scheduled")

        async def scenario() -> tuple[list[object], list[object]]:
            stream = ReadStream(str(target))
            opened: list[object] = []
            _ = stream.on("open", opened.append)
            before = list(opened)
            await asyncio.sleep(0)
            stream.destroy()
            return before, opened

        before, after = asyncio.run(scenario())
        assert before == []
        assert len(after) == 1

    def test_encoding_returns_text(self, tmp_path: Path) -> None:
        target = tmp_path / "text.txt"
        _ = target.write_text("héllo", encoding="utf-8")
        stream = ReadStream(str(target), encoding="utf8")
        assert stream.read() == "héllo"

    def test_sized_reads(self, tmp_path: Path) -> None:
        target = tmp_path / "data.bin"
        _ = target.write_bytes(b"abcdefg")
        stream = ReadStream(str(target), high_water_mark=3)
        assert list(stream) == [b"abc", b"def", b"g"]

    def test_missing_file_reports_error(
        self, tmp_path: Path, recorder: EventRecorder
    ) -> None:
        stream = ReadStream(str(tmp_path / "missing.txt"))
        recorder.watch(stream, "open", "error", "close")

        with pytest.raises(FileNotFoundError):
            _ = stream.read()

        assert recorder.names() == ["error", "close"]
        assert isinstance(stream.errored, FileNotFoundError)

    def test_reads_from_supplied_descriptor(self, tmp_path: Path) -> None:
        target = tmp_path / "data.bin"
        _ = target.write_bytes(b"from fd")
        fd = os.open(target, os.O_RDONLY)
        stream = ReadStream(None, fd=fd)
        opened: list[object] = []
        _ = stream.on("open", opened.append)

        assert stream.read() == b"from fd"
        assert opened == [fd]
        assert stream.destroyed

    def test_autoclose_disabled_keeps_descriptor(self, tmp_path: Path) -> None:
        target = tmp_path / "data.bin"
        _ = target.write_bytes(b"keep")
        fd = os.open(target, os.O_RDONLY)
        try:
            stream = ReadStream(None, fd=fd, autoclose=False)
            assert stream.read() == b"keep"
            assert os.fstat(fd).st_size == 4
        finally:
            os.close(fd)

    def test_unknown_flags_raise(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidArgumentError):
            _ = ReadStream(str(tmp_path / "x"), flags="bogus")

    def test_repr_names_path(self, tmp_path: Path) -> None:
        stream = ReadStream(str(tmp_path / "x"))
        assert "x" in repr(stream)
        assert repr(stream).startswith("<ReadStream")


class TestWriteStream:
    """Writing host files through raw descriptors."""

    def test_writes_chunks_in_order(
        self, tmp_path: Path, recorder: EventRecorder
    ) -> None:
        target = tmp_path / "out.bin"
        stream = WriteStream(str(target))
        recorder.watch(stream, "open", "finish", "close")

        _ = stream.write(b"one ")
        _ = stream.write("two")
        _ = stream.end(b" three")

        assert target.read_bytes() == b"one two three"
        assert recorder.names() == ["open", "finish", "close"]
        assert stream.fd is None
        assert stream.bytes_written == len(b"one two three")

    def test_end_without_writes_creates_empty_file(self, tmp_path: Path) -> None:
        target = tmp_path / "empty.txt"
        _ = WriteStream(str(target)).end()
        assert target.exists()
        assert target.read_bytes() == b""

    def test_write_flags_truncate(self, tmp_path: Path) -> None:
        target = tmp_path / "out.txt"
        _ = target.write_text("previous contents")
        _ = WriteStream(str(target)).end(b"new")
        assert target.read_bytes() == b"new"

    def test_append_flags_keep_contents(self, tmp_path: Path) -> None:
        target = tmp_path / "log.txt"
        _ = target.write_text("first\n")
        _ = WriteStream(str(target), flags="a").end(b"second\n")
        assert target.read_text() == "first\nsecond\n"

    def test_exclusive_flags_fail_on_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "exists.txt"
        _ = target.write_text("x")
        stream = WriteStream(str(target), flags="wx")
        errors: list[BaseException] = []
        _ = stream.on("error", errors.append)

        with pytest.raises(FileExistsError):
            _ = stream.write(b"y")
        assert len(errors) == 1
        assert target.read_text() == "x"

    def test_missing_directory_reports_error(
        self, tmp_path: Path, recorder: EventRecorder
    ) -> None:
        stream = WriteStream(str(tmp_path / "no" / "such" / "file"))
        recorder.watch(stream, "error", "finish")

        with pytest.raises(FileNotFoundError):
            _ = stream.write(b"data")

        assert recorder.names() == ["error"]
        assert stream.destroyed

    def test_writes_to_supplied_descriptor(self, tmp_path: Path) -> None:
        target = tmp_path / "fd.txt"
        fd = os.open(target, os.O_WRONLY | os.O_CREAT)
        stream = WriteStream(None, fd=fd)
        opened: list[object] = []
        _ = stream.on("open", opened.append)

        _ = stream.end(b"via fd")

        assert opened == [fd]
        assert target.read_bytes() == b"via fd"

    def test_open_is_scheduled_on_running_loop(self, tmp_path: Path) -> None:
        target = tmp_path / "created.txt"

        async def scenario() -> bool:
            stream = WriteStream(str(target))
            await asyncio.sleep(0)
            created = target.exists()
            stream.destroy()
            return created

        assert not target.exists()
        assert asyncio.run(scenario())


class TestFactories:
    """create_read_stream / create_write_stream option mapping."""

    def test_read_defaults(self, tmp_path: Path) -> None:
        stream = create_read_stream(str(tmp_path / "x"), {})
        assert stream.flags == "r"
        assert stream.mode == DEFAULT_MODE
        assert stream.autoclose

    def test_write_defaults(self, tmp_path: Path) -> None:
        stream = create_write_stream(str(tmp_path / "x"), {})
        assert stream.flags == "w"
        assert stream.mode == DEFAULT_MODE
        stream.destroy()

    def test_options_are_forwarded(self, tmp_path: Path) -> None:
        target = tmp_path / "x"
        stream = create_write_stream(
            str(target), {"flags": "a+", "mode": 0o600, "autoclose": False}
        )
        assert stream.flags == "a+"
        assert stream.mode == 0o600
        assert not stream.autoclose


class TestAdoptedDescriptors:
    """Descriptors handed in through ``fd`` follow ``autoclose``."""

    def test_read_stream_closes_unused_descriptor(self, tmp_path: Path) -> None:
        target = tmp_path / "data.bin"
        _ = target.write_bytes(b"unused")
        fd = os.open(target, os.O_RDONLY)

        ReadStream(None, fd=fd).destroy()

        with pytest.raises(OSError):
            _ = os.fstat(fd)

    def test_write_stream_closes_unused_descriptor(self, tmp_path: Path) -> None:
        fd = os.open(tmp_path / "out.bin", os.O_WRONLY | os.O_CREAT)

        WriteStream(None, fd=fd).destroy()

        with pytest.raises(OSError):
            _ = os.fstat(fd)

    def test_autoclose_disabled_leaves_descriptor_open(self, tmp_path: Path) -> None:
        fd = os.open(tmp_path / "out.bin", os.O_WRONLY | os.O_CREAT)
        try:
            WriteStream(None, fd=fd, autoclose=False).destroy()
            assert os.fstat(fd).st_size == 0
        finally:
            os.close(fd)
