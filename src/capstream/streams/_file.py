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

"""File-backed input and output streams.

Construction validates options, resolves the path-like argument, merges the
file defaults (``encoding="utf8"``, ``mode=0o666``) under the caller's options
and creates the host stream. Validation and resolution errors raise before
anything is opened. The open itself is deferred, so errors such as a missing
file or denied permission arrive on the stream's ``error`` event (and are
raised by the next read or write), never from the constructor.

Example::

    with FileOutputStream("out.txt", append=True) as out:
        out.write("appended line\\n")
        out.end()

    source = FileInputStream(Path("out.txt"))
    text = source.read()
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import ClassVar, Unpack, override

from ..runtime.logging import StructuredLogger, get_logger
from ._capability import Capability, TaggedStream
from ._host_streams import (
    ReadStream,
    WriteStream,
    create_read_stream,
    create_write_stream,
)
from ._options import FILE_DEFAULTS, StreamOptions, check_options
from ._paths import FD, Operation, resolve_path

__all__ = [
    "FileInputStream",
    "FileOutputStream",
]

logger: StructuredLogger = get_logger(__name__, context={"component": "file_stream"})

type Fingerprint = tuple[type[object], str | int | None]


def _prepare(
    target: object, options: Mapping[str, object], operation: Operation
) -> tuple[str | None, dict[str, object]]:
    check_options(options)
    resolved = resolve_path(target, options, operation)
    merged: dict[str, object] = {**FILE_DEFAULTS, **options}
    return (None if resolved is FD else resolved), merged


class _FileStream[S: ReadStream | WriteStream](TaggedStream[S]):
    """Shared descriptor tracking, identity and rendering for file streams."""

    _operation: ClassVar[Operation]

    def __init__(self, native: S, capability: Capability) -> None:
        super().__init__(native, capability)
        self._fd: int | None = None
        self._fd_option = native.fd
        _ = native.once("open", self._capture_fd)
        logger.debug(
            "File stream created.",
            event="file_stream.created",
            context={
                "kind": type(self).__name__,
                "path": native.path,
                "flags": native.flags,
            },
        )

    def _capture_fd(self, fd: int) -> None:
        if self._fd is None:
            self._fd = fd
            logger.debug(
                "File stream opened.",
                event="file_stream.opened",
                context={"kind": type(self).__name__, "path": self.path, "fd": fd},
            )

    @property
    def path(self) -> str | None:
        """Resolved path, or None for a stream opened from a descriptor."""
        return self._stream.path

    @property
    def fd(self) -> int | None:
        """Descriptor assigned by the open, or None until the stream has opened."""
        return self._fd

    def fingerprint(self) -> Fingerprint:
        """Identity used for equality: the stream kind and its path (or descriptor)."""
        path = self._stream.path
        return type(self), path if path is not None else self._fd_option

    @override
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _FileStream):
            return NotImplemented
        return self.fingerprint() == other.fingerprint()  # pyright: ignore[reportUnknownMemberType]

    @override
    def __hash__(self) -> int:
        return hash(self.fingerprint())

    @override
    def __repr__(self) -> str:
        path = self.path if self.path is not None else f"fd={self._fd_option}"
        return f"<{type(self).__name__} {path}>"


class FileInputStream(_FileStream[ReadStream]):
    """Input stream reading from a file.

    Args:
        source: Path string, ``os.PathLike``, parsed URI, or anything when
            ``fd`` is given.
        **options: See :class:`StreamOptions`. ``encoding`` defaults to
            ``"utf8"`` (reads return ``str``); pass ``encoding=None`` for bytes.

    Raises:
        InvalidArgumentError: On malformed options (e.g. non-integer ``mode``).
        UnrecognizedPathError: If ``source`` is not a supported path-like value.
    """

    _operation = "Input"

    def __init__(self, source: object, **options: Unpack[StreamOptions]) -> None:
        path, merged = _prepare(source, options, self._operation)
        super().__init__(create_read_stream(path, merged), Capability.READ)


class FileOutputStream(_FileStream[WriteStream]):
    """Output stream writing to a file.

    The open flags are ``flags`` when given, ``"a"`` when ``append=True``,
    and ``"w"`` (create or truncate) otherwise.

    Args:
        target: Path string, ``os.PathLike``, parsed URI, or anything when
            ``fd`` is given.
        **options: See :class:`StreamOptions`.

    Raises:
        InvalidArgumentError: On malformed options (e.g. non-integer ``mode``).
        UnrecognizedPathError: If ``target`` is not a supported path-like value.
    """

    _operation = "Output"

    def __init__(self, target: object, **options: Unpack[StreamOptions]) -> None:
        path, merged = _prepare(target, options, self._operation)
        merged["flags"] = options.get("flags") or (
            "a" if options.get("append") else "w"
        )
        super().__init__(create_write_stream(path, merged), Capability.WRITE)
