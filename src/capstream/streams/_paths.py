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

"""Path resolution for file stream constructors.

Path-like inputs are first classified into one arm of the closed
:data:`PathLike` union, then matched exhaustively:

- :class:`FileDescriptor`: ``options["fd"]`` holds a valid descriptor. The
  first argument is ignored and :data:`FD` is returned.
- :class:`FileHandle`: an ``os.PathLike`` object such as ``pathlib.Path``.
- :class:`UriHandle`: a parsed ``urllib.parse`` URI; its path component is
  percent-decoded.
- :class:`PathString`: a plain ``str``, returned unchanged.

Anything else raises :class:`~capstream.errors.UnrecognizedPathError`.

Examples:
    >>> resolve_path("/tmp/x", {}, "Input")
    '/tmp/x'
    >>> resolve_path(None, {"fd": 0}, "Output") is FD
    True
    >>> from urllib.parse import urlsplit
    >>> resolve_path(urlsplit("file:///tmp/a%20b"), {}, "Input")
    '/tmp/a b'
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Final, Literal, assert_never
from urllib.parse import ParseResult, SplitResult, unquote

from ..errors import UnrecognizedPathError
from ._options import is_fd

__all__ = [
    "FD",
    "Descriptor",
    "FileDescriptor",
    "FileHandle",
    "Operation",
    "PathLike",
    "PathString",
    "UriHandle",
    "classify_path",
    "resolve_path",
]

type Operation = Literal["Input", "Output"]


class Descriptor(Enum):
    """Sentinel type for "open by descriptor, not by path"."""

    FD = "fd"


FD: Final = Descriptor.FD


@dataclass(slots=True, frozen=True)
class PathString:
    value: str


@dataclass(slots=True, frozen=True)
class UriHandle:
    uri: SplitResult | ParseResult


@dataclass(slots=True, frozen=True)
class FileHandle:
    handle: os.PathLike[str] | os.PathLike[bytes]


@dataclass(slots=True, frozen=True)
class FileDescriptor:
    fd: int


type PathLike = PathString | UriHandle | FileHandle | FileDescriptor


@dataclass(slots=True, frozen=True)
class _Unrecognized:
    value: object


def classify_path(
    value: object, options: Mapping[str, object]
) -> PathLike | _Unrecognized:
    """Convert ``value`` into its :data:`PathLike` arm.

    The descriptor check runs first and is strict membership, so ``fd=0``
    selects the descriptor arm.
    """

    fd = options.get("fd")
    if is_fd(fd):
        return FileDescriptor(fd)  # pyright: ignore[reportArgumentType]
    if isinstance(value, os.PathLike):
        return FileHandle(value)  # pyright: ignore[reportUnknownArgumentType]
    if isinstance(value, (SplitResult, ParseResult)):
        return UriHandle(value)
    if isinstance(value, str):
        return PathString(value)
    return _Unrecognized(value)


def resolve_path(
    value: object,
    options: Mapping[str, object] | None,
    operation: Operation,
) -> str | Descriptor:
    """Resolve ``value`` to a concrete path string or the :data:`FD` sentinel.

    Args:
        value: Path string, URI, ``os.PathLike`` object, or anything when
            ``options`` carries ``fd``.
        options: Constructor options; only ``fd`` is consulted.
        operation: ``"Input"`` or ``"Output"``, used in error messages.

    Raises:
        UnrecognizedPathError: If ``value`` matches no supported arm.
    """

    options = options if options is not None else {}
    match classify_path(value, options):
        case FileDescriptor():
            return FD
        case FileHandle(handle=handle):
            return os.fsdecode(handle)
        case UriHandle(uri=uri):
            return unquote(uri.path)
        case PathString(value=path):
            return path
        case _Unrecognized():
            raise UnrecognizedPathError(value, options, operation)
        case _ as unreachable:  # pragma: no cover - exhaustiveness sentinel
            assert_never(unreachable)

