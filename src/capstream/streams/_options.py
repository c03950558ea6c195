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

"""Stream option types, defaults and validation.

Options are passed to every constructor as keyword arguments typed by the
``StreamOptions`` TypedDict. Keys the caller leaves out are simply absent, so
merging defaults never clobbers an explicit ``encoding=None``.

Constants:

- ``DEFAULT_ENCODING``: Text encoding merged into file stream options ("utf8")
- ``DEFAULT_MODE``: Permission bits for newly created files (0o666 == 438)
- ``DEFAULT_HIGH_WATER_MARK``: Buffering threshold and default pull size (64KB)
- ``MAX_FD``: Largest value accepted as a file descriptor (unsigned 32-bit)
"""

from __future__ import annotations

import codecs
import os
from collections.abc import Mapping
from typing import Final, TypedDict

from ..errors import InvalidArgumentError

__all__ = [
    "DEFAULT_ENCODING",
    "DEFAULT_HIGH_WATER_MARK",
    "DEFAULT_MODE",
    "FILE_DEFAULTS",
    "MAX_FD",
    "StreamOptions",
    "check_options",
    "is_fd",
    "open_flags",
]

DEFAULT_ENCODING: Final[str] = "utf8"
DEFAULT_MODE: Final[int] = 0o666
DEFAULT_HIGH_WATER_MARK: Final[int] = 65_536
MAX_FD: Final[int] = 0xFFFFFFFF


class StreamOptions(TypedDict, total=False):
    """Options recognized by the stream constructors.

    Attributes:
        encoding: Text encoding. Readable sides decode to ``str`` when set;
            writable sides use it to encode ``str`` chunks.
        mode: Permission bits used when a file is created.
        flags: Explicit open flag string (``"r"``, ``"w"``, ``"a+"`` ...).
        append: Open output files in append mode when ``flags`` is absent.
        fd: Already open descriptor; bypasses path resolution.
        high_water_mark: Buffer threshold in bytes.
        autoclose: Close the descriptor on end, finish or destroy.
    """

    encoding: str | None
    mode: int
    flags: str
    append: bool
    fd: int
    high_water_mark: int
    autoclose: bool


FILE_DEFAULTS: Final[StreamOptions] = {
    "encoding": DEFAULT_ENCODING,
    "mode": DEFAULT_MODE,
}

_KNOWN_KEYS: Final = StreamOptions.__optional_keys__

_SYNC = getattr(os, "O_SYNC", 0)
_APPEND = os.O_APPEND | os.O_CREAT

# Mirrors the flag vocabulary of the host fs layer.
_FLAGS: Final[Mapping[str, int]] = {
    "r": os.O_RDONLY,
    "rs": os.O_RDONLY | _SYNC,
    "sr": os.O_RDONLY | _SYNC,
    "r+": os.O_RDWR,
    "rs+": os.O_RDWR | _SYNC,
    "sr+": os.O_RDWR | _SYNC,
    "w": os.O_TRUNC | os.O_CREAT | os.O_WRONLY,
    "wx": os.O_TRUNC | os.O_CREAT | os.O_WRONLY | os.O_EXCL,
    "xw": os.O_TRUNC | os.O_CREAT | os.O_WRONLY | os.O_EXCL,
    "w+": os.O_TRUNC | os.O_CREAT | os.O_RDWR,
    "wx+": os.O_TRUNC | os.O_CREAT | os.O_RDWR | os.O_EXCL,
    "xw+": os.O_TRUNC | os.O_CREAT | os.O_RDWR | os.O_EXCL,
    "a": _APPEND | os.O_WRONLY,
    "ax": _APPEND | os.O_WRONLY | os.O_EXCL,
    "xa": _APPEND | os.O_WRONLY | os.O_EXCL,
    "as": _APPEND | os.O_WRONLY | _SYNC,
    "sa": _APPEND | os.O_WRONLY | _SYNC,
    "a+": _APPEND | os.O_RDWR,
    "ax+": _APPEND | os.O_RDWR | os.O_EXCL,
    "xa+": _APPEND | os.O_RDWR | os.O_EXCL,
    "as+": _APPEND | os.O_RDWR | _SYNC,
    "sa+": _APPEND | os.O_RDWR | _SYNC,
}


def is_fd(value: object) -> bool:
    """Return True when ``value`` is a usable file descriptor.

    Membership is strict: ``0`` is valid, booleans and negative numbers are not.
    """

    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 <= value <= MAX_FD
    )


def open_flags(flags: str) -> int:
    """Translate a flag string into ``os.open`` bits.

    Raises:
        InvalidArgumentError: If ``flags`` is not a known flag string.
    """

    try:
        bits = _FLAGS[flags]
    except KeyError:
        msg = f"Unknown file open flags: {flags!r}"
        raise InvalidArgumentError(msg) from None
    return bits | getattr(os, "O_BINARY", 0) | getattr(os, "O_CLOEXEC", 0)


def check_options(options: Mapping[str, object]) -> None:
    """Validate keys and value types of a stream options mapping.

    Raises:
        InvalidArgumentError: On unknown keys or values of the wrong type.
    """

    unknown = sorted(set(options) - _KNOWN_KEYS)
    if unknown:
        msg = f"Unknown stream options: {', '.join(unknown)}"
        raise InvalidArgumentError(msg)

    mode = options.get("mode")
    if mode is not None and (not isinstance(mode, int) or isinstance(mode, bool)):
        msg = f"mode must be an integer, got {mode!r}"
        raise InvalidArgumentError(msg)

    if "fd" in options and not is_fd(options["fd"]):
        msg = f"fd must be a non-negative integer descriptor, got {options['fd']!r}"
        raise InvalidArgumentError(msg)

    encoding = options.get("encoding")
    if encoding is not None:
        if not isinstance(encoding, str):
            msg = f"encoding must be a string or None, got {encoding!r}"
            raise InvalidArgumentError(msg)
        try:
            _ = codecs.lookup(encoding)
        except LookupError:
            msg = f"Unknown encoding: {encoding!r}"
            raise InvalidArgumentError(msg) from None

    flags = options.get("flags")
    if flags is not None:
        if not isinstance(flags, str):
            msg = f"flags must be a string, got {flags!r}"
            raise InvalidArgumentError(msg)
        _ = open_flags(flags)

    high_water_mark = options.get("high_water_mark")
    if high_water_mark is not None and (
        not isinstance(high_water_mark, int)
        or isinstance(high_water_mark, bool)
        or high_water_mark <= 0
    ):
        msg = f"high_water_mark must be a positive integer, got {high_water_mark!r}"
        raise InvalidArgumentError(msg)
