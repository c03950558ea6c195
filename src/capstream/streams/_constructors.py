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

"""Tagged constructors for custom streams and scoped closing."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from typing import Any, Unpack

from ..errors import InvalidArgumentError
from ._capability import Capability, TaggedStream
from ._native import (
    Duplex,
    FlushImpl,
    ReadImpl,
    Readable,
    Transform,
    TransformImpl,
    Writable,
    WriteImpl,
)
from ._options import DEFAULT_HIGH_WATER_MARK, StreamOptions, check_options

__all__ = [
    "duplex_stream",
    "readable_stream",
    "transform_stream",
    "with_open",
    "writable_stream",
]


def _require_callable(value: object, name: str, kind: str) -> None:
    if not callable(value):
        msg = f"You must supply a {name} function when creating a {kind} stream."
        raise InvalidArgumentError(msg)


def _native_options(options: StreamOptions) -> dict[str, Any]:
    check_options(options)
    return {
        "encoding": options.get("encoding"),
        "high_water_mark": options.get("high_water_mark", DEFAULT_HIGH_WATER_MARK),
    }


def readable_stream(
    read: ReadImpl, **options: Unpack[StreamOptions]
) -> TaggedStream[Readable]:
    """Create an input-tagged stream pulling from ``read(stream, size)``."""
    _require_callable(read, "read", "readable")
    return TaggedStream(Readable(read=read, **_native_options(options)), Capability.READ)


def writable_stream(
    write: WriteImpl, **options: Unpack[StreamOptions]
) -> TaggedStream[Writable]:
    """Create an output-tagged stream handing chunks to ``write``."""
    _require_callable(write, "write", "writable")
    return TaggedStream(
        Writable(write=write, **_native_options(options)), Capability.WRITE
    )


def duplex_stream(
    read: ReadImpl, write: WriteImpl, **options: Unpack[StreamOptions]
) -> TaggedStream[Duplex]:
    """Create a duplex-tagged stream with independent read and write sides."""
    _require_callable(read, "read", "duplex")
    _require_callable(write, "write", "duplex")
    return TaggedStream(
        Duplex(read=read, write=write, **_native_options(options)),
        Capability.DUPLEX,
    )


def transform_stream(
    transform: TransformImpl,
    flush: FlushImpl | None = None,
    **options: Unpack[StreamOptions],
) -> TaggedStream[Transform]:
    """Create a duplex-tagged stream whose output is derived from its input.

    Raises:
        InvalidArgumentError: If ``transform`` is not callable, or ``flush``
            is given and not callable.
    """
    _require_callable(transform, "transform", "transform")
    if flush is not None:
        _require_callable(flush, "flush", "transform")
    return TaggedStream(
        Transform(transform=transform, flush=flush, **_native_options(options)),
        Capability.DUPLEX,
    )


@contextmanager
def with_open[T: TaggedStream[Any]](*streams: T) -> Iterator[tuple[T, ...]]:
    """Yield ``streams`` and close them in reverse order on exit.

    Every stream is closed even when the body, or closing another stream,
    raises.

    Example::

        with with_open(FileInputStream(src), FileOutputStream(dst)) as (i, o):
            i.pipe(o)
    """
    with ExitStack() as stack:
        for stream in streams:
            _ = stack.callback(stream.close)
        yield streams
