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

"""Capability-tagged streams over files, buffers and custom sources.

Every stream returned by this package carries a fixed :class:`Capability`
(input, output or duplex), so callers know what it supports without
inspecting its type. Using a stream outside its capability raises
:class:`~capstream.errors.CapabilityViolationError`.

Example usage::

    from capstream.streams import BufferWriteStream, FileInputStream

    source = FileInputStream("data.bin", encoding=None)
    sink = BufferWriteStream()
    source.pipe(sink)
    payload = sink.to_bytes()

Stream families:

- ``FileInputStream`` / ``FileOutputStream``: host files, opened from a path
  string, ``os.PathLike``, parsed URI or descriptor
- ``BufferReadStream`` / ``BufferWriteStream``: in-memory buffers
- ``readable_stream`` / ``writable_stream`` / ``duplex_stream`` /
  ``transform_stream``: custom implementation functions
- ``tag_input`` / ``tag_output`` / ``tag_duplex``: existing raw streams
"""

from __future__ import annotations

from ._buffer import BufferReadStream, BufferWriteStream
from ._capability import (
    Capability,
    SupportsRead,
    SupportsWrite,
    TaggedStream,
    tag_duplex,
    tag_input,
    tag_output,
)
from ._constructors import (
    duplex_stream,
    readable_stream,
    transform_stream,
    with_open,
    writable_stream,
)
from ._events import EventEmitter, EventHandler
from ._file import FileInputStream, FileOutputStream
from ._host_streams import (
    ReadStream,
    WriteStream,
    create_read_stream,
    create_write_stream,
)
from ._native import (
    Duplex,
    Readable,
    Transform,
    TransformCallback,
    Writable,
    WriteCallback,
)
from ._options import (
    DEFAULT_ENCODING,
    DEFAULT_HIGH_WATER_MARK,
    DEFAULT_MODE,
    MAX_FD,
    StreamOptions,
    is_fd,
)
from ._paths import (
    FD,
    Descriptor,
    FileDescriptor,
    FileHandle,
    PathLike,
    PathString,
    UriHandle,
    classify_path,
    resolve_path,
)

__all__ = [
    "DEFAULT_ENCODING",
    "DEFAULT_HIGH_WATER_MARK",
    "DEFAULT_MODE",
    "FD",
    "MAX_FD",
    "BufferReadStream",
    "BufferWriteStream",
    "Capability",
    "Descriptor",
    "Duplex",
    "EventEmitter",
    "EventHandler",
    "FileDescriptor",
    "FileHandle",
    "FileInputStream",
    "FileOutputStream",
    "PathLike",
    "PathString",
    "ReadStream",
    "Readable",
    "StreamOptions",
    "SupportsRead",
    "SupportsWrite",
    "TaggedStream",
    "Transform",
    "TransformCallback",
    "UriHandle",
    "Writable",
    "WriteCallback",
    "WriteStream",
    "classify_path",
    "create_read_stream",
    "create_write_stream",
    "duplex_stream",
    "is_fd",
    "readable_stream",
    "resolve_path",
    "tag_duplex",
    "tag_input",
    "tag_output",
    "transform_stream",
    "with_open",
    "writable_stream",
]
