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

"""Capability-tagged byte streams over files and in-memory buffers."""

from __future__ import annotations

from . import errors, runtime, streams
from .errors import (
    CapabilityViolationError,
    CapstreamError,
    InvalidArgumentError,
    UnrecognizedPathError,
)
from .streams import (
    BufferReadStream,
    BufferWriteStream,
    Capability,
    FileInputStream,
    FileOutputStream,
    TaggedStream,
    resolve_path,
    tag_duplex,
    tag_input,
    tag_output,
)

__all__ = [
    "BufferReadStream",
    "BufferWriteStream",
    "Capability",
    "CapabilityViolationError",
    "CapstreamError",
    "FileInputStream",
    "FileOutputStream",
    "InvalidArgumentError",
    "TaggedStream",
    "UnrecognizedPathError",
    "errors",
    "resolve_path",
    "runtime",
    "streams",
    "tag_duplex",
    "tag_input",
    "tag_output",
]
