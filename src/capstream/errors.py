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

"""Base exception hierarchy for :mod:`capstream`."""

from __future__ import annotations

import io
from collections.abc import Mapping


class CapstreamError(Exception):
    """Base class for all capstream exceptions.

    Lets callers catch every library-specific failure with a single handler
    while native ``OSError`` values raised by the host filesystem propagate
    untouched.

    Example:
        Catch any capstream-specific error::

            try:
                stream = FileInputStream(source)
            except CapstreamError as e:
                logger.error("Cannot build stream: %s", e)

    Note:
        Subclasses also inherit from a standard exception type so handlers
        written against plain Python I/O keep working.
    """


class InvalidArgumentError(CapstreamError, TypeError):
    """Raised when a stream constructor receives malformed input.

    Always raised synchronously, before any native resource is touched.
    Common causes:

    - ``mode`` that is not an integer
    - a buffer adapter source that is not a bytes-like buffer
    - a missing or non-callable implementation function
    - an unknown option key or flag string

    Example::

        try:
            FileInputStream("data.bin", mode="rw")
        except InvalidArgumentError as e:
            print(f"Bad options: {e}")
    """


class UnrecognizedPathError(CapstreamError, TypeError):
    """Raised when a path-like input matches none of the supported variants.

    Carries the offending ``value``, the ``options`` it was passed with and the
    ``operation`` label (``"Input"`` or ``"Output"``) so the message names the
    constructor that rejected it.
    """

    def __init__(
        self,
        value: object,
        options: Mapping[str, object],
        operation: str,
    ) -> None:
        message = (
            f"Unrecognized path configuration passed to File{operation}Stream"
            f" constructor. You passed {value!r} and {dict(options)!r}."
            " You must pass a path string, a URI, a path-like object,"
            " or include fd in the options."
        )
        super().__init__(message)
        self.value = value
        self.options = options
        self.operation = operation


class CapabilityViolationError(CapstreamError, io.UnsupportedOperation):
    """Raised when a stream is used outside its capability tag.

    Reading from an output-only stream or writing to an input-only stream
    fails at the call site. Since this also derives from
    :class:`io.UnsupportedOperation`, ``except OSError`` and
    ``except ValueError`` handlers catch it the same way they catch a plain
    file opened in the wrong mode.
    """

    def __init__(self, message: str, *, stream: object, operation: str) -> None:
        super().__init__(message)
        self.stream = stream
        self.operation = operation


__all__ = [
    "CapabilityViolationError",
    "CapstreamError",
    "InvalidArgumentError",
    "UnrecognizedPathError",
]
