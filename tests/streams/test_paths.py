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

"""Tests for path-like resolution."""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from urllib.parse import urlparse, urlsplit

import pytest

from capstream.errors import CapstreamError, UnrecognizedPathError
from capstream.streams import (
    FD,
    FileDescriptor,
    FileHandle,
    PathString,
    UriHandle,
    classify_path,
    resolve_path,
)


class TestResolvePath:
    """Resolution of each supported variant."""

    def test_string_is_returned_unchanged(self) -> None:
        assert resolve_path("relative/file.txt", {}, "Input") == "relative/file.txt"

    def test_string_is_never_parsed_as_uri(self) -> None:
        assert resolve_path("file:///tmp/a%20b", {}, "Input") == "file:///tmp/a%20b"

    def test_path_object_is_converted(self, tmp_path: Path) -> None:
        target = tmp_path / "data.bin"
        assert resolve_path(target, {}, "Output") == str(target)

    def test_pure_path_is_converted(self) -> None:
        assert resolve_path(PurePosixPath("/var/log/app.log"), {}, "Input") == (
            "/var/log/app.log"
        )

    def test_split_uri_path_is_percent_decoded(self) -> None:
        uri = urlsplit("file:///tmp/with%20space/%C3%A9.txt")
        assert resolve_path(uri, {}, "Input") == "/tmp/with space/é.txt"

    def test_parsed_uri_is_supported(self) -> None:
        assert resolve_path(urlparse("file:///srv/data"), {}, "Input") == "/srv/data"

    def test_non_file_scheme_uses_path_component(self) -> None:
        uri = urlsplit("https://example.com/some/where")
        assert resolve_path(uri, {}, "Input") == "/some/where"

    @pytest.mark.parametrize("fd", [0, 1, 17])
    def test_descriptor_option_wins(self, fd: int) -> None:
        assert resolve_path(None, {"fd": fd}, "Input") is FD
        assert resolve_path("ignored.txt", {"fd": fd}, "Output") is FD

    def test_missing_options_are_allowed(self) -> None:
        assert resolve_path("x", None, "Input") == "x"


class TestUnrecognizedPaths:
    """Inputs matching no variant."""

    @pytest.mark.parametrize("value", [42, None, b"/tmp/bytes", 3.5, ["a"]])
    def test_raises_with_details(self, value: object) -> None:
        with pytest.raises(UnrecognizedPathError) as excinfo:
            _ = resolve_path(value, {"encoding": "utf8"}, "Input")

        error = excinfo.value
        assert error.value is value
        assert error.operation == "Input"
        assert error.options == {"encoding": "utf8"}
        assert "FileInputStream" in str(error)
        assert repr(value) in str(error)

    def test_output_label_in_message(self) -> None:
        with pytest.raises(UnrecognizedPathError, match="FileOutputStream"):
            _ = resolve_path(7, {}, "Output")

    @pytest.mark.parametrize("fd", [True, -1, "3"])
    def test_invalid_descriptor_does_not_select_fd(self, fd: object) -> None:
        with pytest.raises(UnrecognizedPathError):
            _ = resolve_path(12, {"fd": fd}, "Input")

    def test_error_is_type_error_and_library_error(self) -> None:
        with pytest.raises(TypeError):
            _ = resolve_path(object(), {}, "Input")
        with pytest.raises(CapstreamError):
            _ = resolve_path(object(), {}, "Input")


class TestClassifyPath:
    """Classification into the closed variant set."""

    def test_variants(self, tmp_path: Path) -> None:
        uri = urlsplit("file:///a")
        assert classify_path("a", {}) == PathString("a")
        assert classify_path(tmp_path, {}) == FileHandle(tmp_path)
        assert classify_path(uri, {}) == UriHandle(uri)
        assert classify_path("a", {"fd": 0}) == FileDescriptor(0)

    def test_descriptor_checked_first(self, tmp_path: Path) -> None:
        assert isinstance(classify_path(tmp_path, {"fd": 3}), FileDescriptor)
