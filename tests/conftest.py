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

from __future__ import annotations

from functools import partial
from typing import Protocol

import pytest


class _Emitter(Protocol):
    def on(self, event: str, handler: object, /) -> object: ...


class EventRecorder:
    """Collects events emitted by one or more streams, in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, tuple[object, ...]]] = []

    def watch(self, emitter: _Emitter, *names: str) -> None:
        for name in names:
            _ = emitter.on(name, partial(self._record, name))

    def _record(self, name: str, *args: object) -> None:
        self.events.append((name, args))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def args(self, name: str) -> list[tuple[object, ...]]:
        return [args for event, args in self.events if event == name]


@pytest.fixture
def recorder() -> EventRecorder:
    """Return a fresh event recorder."""
    return EventRecorder()
