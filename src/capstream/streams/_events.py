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

"""Named-event dispatch for stream lifecycle notifications."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Self

from ..runtime.logging import StructuredLogger, get_logger

__all__ = [
    "EventEmitter",
    "EventHandler",
]

type EventHandler = Callable[..., object]

logger: StructuredLogger = get_logger(__name__, context={"component": "stream_events"})


def _describe_handler(handler: EventHandler) -> str:
    module_name = getattr(handler, "__module__", None)
    qualname = getattr(handler, "__qualname__", None)
    if isinstance(qualname, str):
        prefix = f"{module_name}." if isinstance(module_name, str) else ""
        return f"{prefix}{qualname}"
    return repr(handler)


@dataclass(slots=True, frozen=True, eq=False)
class _Listener:
    handler: EventHandler
    once: bool


class EventEmitter:
    """Process-local emitter that delivers events synchronously.

    Listeners run in registration order on the emitting call stack. An
    exception raised by a listener is logged and does not stop delivery to
    the remaining listeners.
    """

    def __init__(self) -> None:
        super().__init__()
        self._listeners: dict[str, list[_Listener]] = {}

    def on(self, event: str, handler: EventHandler) -> Self:
        """Register ``handler`` for every future ``event``."""
        self._listeners.setdefault(event, []).append(_Listener(handler, once=False))
        return self

    def once(self, event: str, handler: EventHandler) -> Self:
        """Register ``handler`` for the next ``event`` only."""
        self._listeners.setdefault(event, []).append(_Listener(handler, once=True))
        return self

    def off(self, event: str, handler: EventHandler) -> bool:
        """Remove the first registration of ``handler``; return whether one existed."""
        listeners = self._listeners.get(event)
        if not listeners:
            return False
        for index, listener in enumerate(listeners):
            if listener.handler == handler:
                del listeners[index]
                return True
        return False

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: object) -> bool:
        """Call every listener of ``event`` with ``args``.

        Returns:
            True if at least one listener was registered.
        """
        listeners = tuple(self._listeners.get(event, ()))
        if not listeners:
            return False
        # Drop one-shot listeners before running them so re-entrant emits skip them.
        current = self._listeners[event]
        for listener in listeners:
            if listener.once:
                current.remove(listener)
        for listener in listeners:
            try:
                _ = listener.handler(*args)
            except Exception:
                logger.exception(
                    "Error delivering stream event.",
                    event="stream.listener_failed",
                    context={
                        "handler": _describe_handler(listener.handler),
                        "stream_event": event,
                    },
                )
        return True
