from __future__ import annotations

from collections import defaultdict
from typing import Callable, DefaultDict

from gridflow.contracts import FlowEvent

FlowEventHandler = Callable[[FlowEvent], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: list[FlowEventHandler] = []
        self._counter: DefaultDict[str, int] = defaultdict(int)

    def subscribe(self, handler: FlowEventHandler) -> None:
        self._handlers.append(handler)

    def publish(self, event: FlowEvent) -> None:
        self._counter[event.kind.value] += 1
        for handler in self._handlers:
            handler(event)

    def publish_all(self, events: list[FlowEvent]) -> None:
        for event in events:
            self.publish(event)

    def emitted_count(self, kind: str | None = None) -> int:
        if kind is None:
            return sum(self._counter.values())
        return self._counter[kind]
