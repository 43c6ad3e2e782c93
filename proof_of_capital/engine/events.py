from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from proof_of_capital.utils.logging_cfg import log_event

log = logging.getLogger(__name__)


@dataclass
class Event:
    """Record of an emitted engine event."""
    name: str
    timestamp: int
    args: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "timestamp": self.timestamp, "args": dict(self.args)}


class EventLog:
    """Append-only log, truncated back on a rolled-back transaction."""

    def __init__(self, clock: Callable[[], int]):
        self._clock = clock
        self._events: List[Event] = []

    def emit(self, name: str, **args) -> Event:
        event = Event(name=name, timestamp=self._clock(), args=args)
        self._events.append(event)
        log_event(log, name, **args)
        return event

    def mark(self) -> int:
        return len(self._events)

    def truncate(self, mark: int) -> None:
        del self._events[mark:]

    def named(self, name: str) -> List[Event]:
        return [e for e in self._events if e.name == name]

    def __iter__(self):
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)
