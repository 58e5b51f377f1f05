"""Фикстуры pytest для тестирования run-sequence."""

from __future__ import annotations

import pytest

from run_sequence.adapters.memory import MemoryProgressTracker, MemoryTaskHost
from run_sequence.core import SequenceResult
from run_sequence.events import EventKind, TaskEvent
from run_sequence.observers import ObserverRegistry


class EventLog:
    """Записывает события, которые видят наблюдатели реестра."""

    def __init__(self, registry: ObserverRegistry) -> None:
        self.events: list[tuple[str, str]] = []
        self.handles = [
            registry.register(kind, self._record) for kind in EventKind
        ]

    def _record(self, event: TaskEvent) -> None:
        self.events.append((event.kind.value, event.task))

    def of(self, kind: str) -> list[str]:
        return [task for k, task in self.events if k == kind]


class Completion:
    """Обратный вызов завершения, запоминающий все вызовы."""

    def __init__(self) -> None:
        self.calls: list[SequenceResult] = []

    def __call__(self, result: SequenceResult) -> None:
        self.calls.append(result)

    @property
    def result(self) -> SequenceResult:
        assert len(self.calls) == 1, f"expected one completion, got {len(self.calls)}"
        return self.calls[0]


@pytest.fixture
def host() -> MemoryTaskHost:
    """Хост с задачами A, B, C, D, которые ничего не делают."""
    return MemoryTaskHost({name: None for name in ("A", "B", "C", "D")})


@pytest.fixture
def registry() -> ObserverRegistry:
    """Изолированный реестр наблюдателей."""
    return ObserverRegistry()


@pytest.fixture
def event_log(registry: ObserverRegistry) -> EventLog:
    return EventLog(registry)


@pytest.fixture
def completion() -> Completion:
    return Completion()


@pytest.fixture
def tracker() -> MemoryProgressTracker:
    return MemoryProgressTracker()
