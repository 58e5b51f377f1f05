"""Хост задач на цикле событий asyncio."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from run_sequence.core import SequenceResult, run
from run_sequence.events import EventKind, TaskErrored, TaskEvent, TaskStarted, TaskStopped
from run_sequence.interfaces import EventListener, Group, ProgressTracker, TaskHost
from run_sequence.observers import ObserverRegistry

AsyncTask = Callable[[], Awaitable[Any]]


class AsyncioTaskHost(TaskHost):
    """Хост, выполняющий корутинные задачи на текущем цикле событий.

    start() планирует каждую задачу через asyncio.ensure_future.
    Задачи одной группы выполняются конкурентно, события публикуются
    из тех же корутин, поэтому прогон обрабатывает их по одному.

    Пример использования:
        >>> host = AsyncioTaskHost()
        >>> @host.task("fetch")
        ... async def fetch():
        ...     await asyncio.sleep(0.1)
        >>> result = asyncio.run(run_async(host, "fetch"))
    """

    def __init__(self, tasks: dict[str, AsyncTask] | None = None) -> None:
        self._tasks: dict[str, AsyncTask] = {}
        self._listeners: dict[EventKind, list[EventListener]] = {
            kind: [] for kind in EventKind
        }
        self._running: set[asyncio.Future[None]] = set()
        for name, func in (tasks or {}).items():
            self.register(name, func)

    def register(self, name: str, func: AsyncTask) -> None:
        """Регистрирует корутинную функцию как задачу.

        Raises:
            ValueError: Если имя пустое или уже зарегистрировано
        """
        if not name:
            raise ValueError("Task name cannot be empty")
        if name in self._tasks:
            raise ValueError(f"Task with name '{name}' is already registered")
        self._tasks[name] = func

    def task(self, name: str) -> Callable[[AsyncTask], AsyncTask]:
        """Декоратор для регистрации корутинной функции как задачи."""

        def decorator(func: AsyncTask) -> AsyncTask:
            self.register(name, func)
            return func

        return decorator

    def has_task(self, name: str) -> bool:
        return name in self._tasks

    def start(self, *names: str) -> None:
        """Планирует задачи на текущем цикле событий.

        Raises:
            KeyError: Если задача не зарегистрирована
            RuntimeError: Если цикл событий не запущен
        """
        for name in names:
            if name not in self._tasks:
                raise KeyError(f"Task '{name}' not found in host")
        for name in names:
            future = asyncio.ensure_future(self._execute(name))
            self._running.add(future)
            future.add_done_callback(self._running.discard)

    def add_listener(self, kind: EventKind, listener: EventListener) -> None:
        self._listeners[kind].append(listener)

    def remove_listener(self, kind: EventKind, listener: EventListener) -> None:
        if listener in self._listeners[kind]:
            self._listeners[kind].remove(listener)

    def listener_count(self, kind: EventKind | None = None) -> int:
        if kind is not None:
            return len(self._listeners[kind])
        return sum(len(listeners) for listeners in self._listeners.values())

    def emit(self, event: TaskEvent) -> None:
        for listener in tuple(self._listeners[event.kind]):
            listener(event)

    async def join(self) -> None:
        """Ждет завершения всех уже запущенных задач."""
        while self._running:
            await asyncio.gather(*tuple(self._running))

    async def _execute(self, name: str) -> None:
        self.emit(TaskStarted(name))
        try:
            await self._tasks[name]()
        except Exception as e:
            self.emit(TaskErrored(name, e))
        else:
            self.emit(TaskStopped(name))


async def run_async(
    host: TaskHost,
    *groups: Group,
    registry: ObserverRegistry | None = None,
    progress_tracker: ProgressTracker | None = None,
) -> SequenceResult:
    """Запускает последовательность и ждет ее результата.

    Хост должен публиковать события на том же цикле событий.

    Raises:
        PlanError: Если план некорректен
    """
    future: asyncio.Future[SequenceResult] = asyncio.get_running_loop().create_future()

    def on_complete(result: SequenceResult) -> None:
        if not future.done():
            future.set_result(result)

    run(
        host,
        *groups,
        on_complete=on_complete,
        registry=registry,
        progress_tracker=progress_tracker,
    )
    return await future
