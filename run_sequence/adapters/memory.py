"""Memory адаптеры: хост задач и трекер прогресса в памяти процесса."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from contextlib import contextmanager
from datetime import datetime
from typing import Any, ContextManager

from run_sequence.events import EventKind, TaskErrored, TaskEvent, TaskStarted, TaskStopped
from run_sequence.exceptions import ProgressError
from run_sequence.interfaces import EventListener, ProgressTracker, TaskHost
from run_sequence.progress import TaskProgress, TaskStatus


def _noop() -> None:
    return None


class MemoryTaskHost(TaskHost):
    """Хост, выполняющий задачи-функции в текущем потоке.

    start() только ставит пачку задач в очередь. Выполнение
    запускает вызывающий код через run_pending(): для каждой пачки
    хост публикует события запуска всех задач, затем вызывает их
    по очереди и публикует события остановки или ошибки. Так события
    никогда не приходят изнутри start().

    Используется для тестирования и простых сценариев.

    Пример использования:
        >>> from run_sequence import run
        >>> host = MemoryTaskHost()
        >>> @host.task("build")
        ... def build():
        ...     print("building")
        >>> run(host, "build")
        >>> host.run_pending()

    Attributes:
        started: История пачек, переданных в start()
    """

    def __init__(
        self, tasks: dict[str, Callable[[], Any] | None] | None = None
    ) -> None:
        """Инициализирует хост.

        Args:
            tasks: Начальные задачи (имя -> функция без аргументов)

        Raises:
            ValueError: Если имя задачи пустое
        """
        self._tasks: dict[str, Callable[[], Any]] = {}
        self._listeners: dict[EventKind, list[EventListener]] = {
            kind: [] for kind in EventKind
        }
        self._queue: deque[tuple[str, ...]] = deque()
        self.started: list[tuple[str, ...]] = []
        for name, func in (tasks or {}).items():
            self.register(name, func)

    def register(self, name: str, func: Callable[[], Any] | None = None) -> None:
        """Регистрирует задачу на хосте.

        Args:
            name: Имя задачи
            func: Функция задачи (по умолчанию ничего не делает)

        Raises:
            ValueError: Если имя пустое или уже зарегистрировано
        """
        if not name:
            raise ValueError("Task name cannot be empty")
        if name in self._tasks:
            raise ValueError(f"Task with name '{name}' is already registered")
        self._tasks[name] = func or _noop

    def task(self, name: str) -> Callable[[Callable[[], Any]], Callable[[], Any]]:
        """Декоратор для регистрации функции как задачи."""

        def decorator(func: Callable[[], Any]) -> Callable[[], Any]:
            self.register(name, func)
            return func

        return decorator

    def has_task(self, name: str) -> bool:
        return name in self._tasks

    def start(self, *names: str) -> None:
        """Ставит задачи в очередь на параллельное выполнение.

        Raises:
            KeyError: Если задача не зарегистрирована
        """
        for name in names:
            if name not in self._tasks:
                raise KeyError(f"Task '{name}' not found in host")
        self.started.append(names)
        self._queue.append(names)

    def add_listener(self, kind: EventKind, listener: EventListener) -> None:
        self._listeners[kind].append(listener)

    def remove_listener(self, kind: EventKind, listener: EventListener) -> None:
        if listener in self._listeners[kind]:
            self._listeners[kind].remove(listener)

    def listener_count(self, kind: EventKind | None = None) -> int:
        """Количество подписанных слушателей (всего или для одного вида)."""
        if kind is not None:
            return len(self._listeners[kind])
        return sum(len(listeners) for listeners in self._listeners.values())

    @property
    def pending(self) -> int:
        """Количество пачек в очереди."""
        return len(self._queue)

    def emit(self, event: TaskEvent) -> None:
        """Публикует событие всем подписанным слушателям."""
        for listener in tuple(self._listeners[event.kind]):
            listener(event)

    def run_pending(self) -> int:
        """Выполняет очередь, пока она не опустеет.

        Пачки, поставленные в очередь во время выполнения (следующие
        группы прогона), тоже выполняются.

        Returns:
            Количество выполненных задач
        """
        executed = 0
        while self._queue:
            batch = self._queue.popleft()
            for name in batch:
                self.emit(TaskStarted(name))
            for name in batch:
                self._execute(name)
                executed += 1
        return executed

    def _execute(self, name: str) -> None:
        try:
            self._tasks[name]()
        except Exception as e:
            self.emit(TaskErrored(name, e))
        else:
            self.emit(TaskStopped(name))


def _plan_order(progress: TaskProgress) -> tuple[bool, int, str]:
    # Записи без номера группы идут в конце
    return (progress.group_index is None, progress.group_index or 0, progress.task_name)


class MemoryProgressTracker(ProgressTracker):
    """Трекер прогресса, хранящий данные в памяти.

    Используется для тестирования и простых сценариев,
    когда не требуется персистентность данных между запусками.
    """

    def __init__(self) -> None:
        self._rows: dict[tuple[str, str], TaskProgress] = {}

    def save_progress(self, progress: TaskProgress) -> None:
        self._rows[progress.key] = progress

    def get_progress(self, run_id: str, task_name: str) -> TaskProgress | None:
        """Получает запись задачи в прогоне.

        Raises:
            ProgressError: Если run_id или имя задачи пустые
        """
        _check_key(run_id, task_name)
        return self._rows.get((run_id, task_name))

    def mark_completed(self, run_id: str, task_name: str) -> None:
        """Отмечает задачу прогона как завершенную.

        Raises:
            ProgressError: Если run_id или имя задачи пустые
        """
        _check_key(run_id, task_name)
        now = datetime.now()
        progress = self._rows.get((run_id, task_name))
        if progress is None:
            self._rows[(run_id, task_name)] = TaskProgress(
                run_id,
                task_name,
                TaskStatus.COMPLETED,
                started_at=now,
                completed_at=now,
            )
            return
        progress.status = TaskStatus.COMPLETED
        progress.completed_at = now
        if progress.started_at is None:
            progress.started_at = now

    def list_run(self, run_id: str) -> list[TaskProgress]:
        rows = [p for (owner, _), p in self._rows.items() if owner == run_id]
        return sorted(rows, key=_plan_order)

    def list_runs(self) -> list[str]:
        """Идентификаторы прогонов, у которых есть записи."""
        return sorted({run_id for run_id, _ in self._rows})

    def clear_run(self, run_id: str) -> int:
        keys = [key for key in self._rows if key[0] == run_id]
        for key in keys:
            del self._rows[key]
        return len(keys)

    @contextmanager
    def transaction(self) -> ContextManager[None]:
        """Заглушка: изменения в памяти применяются сразу."""
        yield


def _check_key(run_id: str, task_name: str) -> None:
    if not run_id:
        raise ProgressError("Run id cannot be empty")
    if not task_name:
        raise ProgressError("Task name cannot be empty")
