"""Ядро run_sequence: SequenceRunner и публичные функции run, bind, on_event."""

from __future__ import annotations

import functools
import logging
import uuid
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from run_sequence.bridge import EventBridge
from run_sequence.events import EventKind, TaskErrored, TaskStarted, TaskStopped
from run_sequence.exceptions import PlanError, TaskError
from run_sequence.interfaces import (
    CompletionCallback,
    Group,
    Observer,
    ProgressTracker,
    TaskHost,
)
from run_sequence.logging import get_logger
from run_sequence.observers import ObserverHandle, ObserverRegistry
from run_sequence.progress import TaskProgress, TaskStatus
from run_sequence.validators import PlanValidator, is_group

# Реестр наблюдателей по умолчанию, общий для всех прогонов процесса
default_registry = ObserverRegistry()


class RunState(Enum):
    """Состояние прогона.

    Attributes:
        IDLE: Прогон создан, но не запущен
        VALIDATING: Идет проверка плана
        RUNNING: Выполняется одна из групп
        FINISHED: Прогон завершен (успешно, с ошибкой или остановлен)
    """

    IDLE = "idle"
    VALIDATING = "validating"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass
class SequenceResult:
    """Результат прогона последовательности.

    Attributes:
        status: COMPLETED, FAILED или CANCELLED (остановлен наблюдателем)
        error: Ошибка задачи или плана, если прогон провалился
        completed_tasks: Имена задач в порядке успешного завершения
        failed_tasks: Имена задач, о чьей ошибке сообщил хост
        groups_started: Сколько групп было отправлено хосту
        metadata: Дополнительные метаданные о прогоне
    """

    status: TaskStatus
    error: Exception | None = None
    completed_tasks: list[str] = field(default_factory=list)
    failed_tasks: list[str] = field(default_factory=list)
    groups_started: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        """True, если выполнен весь план."""
        return self.status == TaskStatus.COMPLETED

    @property
    def cancelled(self) -> bool:
        """True, если прогон остановлен наблюдателем."""
        return self.status == TaskStatus.CANCELLED


class SequenceRunner:
    """Конечный автомат прогона: группы выполняются строго по порядку.

    Задачи одной группы запускаются на хосте одновременно. Следующая
    группа запускается только после того, как хост сообщил о завершении
    каждой задачи текущей группы. Ошибка задачи прерывает прогон,
    наблюдатель может остановить его без ошибки, вернув False.

    Прогон не ждет и не блокирует: он продвигается только событиями хоста.
    Задача, которая никогда не сообщит о завершении, оставит прогон
    в состоянии RUNNING навсегда (таймаутов нет).

    Пример использования:
        >>> from run_sequence import SequenceRunner
        >>> from run_sequence.adapters import MemoryTaskHost
        >>>
        >>> host = MemoryTaskHost({"clean": clean, "lint": lint, "test": test})
        >>> runner = SequenceRunner(host, ["clean", ["lint", "test"]], print)
        >>> runner.start()
        >>> host.run_pending()

    Attributes:
        host: Хост задач
        registry: Реестр наблюдателей
        progress_tracker: Трекер прогресса (опционально)
        run_id: Идентификатор прогона
    """

    def __init__(
        self,
        host: TaskHost,
        plan: Sequence[Group],
        on_complete: CompletionCallback | None = None,
        *,
        registry: ObserverRegistry | None = None,
        progress_tracker: ProgressTracker | None = None,
        validator: PlanValidator | None = None,
        run_id: str | None = None,
    ) -> None:
        """Инициализирует прогон.

        Args:
            host: Хост задач
            plan: Группы в порядке выполнения
            on_complete: Вызывается один раз с SequenceResult по завершении
            registry: Реестр наблюдателей (по умолчанию общий default_registry)
            progress_tracker: Трекер прогресса задач
            validator: Валидатор плана
            run_id: Идентификатор прогона (по умолчанию случайный)
        """
        self.host = host
        self.registry = registry if registry is not None else default_registry
        self.progress_tracker = progress_tracker
        self.validator = validator or PlanValidator()
        self.run_id = run_id or uuid.uuid4().hex
        # Копии групп, чтобы внешние изменения не влияли на прогон
        self._plan: list[Any] = [list(g) if is_group(g) else g for g in plan]
        self._on_complete = on_complete
        self._bridge = EventBridge(host, self.registry)
        self._detach: Callable[[], None] | None = None
        self._state = RunState.IDLE
        self._current = -1
        self._outstanding: set[str] = set()
        self._completed: list[str] = []
        self._failed: list[str] = []
        self._result: SequenceResult | None = None
        self._logger = get_logger(run_id=self.run_id)

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def finished(self) -> bool:
        return self._state is RunState.FINISHED

    @property
    def current_group(self) -> int | None:
        """Номер активной группы или None, если ни одна не запускалась."""
        return self._current if self._current >= 0 else None

    @property
    def outstanding(self) -> frozenset[str]:
        """Задачи активной группы, о завершении которых хост еще не сообщил."""
        return frozenset(self._outstanding)

    @property
    def result(self) -> SequenceResult | None:
        """Результат прогона или None, пока прогон не завершен."""
        return self._result

    def start(self) -> None:
        """Проверяет план и запускает первую группу.

        Raises:
            PlanError: Если план некорректен (до любых побочных эффектов)
            RuntimeError: Если прогон уже запускался
        """
        if self._state is not RunState.IDLE:
            raise RuntimeError(f"Sequence runner is already {self._state.value}")

        self._state = RunState.VALIDATING
        try:
            self.validator.validate(self.host, self._plan)
        except PlanError as e:
            self._state = RunState.FINISHED
            self._result = self._build_result(TaskStatus.FAILED, e)
            self._logger.debug(f"Plan rejected: {e}")
            raise

        self._logger.info(f"Starting sequence of {len(self._plan)} groups")
        self._record_pending()

        self._detach = self._bridge.attach(
            self._on_task_started,
            self._on_task_stopped,
            self._on_task_errored,
            self._on_short_circuit,
        )
        self._state = RunState.RUNNING
        self._run_next_group()

    def _run_next_group(self) -> None:
        if self._current + 1 >= len(self._plan):
            self._finish(TaskStatus.COMPLETED)
            return

        self._current += 1
        group = self._plan[self._current]
        names = group if isinstance(group, list) else [group]
        self._outstanding = set(names)
        self._logger.debug(f"Starting group {self._current}: {', '.join(names)}")

        try:
            self.host.start(*names)
        except Exception as e:
            # Хост может публиковать события внутри start(): ошибки
            # наблюдателей и on_complete не являются ошибками хоста
            if self._state is RunState.FINISHED or self._bridge.raised_from_listener(e):
                raise
            error = TaskError(
                f"Host failed to start {', '.join(repr(n) for n in names)}: {e}",
                task_name=names[0] if len(names) == 1 else None,
                error=e,
            )
            error.__cause__ = e
            self._finish(TaskStatus.FAILED, error)

    def _on_task_started(self, event: TaskStarted) -> None:
        if self._state is not RunState.RUNNING:
            return
        self._task_logger(event.task).debug("Task started")
        if self.progress_tracker is not None and event.task in self._outstanding:
            with self.progress_tracker.transaction():
                self.progress_tracker.save_progress(
                    TaskProgress(
                        self.run_id,
                        event.task,
                        TaskStatus.IN_PROGRESS,
                        group_index=self._current,
                        started_at=datetime.now(),
                    )
                )

    def _on_task_stopped(self, event: TaskStopped) -> None:
        if self._state is not RunState.RUNNING:
            return
        if event.task not in self._outstanding:
            # Событие от задачи вне активной группы
            self._task_logger(event.task).debug("Ignoring stop outside the active group")
            return

        self._outstanding.discard(event.task)
        self._completed.append(event.task)
        self._task_logger(event.task).debug("Task completed")
        if self.progress_tracker is not None:
            with self.progress_tracker.transaction():
                self.progress_tracker.mark_completed(self.run_id, event.task)

        if not self._outstanding:
            self._run_next_group()

    def _on_task_errored(self, event: TaskErrored) -> None:
        if self._state is not RunState.RUNNING:
            return
        self._task_logger(event.task).error(f"Task failed: {event.error}")
        self._failed.append(event.task)
        if self.progress_tracker is not None:
            self._record_failure(event)

        error = TaskError(
            f"Task '{event.task}' failed: {event.error}",
            task_name=event.task,
            error=event.error,
        )
        if isinstance(event.error, BaseException):
            error.__cause__ = event.error
        self._finish(TaskStatus.FAILED, error)

    def _on_short_circuit(self) -> None:
        if self._state is not RunState.RUNNING:
            return
        self._logger.info("Sequence stopped by observer")
        self._finish(TaskStatus.CANCELLED)

    def _finish(self, status: TaskStatus, error: Exception | None = None) -> None:
        if self._state is RunState.FINISHED:
            return
        self._state = RunState.FINISHED
        if self._detach is not None:
            self._detach()
            self._detach = None
        if status is not TaskStatus.COMPLETED and self.progress_tracker is not None:
            self._record_cancelled()

        self._result = self._build_result(status, error)
        self._logger.info(
            f"Sequence finished: {status.value} "
            f"({len(self._completed)} tasks completed)"
        )

        if self._on_complete is not None:
            self._on_complete(self._result)
        elif error is not None:
            self._logger.error(f"Error running task sequence: {error}")

    def _build_result(
        self, status: TaskStatus, error: Exception | None = None
    ) -> SequenceResult:
        return SequenceResult(
            status=status,
            error=error,
            completed_tasks=list(self._completed),
            failed_tasks=list(self._failed),
            groups_started=self._current + 1,
            metadata={"run_id": self.run_id, "plan": list(self._plan)},
        )

    def _task_logger(self, task_name: str) -> logging.LoggerAdapter:
        return get_logger(task_name, run_id=self.run_id)

    def _iter_plan(self) -> Iterator[tuple[int, str]]:
        for index, group in enumerate(self._plan):
            for name in group if isinstance(group, list) else [group]:
                yield index, name

    def _record_pending(self) -> None:
        if self.progress_tracker is None:
            return
        seen: set[str] = set()
        with self.progress_tracker.transaction():
            for index, name in self._iter_plan():
                # Повторы имени на верхнем уровне плана делят одну запись
                if name in seen:
                    continue
                seen.add(name)
                self.progress_tracker.save_progress(
                    TaskProgress(self.run_id, name, group_index=index)
                )

    def _record_failure(self, event: TaskErrored) -> None:
        tracker = self.progress_tracker
        with tracker.transaction():
            existing = tracker.get_progress(self.run_id, event.task)
            tracker.save_progress(
                TaskProgress(
                    self.run_id,
                    event.task,
                    TaskStatus.FAILED,
                    group_index=self._current,
                    started_at=existing.started_at if existing is not None else None,
                    completed_at=datetime.now(),
                    error_message=str(event.error),
                )
            )

    def _record_cancelled(self) -> None:
        tracker = self.progress_tracker
        with tracker.transaction():
            for progress in tracker.list_run(self.run_id):
                if progress.status == TaskStatus.PENDING:
                    progress.status = TaskStatus.CANCELLED
                    tracker.save_progress(progress)


def run(
    host: TaskHost,
    *groups: Group,
    on_complete: CompletionCallback | None = None,
    registry: ObserverRegistry | None = None,
    progress_tracker: ProgressTracker | None = None,
) -> SequenceRunner:
    """Запускает группы задач на хосте строго по порядку.

    Args:
        host: Хост задач
        *groups: Группы: имя задачи или коллекция имен для параллельного запуска
        on_complete: Вызывается один раз с SequenceResult. Если не передан,
            ошибка прогона записывается в лог
        registry: Реестр наблюдателей (по умолчанию общий)
        progress_tracker: Трекер прогресса задач

    Returns:
        Запущенный SequenceRunner

    Raises:
        PlanError: Если план некорректен

    Пример:
        >>> run(host, "clean", ["lint", "test"], "package", on_complete=print)
    """
    runner = SequenceRunner(
        host,
        groups,
        on_complete,
        registry=registry,
        progress_tracker=progress_tracker,
    )
    runner.start()
    return runner


def bind(host: TaskHost) -> Callable[..., SequenceRunner]:
    """Возвращает функцию run, привязанную к указанному хосту.

    Пример:
        >>> run_on_ci = bind(ci_host)
        >>> run_on_ci("checkout", ["build", "lint"], on_complete=report)
    """
    return functools.partial(run, host)


def on_event(kind: EventKind | str, callback: Observer) -> ObserverHandle:
    """Регистрирует наблюдателя в общем реестре процесса.

    Args:
        kind: "task_start", "task_stop" или "task_err" (или EventKind)
        callback: Наблюдатель; возврат False останавливает прогон без ошибки

    Returns:
        Дескриптор для отмены регистрации
    """
    return default_registry.register(kind, callback)
