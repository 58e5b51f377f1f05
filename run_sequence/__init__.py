"""
Run Sequence - run groups of host tasks in strict order.

Хост задач (реестр и движок выполнения) запускает все запрошенные
задачи одновременно и не гарантирует порядок. run-sequence накладывает
на него план: группы выполняются строго по очереди, задачи внутри
группы выполняются параллельно.

Основные компоненты:
    - run, bind: Запуск плана на хосте
    - on_event: Регистрация наблюдателей в общем реестре
    - SequenceRunner: Конечный автомат прогона
    - PlanValidator: Проверка плана до запуска
    - ObserverRegistry: Реестр наблюдателей
    - EventBridge: Подписка на события хоста на время прогона
    - TaskHost, ProgressTracker: Абстрактные интерфейсы

Пример использования:
    >>> from run_sequence import run, on_event
    >>> from run_sequence.adapters import MemoryTaskHost
    >>>
    >>> host = MemoryTaskHost({"clean": clean, "lint": lint, "test": test, "dist": dist})
    >>> run(host, "clean", ["lint", "test"], "dist", on_complete=print)
    >>> host.run_pending()
"""

__version__ = "0.1.0"
from run_sequence.bridge import EventBridge
from run_sequence.core import (
    RunState,
    SequenceResult,
    SequenceRunner,
    bind,
    default_registry,
    on_event,
    run,
)
from run_sequence.events import (
    EventKind,
    TaskErrored,
    TaskEvent,
    TaskStarted,
    TaskStopped,
)
from run_sequence.exceptions import (
    DuplicateTaskError,
    EmptyGroupError,
    EmptyPlanError,
    InvalidEntryError,
    PlanError,
    ProgressError,
    SequenceError,
    TaskError,
    UnknownTaskError,
)
from run_sequence.interfaces import ProgressTracker, TaskHost
from run_sequence.logging import get_logger, setup_logging
from run_sequence.observers import ObserverHandle, ObserverRegistry
from run_sequence.progress import TaskProgress, TaskStatus
from run_sequence.validators import PlanValidator

__all__ = [
    "run",
    "bind",
    "on_event",
    "default_registry",
    "SequenceRunner",
    "SequenceResult",
    "RunState",
    "PlanValidator",
    "ObserverRegistry",
    "ObserverHandle",
    "EventBridge",
    "EventKind",
    "TaskEvent",
    "TaskStarted",
    "TaskStopped",
    "TaskErrored",
    "TaskHost",
    "ProgressTracker",
    "TaskProgress",
    "TaskStatus",
    "SequenceError",
    "PlanError",
    "EmptyPlanError",
    "InvalidEntryError",
    "UnknownTaskError",
    "DuplicateTaskError",
    "EmptyGroupError",
    "TaskError",
    "ProgressError",
    "get_logger",
    "setup_logging",
]

# Адаптеры импортируются напрямую из run_sequence.adapters
# Например: from run_sequence.adapters import MemoryTaskHost
