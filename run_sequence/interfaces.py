"""Интерфейсы хоста задач и трекеров прогресса."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, AbstractSet, Any, ContextManager, Union

from run_sequence.events import EventKind, TaskEvent
from run_sequence.progress import TaskProgress

if TYPE_CHECKING:
    from run_sequence.core import SequenceResult

# Группа плана: одна задача или набор задач для параллельного запуска
Group = Union[str, Sequence[str], AbstractSet[str]]

# Слушатель событий хоста
EventListener = Callable[[TaskEvent], None]

# Наблюдатель: возврат False останавливает прогон без ошибки
Observer = Callable[[TaskEvent], Any]

# Обратный вызов завершения прогона
CompletionCallback = Callable[["SequenceResult"], None]


class TaskHost(ABC):
    """Абстрактный хост задач.

    Хост владеет реестром задач и сам решает, как их выполнять.
    run-sequence только просит его запустить очередную группу и
    слушает события жизненного цикла.

    Пример использования:
        >>> import subprocess
        >>> from run_sequence.events import EventKind, TaskStopped
        >>> from run_sequence.interfaces import TaskHost
        >>>
        >>> class ShellHost(TaskHost):
        ...     def __init__(self, commands: dict[str, str]):
        ...         self._commands = commands
        ...         self._listeners = {kind: [] for kind in EventKind}
        ...     def has_task(self, name: str) -> bool:
        ...         return name in self._commands
        ...     def start(self, *names: str) -> None:
        ...         for name in names:
        ...             subprocess.run(self._commands[name], shell=True, check=True)
        ...             for listener in list(self._listeners[EventKind.TASK_STOP]):
        ...                 listener(TaskStopped(name))
        ...     def add_listener(self, kind, listener) -> None:
        ...         self._listeners[kind].append(listener)
        ...     def remove_listener(self, kind, listener) -> None:
        ...         self._listeners[kind].remove(listener)
    """

    @abstractmethod
    def has_task(self, name: str) -> bool:
        """Проверяет, зарегистрирована ли задача на хосте.

        Args:
            name: Имя задачи

        Returns:
            True, если задача известна хосту
        """
        ...

    @abstractmethod
    def start(self, *names: str) -> None:
        """Просит хост запустить задачи параллельно.

        Хост обязан опубликовать для каждой задачи событие запуска
        и затем событие остановки или ошибки.

        Args:
            *names: Имена задач
        """
        ...

    @abstractmethod
    def add_listener(self, kind: EventKind, listener: EventListener) -> None:
        """Подписывает слушателя на события указанного вида.

        Args:
            kind: Вид события
            listener: Слушатель
        """
        ...

    @abstractmethod
    def remove_listener(self, kind: EventKind, listener: EventListener) -> None:
        """Отписывает слушателя от событий указанного вида.

        Args:
            kind: Вид события
            listener: Ранее подписанный слушатель
        """
        ...


class ProgressTracker(ABC):
    """Абстрактный класс для трекеров прогресса.

    Трекер хранит по одной записи TaskProgress на задачу каждого прогона.
    Записи разных прогонов независимы, один трекер можно разделять
    между параллельными прогонами.

    Пример использования:
        >>> import contextlib
        >>> from run_sequence.interfaces import ProgressTracker
        >>> from run_sequence.progress import TaskProgress, TaskStatus
        >>>
        >>> class DictProgressTracker(ProgressTracker):
        ...     def __init__(self):
        ...         self._rows = {}
        ...     def save_progress(self, progress: TaskProgress) -> None:
        ...         self._rows[progress.key] = progress
        ...     def get_progress(self, run_id, task_name):
        ...         return self._rows.get((run_id, task_name))
        ...     def mark_completed(self, run_id, task_name) -> None:
        ...         self._rows[(run_id, task_name)].status = TaskStatus.COMPLETED
        ...     def list_run(self, run_id):
        ...         return [p for (r, _), p in self._rows.items() if r == run_id]
        ...     def clear_run(self, run_id) -> int:
        ...         keys = [k for k in self._rows if k[0] == run_id]
        ...         for k in keys:
        ...             del self._rows[k]
        ...         return len(keys)
        ...     def transaction(self):
        ...         return contextlib.nullcontext()
    """

    @abstractmethod
    def save_progress(self, progress: TaskProgress) -> None:
        """Создает или заменяет запись (run_id, task_name).

        Args:
            progress: Информация о прогрессе

        Raises:
            ProgressError: Если не удалось сохранить прогресс
        """
        ...

    @abstractmethod
    def get_progress(self, run_id: str, task_name: str) -> TaskProgress | None:
        """Получает запись задачи в прогоне.

        Args:
            run_id: Идентификатор прогона
            task_name: Имя задачи

        Returns:
            TaskProgress или None, если записи нет

        Raises:
            ProgressError: Если произошла ошибка при загрузке прогресса
        """
        ...

    @abstractmethod
    def mark_completed(self, run_id: str, task_name: str) -> None:
        """Отмечает задачу прогона как завершенную.

        Если записи нет, она создается.

        Raises:
            ProgressError: Если не удалось обновить статус
        """
        ...

    @abstractmethod
    def list_run(self, run_id: str) -> list[TaskProgress]:
        """Возвращает записи прогона в порядке групп плана.

        Внутри группы записи упорядочены по имени задачи.

        Args:
            run_id: Идентификатор прогона

        Returns:
            Список записей (пустой, если прогон неизвестен)
        """
        ...

    @abstractmethod
    def clear_run(self, run_id: str) -> int:
        """Удаляет все записи прогона.

        Returns:
            Количество удаленных записей
        """
        ...

    @abstractmethod
    def transaction(self) -> ContextManager[None]:
        """Возвращает контекстный менеджер для изолированной транзакции прогресса.

        Для MemoryProgressTracker это заглушка.

        Returns:
            Контекстный менеджер для транзакции
        """
        ...
