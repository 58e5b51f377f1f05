"""События жизненного цикла задач, которые публикует хост."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class EventKind(Enum):
    """Вид события жизненного цикла задачи.

    Attributes:
        TASK_START: Хост начал выполнение задачи
        TASK_STOP: Задача завершилась успешно
        TASK_ERR: Задача завершилась с ошибкой
    """

    TASK_START = "task_start"
    TASK_STOP = "task_stop"
    TASK_ERR = "task_err"

    @classmethod
    def coerce(cls, kind: EventKind | str) -> EventKind:
        """Приводит строковое имя события к EventKind.

        Args:
            kind: EventKind или его строковое значение

        Returns:
            Соответствующий EventKind

        Raises:
            ValueError: Если такого вида событий нет
        """
        if isinstance(kind, cls):
            return kind
        try:
            return cls(kind)
        except ValueError:
            valid = ", ".join(repr(k.value) for k in cls)
            raise ValueError(
                f"Unknown event kind {kind!r}, expected one of: {valid}"
            ) from None


@dataclass(frozen=True)
class TaskStarted:
    """Задача запущена хостом."""

    task: str

    @property
    def kind(self) -> EventKind:
        return EventKind.TASK_START


@dataclass(frozen=True)
class TaskStopped:
    """Задача завершилась успешно."""

    task: str

    @property
    def kind(self) -> EventKind:
        return EventKind.TASK_STOP


@dataclass(frozen=True)
class TaskErrored:
    """Задача завершилась с ошибкой.

    Attributes:
        task: Имя задачи
        error: Ошибка, переданная хостом (обычно исключение)
    """

    task: str
    error: Any = None

    @property
    def kind(self) -> EventKind:
        return EventKind.TASK_ERR


TaskEvent = Union[TaskStarted, TaskStopped, TaskErrored]
