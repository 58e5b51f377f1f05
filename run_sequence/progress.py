"""Модели данных для отслеживания прогресса задач в последовательности."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class TaskStatus(Enum):
    """Статус задачи или всего прогона.

    Attributes:
        PENDING: Задача ожидает своей группы
        IN_PROGRESS: Хост сообщил о запуске задачи
        COMPLETED: Задача (или прогон) завершена успешно
        FAILED: Задача (или прогон) завершена с ошибкой
        CANCELLED: Задача не запускалась, или прогон остановлен наблюдателем
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TaskProgress:
    """Запись о задаче в рамках одного прогона.

    Запись однозначно определяется парой (run_id, task_name), поэтому
    прогоны, разделяющие один трекер, не перезаписывают данные друг друга.

    Attributes:
        run_id: Идентификатор прогона
        task_name: Имя задачи на хосте
        status: Текущий статус задачи
        group_index: Номер группы плана, в которой стоит задача
        started_at: Время, когда хост сообщил о запуске
        completed_at: Время завершения (успешного или с ошибкой)
        error_message: Сообщение об ошибке (если задача завершилась с ошибкой)
        metadata: Дополнительные метаданные
    """

    run_id: str
    task_name: str
    status: TaskStatus = TaskStatus.PENDING
    group_index: int | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Валидация данных после инициализации."""
        if not self.run_id:
            raise ValueError("run_id cannot be empty")
        if not self.task_name:
            raise ValueError("task_name cannot be empty")
        if self.group_index is not None and self.group_index < 0:
            raise ValueError("group_index cannot be negative")
        if (
            self.started_at is not None
            and self.completed_at is not None
            and self.completed_at < self.started_at
        ):
            raise ValueError("completed_at cannot be earlier than started_at")

    @property
    def key(self) -> tuple[str, str]:
        """Ключ записи: (run_id, task_name)."""
        return (self.run_id, self.task_name)
