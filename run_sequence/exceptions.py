"""Исключения для run-sequence."""

from __future__ import annotations

from typing import Any


class SequenceError(Exception):
    """Базовое исключение для всех ошибок run-sequence.

    Все исключения компонента наследуются от этого класса.
    """

    def __init__(self, message: str) -> None:
        """Инициализирует исключение.

        Args:
            message: Сообщение об ошибке
        """
        super().__init__(message)
        self.message = message


class PlanError(SequenceError):
    """Ошибка в плане выполнения.

    Выбрасывается синхронно при валидации плана, до запуска
    какой-либо задачи на хосте.
    """


class EmptyPlanError(PlanError):
    """План не содержит ни одной группы."""

    def __init__(self, message: str = "No tasks were provided to run-sequence") -> None:
        super().__init__(message)


class InvalidEntryError(PlanError):
    """Элемент плана не является именем задачи или допустимой группой."""

    def __init__(self, entry: Any) -> None:
        """Инициализирует исключение.

        Args:
            entry: Недопустимый элемент плана
        """
        super().__init__(f"Task {entry!r} is not a valid task string.")
        self.entry = entry


class UnknownTaskError(PlanError):
    """Задача не зарегистрирована на хосте."""

    def __init__(self, task_name: str) -> None:
        """Инициализирует исключение.

        Args:
            task_name: Имя незарегистрированной задачи
        """
        super().__init__(
            f"Task '{task_name}' is not configured as a task on the host. "
            "If the tasks live on another host, bind the runner to it with "
            "run_sequence.bind(host)."
        )
        self.task_name = task_name


class DuplicateTaskError(PlanError):
    """Имя задачи повторяется внутри одной параллельной группы."""

    def __init__(self, task_name: str) -> None:
        """Инициализирует исключение.

        Args:
            task_name: Повторяющееся имя задачи
        """
        super().__init__(
            f"Task '{task_name}' is listed more than once. This is probably a typo."
        )
        self.task_name = task_name


class EmptyGroupError(PlanError):
    """Параллельная группа не содержит задач."""

    def __init__(self, message: str = "An empty group was provided as a task set") -> None:
        super().__init__(message)


class TaskError(SequenceError):
    """Ошибка, о которой хост сообщил для конкретной задачи.

    Прерывает выполнение оставшихся групп. Уже запущенные задачи
    не откатываются.
    """

    def __init__(
        self, message: str, task_name: str | None = None, error: Any = None
    ) -> None:
        """Инициализирует исключение.

        Args:
            message: Описание ошибки выполнения
            task_name: Имя задачи, при выполнении которой произошла ошибка
            error: Исходная ошибка, переданная хостом
        """
        super().__init__(message)
        self.task_name = task_name
        self.error = error


class ProgressError(SequenceError):
    """Исключение, возникающее при ошибке работы с прогрессом.

    Выбрасывается когда:
    - Не удалось сохранить прогресс
    - Не удалось загрузить прогресс
    - Ошибка при работе с хранилищем прогресса
    """
