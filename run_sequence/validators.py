"""Валидаторы для run-sequence."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, AbstractSet, Any

from run_sequence.exceptions import (
    DuplicateTaskError,
    EmptyGroupError,
    EmptyPlanError,
    InvalidEntryError,
    UnknownTaskError,
)

if TYPE_CHECKING:
    from run_sequence.interfaces import TaskHost

# Максимальная глубина вложенности: план -> группа
MAX_DEPTH = 1


def is_group(entry: Any) -> bool:
    """Проверяет, является ли элемент плана параллельной группой.

    Строка тоже является Sequence, поэтому исключается явно.
    """
    if isinstance(entry, (str, bytes)):
        return False
    return isinstance(entry, (Sequence, AbstractSet))


class PlanValidator:
    """Валидатор плана выполнения.

    Проверяет план до запуска первой задачи:
    - План не пуст
    - Каждый элемент является именем задачи или непустой группой
    - Группы не вложены друг в друга
    - Все задачи зарегистрированы на хосте
    - Внутри одной группы имена не повторяются

    Повтор имени на верхнем уровне плана не считается ошибкой,
    проверяется только содержимое каждой группы по отдельности.

    Пример использования:
        >>> from run_sequence.adapters import MemoryTaskHost
        >>> from run_sequence.validators import PlanValidator
        >>>
        >>> host = MemoryTaskHost({"clean": clean, "lint": lint, "test": test})
        >>> validator = PlanValidator()
        >>> validator.validate(host, ["clean", ["lint", "test"]])  # OK
        >>> validator.validate(host, ["clean", ["lint", "lint"]])  # Raises DuplicateTaskError
    """

    def validate(
        self,
        host: TaskHost,
        plan: Sequence[Any],
        *,
        depth: int = 0,
        within_group: bool = False,
    ) -> None:
        """Валидирует план или одну его группу.

        Вызов верхнего уровня проверяет план целиком и рекурсивно
        спускается в каждую группу с depth=1 и within_group=True.

        Args:
            host: Хост, которому должны быть известны задачи
            plan: Элементы плана (или группы) в порядке выполнения
            depth: Текущая глубина вложенности (0 для плана, 1 для группы)
            within_group: Проверять ли повтор имен среди элементов

        Raises:
            EmptyPlanError: План не содержит групп
            InvalidEntryError: Элемент не является строкой или допустимой группой
            UnknownTaskError: Задача не зарегистрирована на хосте
            DuplicateTaskError: Имя повторяется внутри группы
            EmptyGroupError: Группа не содержит задач
        """
        if depth == 0 and len(plan) == 0:
            raise EmptyPlanError()

        found: set[str] = set()
        for entry in plan:
            self._check_entry(host, entry, depth, within_group, found)

    def _check_entry(
        self,
        host: TaskHost,
        entry: Any,
        depth: int,
        within_group: bool,
        found: set[str],
    ) -> None:
        """Проверяет один элемент плана.

        Args:
            host: Хост задач
            entry: Элемент плана
            depth: Глубина, на которой находится элемент
            within_group: Проверять ли повтор имен
            found: Имена, уже встреченные в текущей группе

        Raises:
            PlanError: Если элемент недопустим
        """
        is_task = isinstance(entry, str)
        nested = depth < MAX_DEPTH and is_group(entry)
        if not is_task and not nested:
            raise InvalidEntryError(entry)

        if is_task:
            if not host.has_task(entry):
                raise UnknownTaskError(entry)
            if within_group:
                if entry in found:
                    raise DuplicateTaskError(entry)
                found.add(entry)
            return

        if len(entry) == 0:
            raise EmptyGroupError()
        self.validate(host, list(entry), depth=depth + 1, within_group=True)
