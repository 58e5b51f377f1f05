"""Логирование для run-sequence."""

from __future__ import annotations

import logging
from logging import LoggerAdapter

# Логгер для run-sequence
_logger = logging.getLogger("run_sequence")

# Обработчик, установленный setup_logging()
_handler: logging.Handler | None = None


def get_logger(task_name: str | None = None, run_id: str | None = None) -> LoggerAdapter:
    """Создает логгер с префиксом для run-sequence.

    Args:
        task_name: Имя задачи (опционально)
        run_id: Идентификатор прогона; попадает в запись как атрибут run_id

    Returns:
        LoggerAdapter с префиксом [run-sequence] и именем задачи

    Пример использования:
        >>> logger = get_logger("build")
        >>> logger.info("Task started")
        # Выведет: [run-sequence] build: Task started
    """
    extra = {"task": task_name or "core"}
    if run_id is not None:
        extra["run_id"] = run_id
    return logging.LoggerAdapter(_logger, extra)


def setup_logging(level: int = logging.INFO) -> None:
    """Настраивает логирование для run-sequence.

    Повторный вызов не добавляет второй обработчик, а только
    меняет уровень логирования.

    Args:
        level: Уровень логирования (по умолчанию INFO)

    Пример использования:
        >>> from run_sequence.logging import setup_logging
        >>> import logging
        >>> setup_logging(logging.DEBUG)
    """
    global _handler
    if _handler is None or _handler not in _logger.handlers:
        _handler = logging.StreamHandler()
        _handler.setFormatter(
            logging.Formatter("[run-sequence] %(task)s: %(message)s", style="%")
        )
        _logger.addHandler(_handler)
    _logger.setLevel(level)
    _logger.propagate = False
