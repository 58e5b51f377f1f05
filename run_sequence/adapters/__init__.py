"""Адаптеры: хосты задач и трекеры прогресса."""

from __future__ import annotations

from run_sequence.adapters.asyncio_host import AsyncioTaskHost, run_async
from run_sequence.adapters.memory import MemoryProgressTracker, MemoryTaskHost

__all__ = [
    "AsyncioTaskHost",
    "MemoryProgressTracker",
    "MemoryTaskHost",
    "run_async",
]

# SQL адаптер доступен только при установленном sqlalchemy
try:
    from run_sequence.adapters.sql import SQLProgressTracker  # noqa: F401

    __all__.append("SQLProgressTracker")
except ImportError:
    pass
