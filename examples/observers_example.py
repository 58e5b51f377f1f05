"""
Пример наблюдателей run-sequence.

Демонстрирует:
- Регистрацию наблюдателей через on_event
- Остановку прогона наблюдателем (возврат False)
- Отчет об ошибке задачи
"""

from __future__ import annotations

import logging

from run_sequence import on_event, run, setup_logging
from run_sequence.adapters.memory import MemoryTaskHost


def main() -> None:
    setup_logging(logging.INFO)

    host = MemoryTaskHost({"migrate": None, "seed": None, "deploy": None})

    def report(event) -> None:
        print(f"  -> {event.kind.value}: {event.task}")

    handles = [on_event(kind, report) for kind in ("task_start", "task_stop", "task_err")]

    # Сухой прогон: не доходим до deploy
    def dry_run(event):
        if event.task == "deploy":
            print("  dry run, deploy пропущен")
            return False

    handles.append(on_event("task_start", dry_run))

    print("=== Прогон с остановкой перед deploy ===")
    run(host, "migrate", "seed", "deploy", on_complete=lambda r: print(f"Итог: {r.status.value}"))
    host.run_pending()

    for unregister in handles:
        unregister()

    print("\n=== Прогон с ошибкой ===")

    def broken() -> None:
        raise RuntimeError("connection refused")

    failing_host = MemoryTaskHost({"migrate": broken, "seed": None})
    # Без on_complete ошибка попадает в лог
    run(failing_host, "migrate", "seed")
    failing_host.run_pending()


if __name__ == "__main__":
    main()
