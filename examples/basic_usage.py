"""
Базовый пример использования run-sequence.

Демонстрирует сборку в три шага: очистка, затем параллельно
линтер и тесты, затем упаковка.
"""

from __future__ import annotations

from run_sequence import SequenceResult, run
from run_sequence.adapters.memory import MemoryProgressTracker, MemoryTaskHost


def main() -> None:
    """Основная функция для запуска примера."""
    print("=== Базовый пример использования run-sequence ===\n")

    # Создаем хост и регистрируем задачи
    host = MemoryTaskHost()

    @host.task("clean")
    def clean() -> None:
        print("  clean: удаляем build/")

    @host.task("lint")
    def lint() -> None:
        print("  lint: проверяем стиль")

    @host.task("test")
    def test() -> None:
        print("  test: запускаем тесты")

    @host.task("package")
    def package() -> None:
        print("  package: собираем архив")

    # Трекер прогресса (в памяти)
    tracker = MemoryProgressTracker()

    def on_complete(result: SequenceResult) -> None:
        print(f"\nСтатус выполнения: {result.status.value}")
        print(f"Выполнено задач: {', '.join(result.completed_tasks)}")

    # lint и test выполняются в одной группе
    runner = run(
        host,
        "clean",
        ["lint", "test"],
        "package",
        on_complete=on_complete,
        progress_tracker=tracker,
    )
    host.run_pending()

    print("\nПрогресс задач:")
    for progress in tracker.list_run(runner.run_id):
        print(
            f"  [{progress.group_index}] {progress.task_name}: {progress.status.value}"
        )


if __name__ == "__main__":
    main()
