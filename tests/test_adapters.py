"""Тесты для адаптеров: хост и трекеры прогресса."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from unittest.mock import Mock

import pytest

from run_sequence.adapters.memory import MemoryProgressTracker, MemoryTaskHost
from run_sequence.core import run
from run_sequence.events import EventKind, TaskErrored, TaskStarted, TaskStopped
from run_sequence.exceptions import ProgressError
from run_sequence.progress import TaskProgress, TaskStatus


def boom() -> None:
    raise RuntimeError("boom")


class TestMemoryTaskHost:
    """Тесты для MemoryTaskHost."""

    def test_register_and_decorator(self) -> None:
        host = MemoryTaskHost()
        host.register("a")

        @host.task("b")
        def b() -> None:
            pass

        assert host.has_task("a")
        assert host.has_task("b")
        assert not host.has_task("c")

    def test_register_duplicate(self) -> None:
        host = MemoryTaskHost({"a": None})
        with pytest.raises(ValueError, match="already registered"):
            host.register("a")

    def test_register_empty_name(self) -> None:
        with pytest.raises(ValueError):
            MemoryTaskHost().register("")

    def test_start_only_queues(self) -> None:
        func = Mock()
        host = MemoryTaskHost({"a": func})
        host.start("a")

        func.assert_not_called()
        assert host.pending == 1
        assert host.started == [("a",)]

    def test_start_unknown(self) -> None:
        with pytest.raises(KeyError):
            MemoryTaskHost().start("a")

    def test_run_pending_emits_lifecycle(self) -> None:
        host = MemoryTaskHost({"a": None, "b": boom})
        events: list[object] = []
        for kind in EventKind:
            host.add_listener(kind, events.append)

        host.start("a", "b")
        assert host.run_pending() == 2

        assert events[:3] == [TaskStarted("a"), TaskStarted("b"), TaskStopped("a")]
        assert isinstance(events[3], TaskErrored)
        assert events[3].task == "b"
        assert str(events[3].error) == "boom"
        assert host.pending == 0

    def test_remove_listener(self) -> None:
        host = MemoryTaskHost()
        listener = Mock()
        host.add_listener(EventKind.TASK_STOP, listener)
        host.remove_listener(EventKind.TASK_STOP, listener)
        host.remove_listener(EventKind.TASK_STOP, listener)

        host.emit(TaskStopped("a"))

        listener.assert_not_called()
        assert host.listener_count(EventKind.TASK_STOP) == 0


class TestMemoryProgressTracker:
    """Тесты для MemoryProgressTracker."""

    def test_save_and_get(self, tracker: MemoryProgressTracker) -> None:
        progress = TaskProgress("r1", "a", TaskStatus.IN_PROGRESS, group_index=0)
        tracker.save_progress(progress)
        assert tracker.get_progress("r1", "a") is progress
        assert tracker.get_progress("r1", "b") is None
        assert tracker.get_progress("r2", "a") is None

    def test_empty_key(self, tracker: MemoryProgressTracker) -> None:
        with pytest.raises(ProgressError, match="Task name"):
            tracker.get_progress("r1", "")
        with pytest.raises(ProgressError, match="Run id"):
            tracker.mark_completed("", "a")

    def test_mark_completed_creates_progress(self, tracker: MemoryProgressTracker) -> None:
        tracker.mark_completed("r1", "a")
        progress = tracker.get_progress("r1", "a")
        assert progress.status == TaskStatus.COMPLETED
        assert progress.started_at is not None

    def test_mark_completed_updates_progress(self, tracker: MemoryProgressTracker) -> None:
        started = datetime(2024, 1, 1)
        tracker.save_progress(
            TaskProgress("r1", "a", TaskStatus.IN_PROGRESS, started_at=started)
        )
        tracker.mark_completed("r1", "a")

        progress = tracker.get_progress("r1", "a")
        assert progress.status == TaskStatus.COMPLETED
        assert progress.started_at == started
        assert progress.completed_at >= started

    def test_runs_are_isolated(self, tracker: MemoryProgressTracker) -> None:
        """Одна задача в двух прогонах хранится двумя записями."""
        tracker.save_progress(TaskProgress("r1", "a", TaskStatus.FAILED))
        tracker.save_progress(TaskProgress("r2", "a", TaskStatus.COMPLETED))

        assert tracker.get_progress("r1", "a").status == TaskStatus.FAILED
        assert tracker.get_progress("r2", "a").status == TaskStatus.COMPLETED
        assert tracker.list_runs() == ["r1", "r2"]

    def test_list_run_in_plan_order(self, tracker: MemoryProgressTracker) -> None:
        tracker.save_progress(TaskProgress("r1", "z", group_index=0))
        tracker.save_progress(TaskProgress("r1", "c", group_index=1))
        tracker.save_progress(TaskProgress("r1", "b", group_index=1))
        tracker.save_progress(TaskProgress("r1", "late"))
        tracker.save_progress(TaskProgress("r2", "a", group_index=0))

        assert [p.task_name for p in tracker.list_run("r1")] == ["z", "b", "c", "late"]
        assert tracker.list_run("unknown") == []

    def test_clear_run(self, tracker: MemoryProgressTracker) -> None:
        tracker.mark_completed("r1", "a")
        tracker.mark_completed("r1", "b")
        tracker.mark_completed("r2", "a")

        assert tracker.clear_run("r1") == 2
        assert tracker.clear_run("r1") == 0
        assert tracker.list_runs() == ["r2"]


class TestRunnerProgress:
    """Прогон записывает статусы задач в трекер."""

    def test_successful_run(self, host, registry, tracker) -> None:
        runner = run(host, "A", ["B", "C"], registry=registry, progress_tracker=tracker)
        host.run_pending()

        rows = tracker.list_run(runner.run_id)
        assert [(p.group_index, p.task_name) for p in rows] == [(0, "A"), (1, "B"), (1, "C")]
        assert {p.status for p in rows} == {TaskStatus.COMPLETED}

    def test_pending_recorded_before_start(self, host, registry, tracker) -> None:
        runner = run(host, "A", ["B", "C"], "D", registry=registry, progress_tracker=tracker)

        assert tracker.get_progress(runner.run_id, "A").status == TaskStatus.PENDING
        pending = tracker.get_progress(runner.run_id, "D")
        assert pending.status == TaskStatus.PENDING
        assert pending.group_index == 2

    def test_failed_run(self, registry, tracker) -> None:
        host = MemoryTaskHost({"A": None, "B": None, "C": boom, "D": None})
        runner = run(host, "A", ["B", "C"], "D", registry=registry, progress_tracker=tracker)
        host.run_pending()

        statuses = {p.task_name: p.status for p in tracker.list_run(runner.run_id)}
        assert statuses == {
            "A": TaskStatus.COMPLETED,
            "B": TaskStatus.COMPLETED,
            "C": TaskStatus.FAILED,
            "D": TaskStatus.CANCELLED,
        }
        failed = tracker.get_progress(runner.run_id, "C")
        assert failed.error_message == "boom"
        assert failed.started_at is not None

    def test_stopped_run(self, host, registry, tracker) -> None:
        registry.register("task_stop", lambda e: False if e.task == "A" else None)
        runner = run(host, "A", "B", registry=registry, progress_tracker=tracker)
        host.run_pending()

        assert tracker.get_progress(runner.run_id, "A").status == TaskStatus.IN_PROGRESS
        assert tracker.get_progress(runner.run_id, "B").status == TaskStatus.CANCELLED

    def test_concurrent_runs_share_tracker(self, registry, tracker) -> None:
        """Два прогона с одной задачей не перезаписывают записи друг друга."""
        host = MemoryTaskHost({"A": None, "B": boom})
        ok = run(host, "A", registry=registry, progress_tracker=tracker)
        bad = run(host, "B", "A", registry=registry, progress_tracker=tracker)
        host.run_pending()

        assert tracker.get_progress(ok.run_id, "A").status == TaskStatus.COMPLETED
        assert tracker.get_progress(bad.run_id, "A").status == TaskStatus.CANCELLED
        assert tracker.get_progress(bad.run_id, "B").status == TaskStatus.FAILED

    def test_repeated_name_shares_one_record(self, host, registry, tracker) -> None:
        runner = run(host, "A", "B", "A", registry=registry, progress_tracker=tracker)
        host.run_pending()

        rows = tracker.list_run(runner.run_id)
        assert [(p.group_index, p.task_name) for p in rows] == [(1, "B"), (2, "A")]
        assert {p.status for p in rows} == {TaskStatus.COMPLETED}

    def test_tracker_used_in_transactions(self, host, registry) -> None:
        tracker = Mock(wraps=MemoryProgressTracker())
        runner = run(host, "A", registry=registry, progress_tracker=tracker)
        host.run_pending()

        assert tracker.transaction.call_count >= 3
        tracker.mark_completed.assert_called_once_with(runner.run_id, "A")


class TestSQLProgressTracker:
    """Тесты для SQLProgressTracker на SQLite."""

    @pytest.fixture
    def sql_tracker(self, tmp_path: Path):
        pytest.importorskip("sqlalchemy")
        from run_sequence.adapters.sql import SQLProgressTracker

        return SQLProgressTracker(f"sqlite:///{tmp_path / 'progress.db'}")

    def test_save_and_get(self, sql_tracker) -> None:
        started = datetime(2024, 1, 1, 12, 0)
        sql_tracker.save_progress(
            TaskProgress(
                "r1",
                "a",
                TaskStatus.FAILED,
                group_index=2,
                started_at=started,
                error_message="boom",
                metadata={"attempt": 1},
            )
        )

        progress = sql_tracker.get_progress("r1", "a")
        assert progress.status == TaskStatus.FAILED
        assert progress.group_index == 2
        assert progress.started_at == started
        assert progress.error_message == "boom"
        assert progress.metadata == {"attempt": 1}
        assert sql_tracker.get_progress("r1", "missing") is None

    def test_save_overwrites_within_run(self, sql_tracker) -> None:
        sql_tracker.save_progress(TaskProgress("r1", "a", TaskStatus.PENDING))
        sql_tracker.save_progress(TaskProgress("r1", "a", TaskStatus.IN_PROGRESS))
        assert sql_tracker.get_progress("r1", "a").status == TaskStatus.IN_PROGRESS
        assert len(sql_tracker.list_run("r1")) == 1

    def test_runs_are_isolated(self, sql_tracker) -> None:
        sql_tracker.save_progress(TaskProgress("r1", "a", TaskStatus.FAILED))
        sql_tracker.save_progress(TaskProgress("r2", "a", TaskStatus.COMPLETED))

        assert sql_tracker.get_progress("r1", "a").status == TaskStatus.FAILED
        assert sql_tracker.get_progress("r2", "a").status == TaskStatus.COMPLETED
        assert sql_tracker.list_runs() == ["r1", "r2"]

    def test_list_run_in_plan_order(self, sql_tracker) -> None:
        sql_tracker.save_progress(TaskProgress("r1", "late"))
        sql_tracker.save_progress(TaskProgress("r1", "c", group_index=1))
        sql_tracker.save_progress(TaskProgress("r1", "z", group_index=0))
        sql_tracker.save_progress(TaskProgress("r1", "b", group_index=1))

        names = [p.task_name for p in sql_tracker.list_run("r1")]
        assert names == ["z", "b", "c", "late"]

    def test_mark_completed_and_clear_run(self, sql_tracker) -> None:
        sql_tracker.mark_completed("r1", "a")
        sql_tracker.mark_completed("r2", "a")
        assert sql_tracker.get_progress("r1", "a").status == TaskStatus.COMPLETED

        assert sql_tracker.clear_run("r1") == 1
        assert sql_tracker.get_progress("r1", "a") is None
        assert sql_tracker.get_progress("r2", "a") is not None

    def test_transaction_commits(self, sql_tracker) -> None:
        with sql_tracker.transaction():
            sql_tracker.save_progress(TaskProgress("r1", "a", TaskStatus.PENDING))
            sql_tracker.mark_completed("r1", "a")
        assert sql_tracker.get_progress("r1", "a").status == TaskStatus.COMPLETED

    def test_transaction_rolls_back(self, sql_tracker) -> None:
        with pytest.raises(RuntimeError):
            with sql_tracker.transaction():
                sql_tracker.save_progress(TaskProgress("r1", "a"))
                raise RuntimeError("abort")
        assert sql_tracker.get_progress("r1", "a") is None

    def test_with_runner(self, registry, sql_tracker) -> None:
        host = MemoryTaskHost({"A": None, "B": boom, "C": None})
        runner = run(host, "A", "B", "C", registry=registry, progress_tracker=sql_tracker)
        host.run_pending()

        rows = sql_tracker.list_run(runner.run_id)
        assert [(p.task_name, p.status) for p in rows] == [
            ("A", TaskStatus.COMPLETED),
            ("B", TaskStatus.FAILED),
            ("C", TaskStatus.CANCELLED),
        ]

    def test_bad_connection_string(self) -> None:
        pytest.importorskip("sqlalchemy")
        from run_sequence.adapters.sql import SQLProgressTracker

        with pytest.raises(ProgressError):
            SQLProgressTracker("not-a-database-url")
