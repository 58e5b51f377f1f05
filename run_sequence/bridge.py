"""Мост между событиями хоста, наблюдателями и прогоном."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from run_sequence.events import EventKind, TaskErrored, TaskEvent, TaskStarted, TaskStopped

if TYPE_CHECKING:
    from run_sequence.interfaces import EventListener, TaskHost
    from run_sequence.observers import ObserverRegistry


class EventBridge:
    """Подписывается на события хоста на время одного прогона.

    Каждое событие сначала передается наблюдателям. Если наблюдатель
    остановил обход, вызывается on_short_circuit и событие дальше не идет.
    Иначе событие уходит соответствующему обработчику прогона.

    Attributes:
        host: Хост задач
        registry: Реестр наблюдателей
    """

    def __init__(self, host: TaskHost, registry: ObserverRegistry) -> None:
        self.host = host
        self.registry = registry
        self._listeners: dict[EventKind, EventListener] = {}
        self._escaped: BaseException | None = None

    @property
    def attached(self) -> bool:
        return bool(self._listeners)

    def attach(
        self,
        on_started: Callable[[TaskStarted], None],
        on_stopped: Callable[[TaskStopped], None],
        on_errored: Callable[[TaskErrored], None],
        on_short_circuit: Callable[[], None],
    ) -> Callable[[], None]:
        """Подписывает мост на три вида событий хоста.

        Args:
            on_started: Обработчик запуска задачи
            on_stopped: Обработчик успешного завершения задачи
            on_errored: Обработчик ошибки задачи
            on_short_circuit: Вызывается, когда наблюдатель вернул False

        Returns:
            Функция отписки; повторный вызов ничего не делает

        Raises:
            RuntimeError: Если мост уже подписан
        """
        if self._listeners:
            raise RuntimeError("EventBridge is already attached")

        handlers: dict[EventKind, Callable[..., None]] = {
            EventKind.TASK_START: on_started,
            EventKind.TASK_STOP: on_stopped,
            EventKind.TASK_ERR: on_errored,
        }
        for kind, handler in handlers.items():
            listener = self._make_listener(kind, handler, on_short_circuit)
            self._listeners[kind] = listener
            self.host.add_listener(kind, listener)

        return self.detach

    def detach(self) -> None:
        """Отписывает мост от всех событий хоста."""
        listeners, self._listeners = self._listeners, {}
        for kind, listener in listeners.items():
            self.host.remove_listener(kind, listener)

    def raised_from_listener(self, error: BaseException) -> bool:
        """True, если исключение вышло из слушателя моста.

        Так прогон отличает ошибки наблюдателей и обратных вызовов,
        выброшенные сквозь start() хоста, от ошибок самого хоста.
        """
        return error is self._escaped

    def _make_listener(
        self,
        kind: EventKind,
        handler: Callable[..., None],
        on_short_circuit: Callable[[], None],
    ) -> EventListener:
        def listener(event: TaskEvent) -> None:
            try:
                if self.registry.dispatch(kind, event):
                    on_short_circuit()
                    return
                handler(event)
            except Exception as e:
                self._escaped = e
                raise

        return listener
