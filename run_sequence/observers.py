"""Реестр наблюдателей за событиями жизненного цикла задач."""

from __future__ import annotations

from run_sequence.events import EventKind, TaskEvent
from run_sequence.interfaces import Observer
from run_sequence.logging import get_logger

# Значение, которое наблюдатель возвращает, чтобы остановить прогон
STOP = False


class ObserverHandle:
    """Дескриптор регистрации наблюдателя.

    Вызов дескриптора снимает ровно ту регистрацию, которая его
    вернула. Повторный вызов ничего не делает.
    """

    def __init__(
        self, registry: ObserverRegistry, kind: EventKind, entry: _Registration
    ) -> None:
        self._registry = registry
        self._kind = kind
        self._entry = entry
        self._active = True

    @property
    def active(self) -> bool:
        """True, пока наблюдатель зарегистрирован."""
        return self._active

    def __call__(self) -> None:
        if not self._active:
            return
        self._active = False
        self._registry._remove(self._kind, self._entry)


class _Registration:
    """Обертка, делающая каждую регистрацию уникальной по идентичности."""

    __slots__ = ("callback",)

    def __init__(self, callback: Observer) -> None:
        self.callback = callback


class ObserverRegistry:
    """Таблица наблюдателей: вид события -> упорядоченный список обратных вызовов.

    Живет дольше любого отдельного прогона и разделяется всеми прогонами,
    которые получили этот реестр. Наблюдатели вызываются в порядке
    регистрации. Если наблюдатель возвращает ровно False, обход
    прекращается и прогон останавливается без ошибки.

    Обход идет по снимку списка, поэтому регистрация и отмена
    регистрации во время dispatch не влияют на текущий обход.

    Пример использования:
        >>> registry = ObserverRegistry()
        >>> def stop_on_deploy(event):
        ...     if event.task == "deploy":
        ...         return False
        >>> unregister = registry.register("task_start", stop_on_deploy)
        >>> registry.dispatch(EventKind.TASK_START, TaskStarted("deploy"))
        True
        >>> unregister()
    """

    def __init__(self) -> None:
        self._observers: dict[EventKind, list[_Registration]] = {
            kind: [] for kind in EventKind
        }

    def register(self, kind: EventKind | str, callback: Observer) -> ObserverHandle:
        """Регистрирует наблюдателя для вида событий.

        Args:
            kind: Вид события или его строковое значение
            callback: Наблюдатель, получающий событие

        Returns:
            Дескриптор для отмены регистрации

        Raises:
            ValueError: Если вид события неизвестен
            TypeError: Если callback не вызываемый
        """
        event_kind = EventKind.coerce(kind)
        if not callable(callback):
            raise TypeError(f"Observer must be callable, got {callback!r}")
        entry = _Registration(callback)
        self._observers[event_kind].append(entry)
        return ObserverHandle(self, event_kind, entry)

    def dispatch(self, kind: EventKind | str, event: TaskEvent) -> bool:
        """Передает событие наблюдателям.

        Args:
            kind: Вид события
            event: Событие

        Returns:
            True, если один из наблюдателей вернул False и обход прерван
        """
        event_kind = EventKind.coerce(kind)
        for entry in tuple(self._observers[event_kind]):
            if entry.callback(event) is STOP:
                get_logger(getattr(event, "task", None)).debug(
                    f"Observer stopped dispatch of {event_kind.value}"
                )
                return True
        return False

    def observers(self, kind: EventKind | str) -> tuple[Observer, ...]:
        """Возвращает снимок наблюдателей для вида событий."""
        return tuple(e.callback for e in self._observers[EventKind.coerce(kind)])

    def clear(self, kind: EventKind | str | None = None) -> None:
        """Удаляет всех наблюдателей (или только для одного вида событий)."""
        kinds = list(EventKind) if kind is None else [EventKind.coerce(kind)]
        for k in kinds:
            self._observers[k] = []

    def _remove(self, kind: EventKind, entry: _Registration) -> None:
        # Новый список, чтобы не трогать снимки, по которым идет обход
        self._observers[kind] = [e for e in self._observers[kind] if e is not entry]

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._observers.values())
