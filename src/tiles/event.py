import collections
from typing import Any, Callable

EventListener = Callable[..., Any]


class EventEmitter:
    """
    Synchronous publish-subscribe.

    Listeners run in registration order, inside emit().
    """

    listeners: dict[str, list[EventListener]]

    def __init__(self):
        self.listeners = collections.defaultdict(list)

    def add_listener(
        self,
        name: str,
        fn: EventListener,
        prepend: bool = False,
    ) -> None:
        listeners = self.listeners[name]

        if prepend:
            listeners.insert(0, fn)
        else:
            listeners.append(fn)

    def remove_listener(self, name: str, fn: EventListener) -> bool:
        """Remove the first registration of fn. Return False if absent."""
        listeners = self.listeners.get(name)
        if not listeners:
            return False

        try:
            listeners.remove(fn)
        except ValueError:
            return False
        return True

    def listener_count(self, name: str) -> int:
        return len(self.listeners.get(name, ()))

    def emit(
        self,
        /,
        name: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any] | None = None,
    ) -> None:
        listeners = self.listeners.get(name)
        if not listeners:
            return
        if kwargs is None:
            kwargs = {}
        # listeners may unsubscribe themselves while being called
        for fn in tuple(listeners):
            fn(*args, **kwargs)
