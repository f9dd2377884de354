"""Central state store.

The :class:`Store` owns the current :class:`AppState` snapshot. Every
change goes through :meth:`Store.dispatch`, which runs the pure reducer
and then notifies subscribers with the old and new snapshots. Side
effects (backend calls, persistence, theme application) live in those
subscribers, never in the reducer.
"""

import logging
from collections.abc import Callable

from gosh_usb.state.actions import Action
from gosh_usb.state.reducer import reduce
from gosh_usb.state.snapshot import AppState

logger = logging.getLogger(__name__)

Reducer = Callable[[AppState, Action], AppState]
Listener = Callable[[AppState, AppState], None]


class Store:
    """Single owner of the application state snapshot."""

    def __init__(
        self, initial: AppState | None = None, reducer: Reducer = reduce
    ) -> None:
        self._state = initial if initial is not None else AppState()
        self._reducer = reducer
        self._listeners: list[Listener] = []

    @property
    def state(self) -> AppState:
        """Current snapshot."""
        return self._state

    def dispatch(self, action: Action) -> AppState:
        """Apply an action and notify subscribers if the snapshot changed.

        Args:
            action: Action to apply.

        Returns:
            The snapshot after the action.
        """
        old = self._state
        new = self._reducer(old, action)
        if new is old:
            logger.debug("Ignored %s", type(action).__name__)
            return old

        self._state = new
        logger.debug("Applied %s", type(action).__name__)
        if new.write_phase != old.write_phase:
            logger.info(
                "Write phase %s -> %s", old.write_phase.value, new.write_phase.value
            )

        for listener in list(self._listeners):
            listener(old, new)
        return new

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with ``(old, new)`` after each change.

        Returns:
            Callable that removes the listener. Safe to call more than once.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


__all__ = ["Listener", "Reducer", "Store"]
