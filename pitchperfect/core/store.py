"""Replace-not-mutate state container with change subscriptions.

Every store holds a frozen pydantic model. Actions build a new model with
``set_state`` and listeners receive ``(new_state, old_state)``. Consumers that
keep a reference to an old state object never see it change underneath them.
"""

from typing import Any, Callable, Generic, TypeVar

from pydantic import BaseModel

from pitchperfect.core.logging import get_logger

logger = get_logger(__name__)

S = TypeVar("S", bound=BaseModel)

Listener = Callable[[Any, Any], None]


class Store(Generic[S]):
    """Holds one immutable state object and notifies subscribers on replace."""

    def __init__(self, initial: S):
        self._state = initial
        self._listeners: list[Listener] = []

    @property
    def state(self) -> S:
        return self._state

    def set_state(self, **changes: Any) -> S:
        """Replace the current state with a copy carrying ``changes``."""
        previous = self._state
        self._state = previous.model_copy(update=changes)
        self._notify(self._state, previous)
        return self._state

    def replace_state(self, new_state: S) -> S:
        previous = self._state
        self._state = new_state
        self._notify(new_state, previous)
        return new_state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, new_state: S, previous: S) -> None:
        for listener in list(self._listeners):
            try:
                listener(new_state, previous)
            except Exception as e:
                logger.warning(f"Store listener {listener!r} failed: {e}")
