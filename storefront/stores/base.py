from typing import Callable, Generic, TypeVar

from pydantic import BaseModel

S = TypeVar("S", bound=BaseModel)

Listener = Callable[[BaseModel], None]


class Store(Generic[S]):
    """
    Holds one immutable state model and swaps it as a whole.

    Readers only ever see a complete state: every transition builds a new
    model with ``model_copy`` and replaces the old one in a single assignment,
    then notifies subscribers with the new state.
    """

    def __init__(self, initial: S):
        self._state = initial
        self._listeners: list[Listener] = []

    @property
    def state(self) -> S:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(state)`` after every transition. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes):
        self._state = self._state.model_copy(update=changes)
        for listener in list(self._listeners):
            listener(self._state)
