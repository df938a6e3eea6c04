from contextlib import contextmanager
from typing import Iterator, List

from fitloop.exceptions import CallbackNotFoundError, RegistryLockedError
from fitloop.static import EVENTS
from fitloop.training.event.handler import Callback


class CallbackRegistry:
    r"""
    Ordered collection of :class:`~fitloop.training.event.handler.Callback`
    objects. Events are dispatched to the callbacks in the same order in
    which they have been added.

    Args:
        callbacks (List[Callback]): callbacks to register straight away,
            in order. Default is ``None``.
    """

    def __init__(self, callbacks: List[Callback] = None):
        self._callbacks = []
        self._dispatching = False
        for c in callbacks or []:
            self.add(c)

    def _check_unlocked(self):
        if self._dispatching:
            raise RegistryLockedError(
                "Callbacks cannot be added or removed while an event is "
                "being dispatched."
            )

    def add(self, callback: Callback):
        """
        Appends a callback to the registry

        Args:
            callback (:class:`~fitloop.training.event.handler.Callback`):
                the callback to register
        """
        self._check_unlocked()
        self._callbacks.append(callback)

    def remove(self, callback: Callback, last: bool = False):
        """
        Removes the first (or, with ``last=True``, the last) registration
        of ``callback``

        Args:
            callback (:class:`~fitloop.training.event.handler.Callback`):
                the callback to remove
            last (bool): whether to remove the last registration instead
                of the first one. Default is ``False``

        Raises:
            CallbackNotFoundError: if the callback is not registered
        """
        self._check_unlocked()
        indices = range(len(self._callbacks))
        for i in reversed(indices) if last else indices:
            if self._callbacks[i] is callback:
                del self._callbacks[i]
                return
        raise CallbackNotFoundError(f"Callback {callback!r} is not registered.")

    @contextmanager
    def _locked(self):
        previous = self._dispatching
        self._dispatching = True
        try:
            yield
        finally:
            self._dispatching = previous

    def dispatch(self, event_name: str, learner):
        """
        Triggers the hook ``event_name`` of every registered callback, in
        registration order. If a callback raises (a cancel signal or any
        other error), the remaining callbacks are skipped and the exception
        propagates to the caller.

        Args:
            event_name (str): one of the event names in
                :obj:`fitloop.static.EVENTS`
            learner (:class:`~fitloop.training.learner.Learner`): the learner
                passed to every hook

        Raises:
            ValueError: if ``event_name`` is not a known event
        """
        if event_name not in EVENTS:
            raise ValueError(f"Unknown event {event_name!r}.")
        with self._locked():
            for c in self._callbacks:
                getattr(c, event_name)(learner)

    def __len__(self) -> int:
        return len(self._callbacks)

    def __iter__(self) -> Iterator[Callback]:
        return iter(list(self._callbacks))

    def __contains__(self, callback) -> bool:
        return any(c is callback for c in self._callbacks)

    def __repr__(self) -> str:
        return f"CallbackRegistry({self._callbacks!r})"
