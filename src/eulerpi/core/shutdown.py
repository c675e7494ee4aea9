"""Cooperative cancellation for the read loop."""

from __future__ import annotations

import signal
from typing import Any, Dict, Iterable


class ShutdownSignal:
    """
    Cancellation flag set by a signal handler and polled by the loop.

    The handler only assigns a boolean, so it is safe to run at any point of
    the main thread, including while a driver read or a sleep is in
    progress. The loop looks at the flag once per cycle. There is no reset:
    a new instance is needed to sample again.
    """

    def __init__(self) -> None:
        self._requested = False
        self._previous: Dict[int, Any] = {}

    def _handler(self, signum, frame) -> None:
        self._requested = True

    def install(self, signals: Iterable[int] = (signal.SIGINT,)) -> "ShutdownSignal":
        """Route ``signals`` to this flag, remembering the handlers they replace."""
        for signum in signals:
            self._previous[signum] = signal.getsignal(signum)
            signal.signal(signum, self._handler)
        return self

    def restore(self) -> None:
        """Put back the handlers replaced by :meth:`install`."""
        while self._previous:
            signum, handler = self._previous.popitem()
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)

    def request(self) -> None:
        self._requested = True

    def is_set(self) -> bool:
        return self._requested
