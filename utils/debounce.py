"""
Debounce Utility
Collapses a burst of calls into one trailing call made with the latest arguments.
"""

import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger("Debounce")


class Debouncer:
    """
    Wrap ``func`` so that calling the wrapper (re)starts a ``delay`` second timer.

    ``func`` runs once, on a timer thread, with the arguments of the most recent
    call after ``delay`` seconds pass without another call. At most one
    invocation is ever pending.
    """

    def __init__(self, func: Callable[..., Any], delay: float, name: Optional[str] = None):
        self.func = func
        self.delay = delay
        self.name = name or getattr(func, "__name__", "debounced")
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._args: tuple = ()
        self._kwargs: dict = {}
        self._generation = 0

    def __call__(self, *args, **kwargs):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._args = args
            self._kwargs = kwargs
            self._generation += 1
            self._timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def _take(self, generation: Optional[int] = None):
        """Claim the pending call, if any. Returns (args, kwargs) or None."""
        with self._lock:
            if self._timer is None:
                return None
            # a timer superseded by a newer call must not claim the new arguments
            if generation is not None and generation != self._generation:
                return None
            self._timer.cancel()
            self._timer = None
            args, kwargs = self._args, self._kwargs
            self._args, self._kwargs = (), {}
            return args, kwargs

    def _fire(self, generation: int):
        call = self._take(generation)
        if call is None:
            return
        args, kwargs = call
        try:
            self.func(*args, **kwargs)
        except Exception:
            logger.exception(f"[DEBOUNCE] '{self.name}' raised")

    def flush(self) -> bool:
        """Run the pending call now on the caller's thread. Returns True if one ran."""
        call = self._take()
        if call is None:
            return False
        args, kwargs = call
        self.func(*args, **kwargs)
        return True

    def cancel(self) -> bool:
        """Drop the pending call without running it"""
        return self._take() is not None


def debounce(delay: float):
    """Decorator form: ``@debounce(1.0)``"""

    def decorator(func):
        return Debouncer(func, delay)

    return decorator
