"""A small event loop with timed callbacks and the application base class."""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass(order=True)
class _Timer:
    deadline: float
    seq: int
    callback: Callable[..., Any] = field(compare=False)
    args: tuple[Any, ...] = field(compare=False, default=())
    cancelled: bool = field(compare=False, default=False)

    def cancel(self) -> None:
        """Prevent the callback from running if it has not run yet."""
        self.cancelled = True


class MainLoop:
    """Runs callbacks once their delay has elapsed, in deadline then FIFO order."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._timers: list[_Timer] = []
        self._counter = itertools.count()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def call_later(self, delay: float, func: Callable[..., Any], *args: Any) -> _Timer:
        """Schedule ``func(*args)`` to run after ``delay`` seconds."""
        if delay < 0:
            raise ValueError("delay must not be negative")
        with self._cond:
            timer = _Timer(time.monotonic() + delay, next(self._counter), func, args)
            heapq.heappush(self._timers, timer)
            self._cond.notify_all()
        return timer

    def call_soon(self, func: Callable[..., Any], *args: Any) -> _Timer:
        """Schedule ``func(*args)`` for the next iteration of the loop."""
        return self.call_later(0, func, *args)

    def run_pending(self) -> int:
        """Run every callback that is due now and return how many ran.

        Callbacks scheduled while this runs wait for the next call.
        """
        now = time.monotonic()
        with self._cond:
            due: list[_Timer] = []
            while self._timers and self._timers[0].deadline <= now:
                timer = heapq.heappop(self._timers)
                if not timer.cancelled:
                    due.append(timer)

        ran = 0
        for position, timer in enumerate(due):
            if timer.cancelled:
                continue
            try:
                timer.callback(*timer.args)
            except BaseException:
                with self._cond:
                    for rest in due[position + 1:]:
                        heapq.heappush(self._timers, rest)
                raise
            ran += 1
        return ran

    def _next_timeout(self) -> float | None:
        while self._timers and self._timers[0].cancelled:
            heapq.heappop(self._timers)
        if not self._timers:
            return None
        return max(0.0, self._timers[0].deadline - time.monotonic())

    def run(self) -> None:
        """Dispatch callbacks until :meth:`quit` is called."""
        with self._cond:
            self._running = True
        while True:
            with self._cond:
                if not self._running:
                    return
            self.run_pending()
            with self._cond:
                if not self._running:
                    return
                timeout = self._next_timeout()
                if timeout is None or timeout > 0:
                    self._cond.wait(timeout)

    def quit(self) -> None:
        """Make :meth:`run` return; safe to call from any thread."""
        with self._cond:
            self._running = False
            self._cond.notify_all()


_default_loop: MainLoop | None = None
_default_lock = threading.Lock()


def get_default_loop() -> MainLoop:
    """Return the process-wide loop, creating it on first use."""
    global _default_loop
    with _default_lock:
        if _default_loop is None:
            _default_loop = MainLoop()
        return _default_loop


def run_async(func: Callable[[], Any], delay: float = 0) -> _Timer:
    """Run ``func`` on the default loop after ``delay`` seconds."""
    return get_default_loop().call_later(delay, func)


class App(ABC):
    """Base class for an application driven by the default main loop."""

    def __init__(self) -> None:
        self._loop: MainLoop | None = None

    @property
    def main_loop(self) -> MainLoop | None:
        return self._loop

    def create(self) -> None:
        """Attach to the main loop and initialise the application."""
        self._loop = get_default_loop()
        self.on_create()

    def run(self) -> None:
        """Run the main loop; returns at once if the app was not created."""
        loop = self._loop
        if loop is None:
            return
        loop.run()

    def quit(self) -> None:
        """Stop the main loop and tear the application down."""
        if self._loop is not None:
            self._loop.quit()
        self.destroy()

    def destroy(self) -> None:
        """Tear the application down and release the main loop."""
        self.on_destroy()
        self._loop = None

    @abstractmethod
    def on_create(self) -> None:
        """Called once the main loop is available."""

    @abstractmethod
    def on_destroy(self) -> None:
        """Called when the application is torn down."""