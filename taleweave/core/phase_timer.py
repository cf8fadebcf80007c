"""
Phase Timer - restartable countdown owned by a single controller.

The timer counts ticks at a fixed cadence and hands each tick to its owner.
Ticks come from a scheduler: ThreadScheduler runs a background loop per
activation, and tests plug in a scheduler they advance by hand. Every tick is
delivered while holding the owner's lock, so ticks never run concurrently
with the owner's other callbacks.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RepeatingTask:
    """Background loop calling a callback every interval until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], None], name: str = "phase-timer"):
        self.interval = interval
        self.callback = callback
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> "RepeatingTask":
        self._thread.start()
        return self

    def _run(self):
        while not self._stop_event.wait(self.interval):
            try:
                self.callback()
            except Exception as e:
                logger.error(f"Error in timer loop: {e}", exc_info=True)

    def cancel(self):
        # No join: cancel may run on this task's own thread or while the
        # owner's lock is held; the timer drops late ticks itself.
        self._stop_event.set()

    @property
    def cancelled(self) -> bool:
        return self._stop_event.is_set()

    def is_alive(self) -> bool:
        return self._thread.is_alive()


class ThreadScheduler:
    """Schedules repeating callbacks on daemon threads."""

    def __init__(self, thread_name_prefix: str = "taleweave-timer"):
        self.thread_name_prefix = thread_name_prefix
        self._counter = 0
        self._lock = threading.Lock()

    def schedule_repeating(self, interval: float, callback: Callable[[], None]) -> RepeatingTask:
        with self._lock:
            self._counter += 1
            name = f"{self.thread_name_prefix}-{self._counter}"
        return RepeatingTask(interval, callback, name=name).start()


class PhaseTimer:
    """
    Restartable countdown.

    start() arms an activation; stop() ends it and is safe to call at any
    time; reset() zeroes the elapsed count without stopping. When a deadline
    is given, on_complete(expired) fires exactly once per activation: with
    True after the deadline tick, with False when stopped before it.
    """

    def __init__(self, interval: float = 1.0, scheduler=None, lock=None):
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        self.interval = interval
        self._scheduler = scheduler or ThreadScheduler()
        self._lock = lock or threading.RLock()
        self._elapsed = 0
        self._deadline: Optional[int] = None
        self._activation = 0
        self._handle = None
        self._on_tick: Optional[Callable[[], None]] = None
        self._on_complete: Optional[Callable[[bool], None]] = None

    @property
    def elapsed(self) -> int:
        return self._elapsed

    @property
    def running(self) -> bool:
        return self._handle is not None

    @property
    def deadline(self) -> Optional[int]:
        return self._deadline

    @property
    def remaining(self) -> Optional[int]:
        if self._deadline is None:
            return None
        return max(0, self._deadline - self._elapsed)

    def start(self, on_tick: Optional[Callable[[], None]] = None, deadline: Optional[int] = None,
              on_complete: Optional[Callable[[bool], None]] = None) -> None:
        """Arm a new activation, stopping the previous one first."""
        if deadline is not None and deadline < 1:
            raise ValueError(f"Timer deadline must be at least one tick, got {deadline}")
        with self._lock:
            self.stop()
            self._activation += 1
            activation = self._activation
            self._on_tick = on_tick
            self._on_complete = on_complete
            self._deadline = deadline
            self._handle = self._scheduler.schedule_repeating(
                self.interval, lambda: self._fire(activation)
            )
            logger.debug(f"Timer started (activation {activation}, deadline {deadline})")

    def stop(self) -> None:
        with self._lock:
            if self._handle is None:
                return
            self._finish(expired=False)

    def reset(self) -> None:
        with self._lock:
            self._elapsed = 0

    def _fire(self, activation: int) -> None:
        with self._lock:
            if activation != self._activation or self._handle is None:
                return
            self._elapsed += 1
            if self._on_tick is not None:
                self._on_tick()
            # on_tick may have stopped or restarted the timer
            if activation != self._activation or self._handle is None:
                return
            if self._deadline is not None and self._elapsed >= self._deadline:
                self._finish(expired=True)

    def _finish(self, expired: bool) -> None:
        handle, self._handle = self._handle, None
        handle.cancel()
        on_complete = self._on_complete
        self._on_tick = None
        self._on_complete = None
        logger.debug(f"Timer activation {self._activation} finished (expired={expired})")
        if on_complete is not None:
            on_complete(expired)

    def __repr__(self) -> str:
        return f"PhaseTimer(elapsed={self._elapsed}, running={self.running}, deadline={self._deadline})"
