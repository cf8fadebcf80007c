"""
Consensus Channel - the bus between a client and its peers.

Local intents (ready, skip vote) and tale updates go out; consensus events
("everyone is ready", "everyone voted") come back in, asynchronously and at
most once per phase. Handler registration returns a Subscription so a
controller can drop its handlers when a phase ends.
"""

import threading
from abc import ABC, abstractmethod
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from taleweave.core.entities import Tale
from taleweave.core.game_phases import ConsensusEvent, IntentKind
from taleweave.utils.error_handling import log_callback_error, safely_execute


class Subscription:
    """Cancellation token for a registered handler."""

    def __init__(self, event: ConsensusEvent, cancel_callback: Optional[Callable[[], None]] = None):
        self.event = event
        self._cancel_callback = cancel_callback
        self._active = True
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Remove the handler; safe to call more than once."""
        with self._lock:
            if not self._active:
                return
            self._active = False
            callback, self._cancel_callback = self._cancel_callback, None
        if callback is not None:
            callback()

    def __repr__(self) -> str:
        return f"Subscription(event={self.event.value}, active={self._active})"


class HandlerRegistry:
    """Per-event handler lists shared by the channel implementations."""

    def __init__(self):
        self._handlers: Dict[ConsensusEvent, List[tuple]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event: ConsensusEvent, handler: Callable[..., Any]) -> Subscription:
        subscription = Subscription(event)
        entry = (subscription, handler)
        with self._lock:
            self._handlers.setdefault(event, []).append(entry)
        subscription._cancel_callback = partial(self._remove, event, entry)
        return subscription

    def _remove(self, event: ConsensusEvent, entry: tuple) -> None:
        with self._lock:
            handlers = self._handlers.get(event, [])
            if entry in handlers:
                handlers.remove(entry)

    def handler_count(self, event: ConsensusEvent) -> int:
        with self._lock:
            return len(self._handlers.get(event, []))

    def dispatch(self, event: ConsensusEvent, *args) -> int:
        """
        Call every active handler for an event.

        Handlers are snapshotted before dispatch and called without the
        registry lock held. A failing handler is logged and does not stop
        the others. Returns the number of handlers called.
        """
        with self._lock:
            entries = list(self._handlers.get(event, []))

        called = 0
        for subscription, handler in entries:
            if not subscription.active:
                continue
            safely_execute(
                lambda: handler(*args),
                error_handler=lambda e: log_callback_error(f"{event.value} handler", e),
            )
            called += 1
        return called

    def clear(self) -> None:
        with self._lock:
            entries = [entry for handlers in self._handlers.values() for entry in handlers]
            self._handlers.clear()
        for subscription, _ in entries:
            subscription._active = False


class ConsensusChannel(ABC):
    """Abstract bidirectional notification bus."""

    @abstractmethod
    def submit_tale_update(self, tale: Tale) -> Any:
        """Durably store a tale's chapter edits; returns the acknowledgement."""

    @abstractmethod
    def publish_intent(self, room_id: str, kind: IntentKind, value: bool) -> Any:
        """Publish the local participant's ready or skip-vote intent."""

    @abstractmethod
    def subscribe(self, event: ConsensusEvent, handler: Callable[..., Any]) -> Subscription:
        """
        Register a consensus handler.

        EVERYONE_READY handlers receive the updated tale set;
        EVERYONE_VOTED handlers receive no arguments.
        """

    def close(self) -> None:
        """Release the channel; handlers stop firing."""
