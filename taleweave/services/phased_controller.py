"""
Phased Controller - shared machinery of the round and reveal controllers.

A phased controller owns a PhaseTimer, one consensus subscription for the
current phase, and a single-worker executor that publishes intents in order
without blocking the tick loop. Timer ticks, consensus events and
participant actions all enter through the controller's lock.
"""

import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, List, Optional

from taleweave.config.game_settings import GameSettings, get_game_settings
from taleweave.core.entities import Player, Room, Tale
from taleweave.core.errors import ErrorCode, ValidationError
from taleweave.core.game_phases import ConsensusEvent
from taleweave.core.phase_timer import PhaseTimer
from taleweave.services.base_service import BaseService
from taleweave.services.consensus_channel import ConsensusChannel, Subscription


class PhasedController(BaseService):
    """Countdown controller with an early-completion override from consensus."""

    def __init__(self, room: Room, players: List[Player], player: Player, tales: List[Tale],
                 channel: ConsensusChannel, session, settings: Optional[GameSettings] = None,
                 scheduler=None, executor: Optional[Executor] = None):
        """
        Args:
            room: Room the intents are published for
            players: Roster in turn order
            player: The local participant
            tales: Tale set the phase runs over
            channel: Consensus channel for intents and consensus events
            session: Game-session collaborator receiving emit_* notifications
            settings: Timing settings, global settings when omitted
            scheduler: Tick scheduler for the phase timer
            executor: Executor publishing intents; a private single worker when omitted
        """
        self.room = room
        self.players = list(players)
        self.player = player
        self.tales = list(tales)
        self._channel = channel
        self._session = session
        self.settings = settings or get_game_settings()
        self._lock = threading.RLock()
        self._timer = PhaseTimer(self.settings.tick_interval, scheduler=scheduler, lock=self._lock)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"{self.__class__.__name__}-dispatch"
        )
        self._subscription: Optional[Subscription] = None
        super().__init__()

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def player_index(self) -> int:
        for index, candidate in enumerate(self.players):
            if candidate.id == self.player.id:
                return index
        raise ValidationError(
            ErrorCode.PLAYER_NOT_IN_ROSTER,
            f"Player {self.player.name} is not in the roster",
            {'player_id': self.player.id},
        )

    @property
    def timer(self) -> PhaseTimer:
        return self._timer

    @property
    def time_remaining(self) -> Optional[int]:
        return self._timer.remaining

    def _subscribe(self, event: ConsensusEvent, handler: Callable) -> None:
        """Replace the current phase's subscription."""
        self._cancel_subscription()
        self._subscription = self._channel.subscribe(event, handler)

    def _cancel_subscription(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.cancel()

    def _dispatch(self, description: str, *steps: Callable[[], object]) -> Optional[Future]:
        """
        Run channel requests in order on the dispatch executor.

        A failing step stops the remaining steps of the same dispatch, so a
        readiness intent is never published for content that was not stored.
        """
        if self.is_shutdown:
            self.log_debug(f"Not dispatching '{description}' after shutdown")
            return None

        def run():
            for step in steps:
                step()

        future = self._executor.submit(run)
        future.add_done_callback(lambda done: self._on_dispatch_done(description, done))
        return future

    def _on_dispatch_done(self, description: str, future: Future) -> None:
        if future.cancelled():
            self.log_warning(f"Dispatch cancelled: {description}")
            return
        error = future.exception()
        if error is not None:
            self.log_error(f"Failed to {description}", exception=error, room_id=self.room.id)

    def _cleanup(self) -> None:
        with self._lock:
            self._timer.stop()
            self._cancel_subscription()
        if self._owns_executor:
            self._executor.shutdown(wait=False)
