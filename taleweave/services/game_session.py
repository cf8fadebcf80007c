"""
Game Session - one participant's view of a running game.

Owns the tale set and the game state, receives the controllers' emit_*
notifications and routes between phases: the writing phase runs first, the
finalized tales are then read back, and the session shuts its controllers
down when the game ends. Listeners (the view layer) are told about every
state change and tale update.
"""

from typing import Callable, List, Optional

from taleweave.config.game_settings import GameSettings, get_game_settings
from taleweave.core.entities import Player, Room, Tale, copy_tales
from taleweave.core.game_phases import GameState
from taleweave.core.tale_indexing import build_tales
from taleweave.services.base_service import BaseService
from taleweave.services.consensus_channel import ConsensusChannel
from taleweave.services.reveal_controller import RevealController
from taleweave.services.round_controller import RoundController
from taleweave.utils.error_handling import log_callback_error, safely_execute

GAME_STATE_CHANGED = 'game_state_changed'
TALES_UPDATED = 'tales_updated'


class GameSession(BaseService):
    """Game-session collaborator for the round and reveal controllers."""

    def __init__(self, room: Room, players: List[Player], player: Player, channel: ConsensusChannel,
                 tales: Optional[List[Tale]] = None, settings: Optional[GameSettings] = None,
                 scheduler=None, executor_factory: Optional[Callable] = None):
        """
        Args:
            room: Room the game is played in
            players: Roster in turn order
            player: The local participant
            channel: Consensus channel shared by both phases
            tales: Initial tale set, built from the roster when omitted
            settings: Timing settings for both controllers
            scheduler: Tick scheduler for the controllers' timers
            executor_factory: Callable returning the dispatch executor of each controller
        """
        self.room = room
        self.players = list(players)
        self.player = player
        self.channel = channel
        self.tales = copy_tales(tales) if tales is not None else build_tales(players)
        self.settings = settings or get_game_settings()
        self._scheduler = scheduler
        self._executor_factory = executor_factory
        super().__init__()

    def _initialize(self) -> None:
        self.game_state: Optional[GameState] = None
        self.round_controller: Optional[RoundController] = None
        self.reveal_controller: Optional[RevealController] = None
        self._listeners: List[Callable] = []

    def add_listener(self, listener: Callable[[str, object], None]) -> Callable[[], None]:
        """
        Register a listener called with (event_name, payload).

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return remove

    def _notify(self, event_name: str, payload) -> None:
        for listener in list(self._listeners):
            safely_execute(
                lambda: listener(event_name, payload),
                error_handler=lambda e: log_callback_error(f"{event_name} listener", e),
            )

    def _controller_kwargs(self) -> dict:
        return {
            'room': self.room,
            'players': self.players,
            'player': self.player,
            'channel': self.channel,
            'session': self,
            'settings': self.settings,
            'scheduler': self._scheduler,
            'executor': self._executor_factory() if self._executor_factory else None,
        }

    def start(self) -> RoundController:
        """Start the writing phase."""
        if self.round_controller is not None:
            return self.round_controller
        self.round_controller = RoundController(tales=self.tales, **self._controller_kwargs())
        self.emit_game_state_change(GameState.WRITING)
        self.round_controller.start()
        return self.round_controller

    def emit_tales_updated(self, tales: List[Tale]) -> None:
        self.tales = list(tales)
        self.log_info(f"Tales updated ({len(self.tales)} tales)", room_id=self.room.id)
        self._notify(TALES_UPDATED, self.tales)

    def emit_game_state_change(self, new_state: GameState) -> None:
        if new_state == self.game_state:
            self.log_debug(f"Game already in state {new_state.value}")
            return
        previous, self.game_state = self.game_state, new_state
        self.log_info(
            f"Game state {previous.value if previous else 'none'} -> {new_state.value}",
            room_id=self.room.id,
        )
        self._notify(GAME_STATE_CHANGED, new_state)

        if new_state == GameState.AFTER_GAME:
            self._start_reveal()
        elif new_state == GameState.GAME_ENDED:
            self._stop_controllers()

    def _start_reveal(self) -> None:
        if self.round_controller is not None:
            self.round_controller.shutdown()
        self.reveal_controller = RevealController(tales=self.tales, **self._controller_kwargs())
        self.reveal_controller.start()

    def _stop_controllers(self) -> None:
        for controller in (self.round_controller, self.reveal_controller):
            if controller is not None:
                controller.shutdown()

    @property
    def is_finished(self) -> bool:
        return self.game_state == GameState.GAME_ENDED

    def _cleanup(self) -> None:
        self._stop_controllers()
        self._listeners.clear()
