"""
Game Session Unit Tests
Tests phase routing between the writing and reading controllers and listener
notifications.
"""

from unittest.mock import Mock

from config_factory import AppConfig
from taleweave.config.game_settings import GameSettings
from taleweave.core.game_phases import ConsensusEvent, GameState, RevealPhase, RoundPhase
from taleweave.services.game_session import GAME_STATE_CHANGED, TALES_UPDATED, GameSession
from tests.factories.tale_factory import TaleFactory
from tests.helpers.channel_mocks import RecordingChannel
from tests.helpers.timing import InlineExecutor, ManualScheduler


class TestGameSession:
    """Test GameSession routing"""

    def setup_method(self):
        self.players = TaleFactory.create_players(2)
        self.room = TaleFactory.create_room()
        self.channel = RecordingChannel()
        self.scheduler = ManualScheduler()
        self.session = GameSession(
            self.room, self.players, self.players[0], self.channel,
            settings=GameSettings(AppConfig()), scheduler=self.scheduler,
            executor_factory=InlineExecutor,
        )
        self.listener = Mock()
        self.session.add_listener(self.listener)

    def state_changes(self):
        return [c[0][1] for c in self.listener.call_args_list if c[0][0] == GAME_STATE_CHANGED]

    def test_builds_tales_from_roster(self):
        assert [tale.id for tale in self.session.tales] == ["tale-0", "tale-1"]
        assert self.session.game_state is None

    def test_start_enters_writing(self):
        controller = self.session.start()

        assert self.session.game_state == GameState.WRITING
        assert controller.phase == RoundPhase.WRITING
        assert self.state_changes() == [GameState.WRITING]
        assert self.session.start() is controller

    def test_repeated_state_is_ignored(self):
        self.session.start()
        self.session.emit_game_state_change(GameState.WRITING)
        assert self.state_changes() == [GameState.WRITING]

    def test_tales_updated_notifies_listeners(self):
        tales = TaleFactory.create_written_tales(self.players)

        self.session.emit_tales_updated(tales)

        assert self.session.tales == tales
        self.listener.assert_called_with(TALES_UPDATED, tales)

    def test_writing_hands_over_to_reveal(self):
        round_controller = self.session.start()
        for _ in range(len(self.players)):
            tales = [tale.copy() for tale in round_controller.tales]
            self.channel.fire(ConsensusEvent.EVERYONE_READY, tales)

        assert self.session.game_state == GameState.AFTER_GAME
        assert round_controller.is_shutdown
        reveal = self.session.reveal_controller
        assert reveal.phase == RevealPhase.REVEALING
        assert reveal.tales == self.session.tales
        assert len(self.scheduler.active_tasks) == 1

    def test_full_game_ends(self):
        round_controller = self.session.start()
        for _ in range(len(self.players)):
            self.channel.fire(ConsensusEvent.EVERYONE_READY, [t.copy() for t in round_controller.tales])
        for _ in range(len(self.players)):
            self.channel.fire(ConsensusEvent.EVERYONE_VOTED)

        assert self.session.is_finished
        assert self.state_changes() == [GameState.WRITING, GameState.AFTER_GAME, GameState.GAME_ENDED]
        assert self.session.reveal_controller.is_shutdown
        assert self.scheduler.active_tasks == []

    def test_failing_listener_does_not_stop_others(self):
        failing = Mock(side_effect=RuntimeError("view crashed"))
        self.session.add_listener(failing)
        healthy = Mock()
        self.session.add_listener(healthy)

        self.session.start()

        healthy.assert_called_once_with(GAME_STATE_CHANGED, GameState.WRITING)

    def test_remove_listener(self):
        remove = self.session.add_listener(Mock())
        remove()
        remove()
        self.session.start()
        assert self.listener.call_count == 1

    def test_shutdown_stops_controllers(self):
        round_controller = self.session.start()

        self.session.shutdown()

        assert round_controller.is_shutdown
        assert self.scheduler.active_tasks == []
