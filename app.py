"""
Taleweave - collaborative "exquisite corpse" storytelling.
Entry point that wires the services and plays a local game with simulated writers,
or joins a game run by the Socket.IO game hub.
"""

import logging
import random
import sys
import threading
import uuid
from typing import List, Optional

import socketio

from config_factory import load_config, ConfigurationFactory, ConfigError
from container import ServiceContainer, configure_container
from taleweave.core.entities import Player, Room, Tale, copy_tales
from taleweave.core.errors import ValidationError
from taleweave.core.game_phases import GameState, RoundPhase
from taleweave.core.tale_indexing import build_tales
from taleweave.services.game_session import GAME_STATE_CHANGED, GameSession

logger = logging.getLogger(__name__)

SENTENCES = [
    "The lighthouse keeper found a letter addressed to someone who had not been born yet.",
    "Nobody in the village admitted to owning the clock that chimed thirteen times.",
    "A fox walked into the bakery and paid in silver buttons.",
    "The river ran backwards every Tuesday, and the town planned around it.",
    "Grandmother's map had one island that moved whenever it was folded.",
    "The train stopped at a station that was not on any timetable.",
]


class SimulatedWriter:
    """Writes a sentence and declares itself ready once per round."""

    def __init__(self, session: GameSession, interval: float, rng: Optional[random.Random] = None):
        self.session = session
        self.interval = interval
        self.rng = rng or random.Random()
        self._stop_event = threading.Event()
        self._last_round = None
        self._thread = threading.Thread(
            target=self._run, name=f"writer-{session.player.name}", daemon=True
        )

    def start(self) -> 'SimulatedWriter':
        self._thread.start()
        return self

    def stop(self):
        self._stop_event.set()

    def _run(self):
        while not self._stop_event.wait(self.interval):
            try:
                self._write_once()
            except ValidationError as e:
                logger.debug(f"{self.session.player.name} could not write: {e.message}")
            except Exception as e:
                logger.error(f"Error in simulated writer: {e}")

    def _write_once(self):
        controller = self.session.round_controller
        if controller is None or controller.phase != RoundPhase.WRITING:
            return
        round_number = controller.state.round_number
        if round_number == self._last_round or controller.state.ready:
            return
        if controller.state.is_first_round:
            controller.set_title(f"The tale of {self.session.player.name}")
        controller.edit_chapter(self.rng.choice(SENTENCES))
        controller.toggle_ready()
        self._last_round = round_number


def run_local_game(player_names: List[str], container, timeout: Optional[float] = None) -> List[Tale]:
    """
    Play a complete game with one simulated writer per name.

    Returns the finished tales as the first participant saw them.
    """
    settings = container.get('GameSettings')
    hub = container.get('LocalConsensusHub')
    create_session = container.get('SessionFactory')

    room = Room(id=uuid.uuid4().hex[:8])
    players = [Player(id=str(uuid.uuid4()), name=name) for name in player_names]
    tales = build_tales(players, prefix=room.id)
    hub.open_room(room, players, tales)

    finished = threading.Semaphore(0)

    def on_event(event, payload):
        if event == GAME_STATE_CHANGED and payload == GameState.GAME_ENDED:
            finished.release()

    sessions = []
    writers = []
    for player in players:
        session = create_session(room, players, player, hub.connect(room.id, player.id), tales=copy_tales(tales))
        session.add_listener(on_event)
        sessions.append(session)

    try:
        for session in sessions:
            session.start()
            writers.append(SimulatedWriter(session, settings.tick_interval).start())

        for _ in sessions:
            if not finished.acquire(timeout=timeout):
                raise TimeoutError(f"Game in room {room.id} did not finish in {timeout} seconds")
        return sessions[0].tales
    finally:
        for writer in writers:
            writer.stop()
        for session in sessions:
            session.shutdown()
        hub.close_room(room.id)


def configure_hub_container(socketio_client: Optional[socketio.Client] = None) -> ServiceContainer:
    """
    Configure the services for networked play.

    Requires a loaded configuration. A reconnecting client is created when
    none is given.
    """
    client = socketio_client or socketio.Client(reconnection=True)
    return configure_container(socketio_client=client, config=ConfigurationFactory().to_dict())


def join_hub_game(room: Room, players: List[Player], player: Player, container: ServiceContainer,
                  tales: Optional[List[Tale]] = None) -> GameSession:
    """
    Connect to the game hub at server_url and build the local participant's session.

    Raises:
        ChannelError: The hub could not be reached within publish_timeout_seconds
    """
    app_config = container.get('ConfigurationFactory').get_config()
    settings = container.get('GameSettings')
    channel = container.get('SocketIOConsensusChannel')
    channel.connect(app_config.server_url, wait_timeout=settings.publish_timeout)

    create_session = container.get('SessionFactory')
    return create_session(room, players, player, channel, tales=tales)


def main() -> int:
    """Run a local game configured from the environment."""
    try:
        app_config = load_config()
    except ConfigError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.critical(f"FATAL: Invalid configuration: {e}")
        return 1

    logging.basicConfig(level=getattr(logging, app_config.log_level.upper(), logging.INFO))
    container = configure_container(config=ConfigurationFactory().to_dict())

    names = [f"Player {number}" for number in range(1, app_config.simulated_players + 1)]
    logger.info(f"Starting a local game for {len(names)} players")
    try:
        tales = run_local_game(names, container)
    except KeyboardInterrupt:
        logger.info("Received interrupt signal")
        return 130

    for tale in tales:
        logger.info(f"== {tale.title or tale.id} ==")
        for chapter in tale.chapters:
            logger.info(f"  {chapter.position + 1}. {chapter.text}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
