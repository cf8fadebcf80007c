"""
Game Phase Enumeration

Defines the game states and the controller phases used throughout the application.
"""

from enum import Enum


class GameState(Enum):
    """Screen-level game state announced to the surrounding application."""
    WRITING = "writing"
    AFTER_GAME = "after_game"
    GAME_ENDED = "game_ended"


class RoundPhase(Enum):
    """Writing phase state machine."""
    IDLE = "idle"
    WRITING = "writing"
    ROUND_ENDING = "round_ending"
    ADVANCING = "advancing"
    FINISHED = "finished"


class RevealPhase(Enum):
    """Reveal phase state machine."""
    IDLE = "idle"
    REVEALING = "revealing"
    SKIP_PENDING = "skip_pending"
    TALE_ADVANCING = "tale_advancing"
    FINISHED = "finished"


class IntentKind(Enum):
    """Local intents published to the consensus channel."""
    READY = "ready"
    SKIP_VOTE = "skip_vote"


class ConsensusEvent(Enum):
    """Consensus events delivered by the consensus channel."""
    EVERYONE_READY = "everyoneReady"
    EVERYONE_VOTED = "everyoneVoted"
