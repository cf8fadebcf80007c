"""
Services package for Taleweave

Contains the phase controllers, the game session and the consensus channels.
"""

from .consensus_channel import ConsensusChannel, HandlerRegistry, Subscription
from .local_consensus_hub import LocalConsensusChannel, LocalConsensusHub
from .round_controller import RoundController, RoundState
from .reveal_controller import RevealController, RevealState
from .game_session import GameSession

__all__ = [
    'ConsensusChannel',
    'HandlerRegistry',
    'Subscription',
    'LocalConsensusChannel',
    'LocalConsensusHub',
    'RoundController',
    'RoundState',
    'RevealController',
    'RevealState',
    'GameSession',
]
