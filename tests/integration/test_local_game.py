"""
Local Game Integration Tests
Runs complete games on real timer and dispatch threads with simulated writers.
"""

import pytest

from app import SENTENCES, run_local_game
from config_factory import ConfigurationFactory, load_config_from_dict
from container import configure_container


@pytest.fixture
def fast_container():
    """Container configured with the shortest valid timings."""
    load_config_from_dict({
        'environment': 'testing',
        'base_round_seconds': 50,
        'first_round_bonus_seconds': 0,
        'seconds_per_reveal_chapter': 1,
        'tick_interval_seconds': 0.01,
    })
    return configure_container(config=ConfigurationFactory().to_dict())


class TestLocalGame:
    """Test run_local_game"""

    def test_two_player_game_completes(self, fast_container):
        tales = run_local_game(["Ada", "Grace"], fast_container, timeout=20.0)

        assert len(tales) == 2
        assert {tale.title for tale in tales} == {"The tale of Ada", "The tale of Grace"}
        for tale in tales:
            assert tale.chapter_count == 2
            assert all(chapter.text in SENTENCES for chapter in tale.chapters)
            assert len({chapter.author_id for chapter in tale.chapters}) == 2

    def test_three_player_game_completes(self, fast_container):
        tales = run_local_game(["Ada", "Grace", "Alan"], fast_container, timeout=30.0)

        assert len(tales) == 3
        assert all(chapter.is_written for tale in tales for chapter in tale.chapters)

    def test_room_is_closed_afterwards(self, fast_container):
        hub = fast_container.get('LocalConsensusHub')
        run_local_game(["Ada", "Grace"], fast_container, timeout=20.0)
        assert hub._rooms == {}
