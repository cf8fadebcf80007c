"""
Game Settings Configuration Module

Provides centralized access to the timing and roster values the controllers
use, with fallbacks when no application configuration has been loaded.
"""

import logging

from config_factory import ConfigError, get_config

logger = logging.getLogger(__name__)

DEFAULT_BASE_ROUND_SECONDS = 30
DEFAULT_FIRST_ROUND_BONUS_SECONDS = 10
DEFAULT_SECONDS_PER_REVEAL_CHAPTER = 15
DEFAULT_TICK_INTERVAL_SECONDS = 1.0


class GameSettings:
    """Centralized game settings management."""

    def __init__(self, app_config=None):
        """
        Args:
            app_config: AppConfig to read; the loaded global config when omitted
        """
        self._config = app_config
        if app_config is None:
            try:
                self._config = get_config()
            except ConfigError as e:
                logger.warning(f"Could not load configuration: {e}, using defaults")
                self._config = None

    def _get(self, name: str, default):
        if self._config is None:
            return default
        return getattr(self._config, name, default)

    @property
    def base_round_seconds(self) -> int:
        return self._get('base_round_seconds', DEFAULT_BASE_ROUND_SECONDS)

    @property
    def first_round_bonus_seconds(self) -> int:
        return self._get('first_round_bonus_seconds', DEFAULT_FIRST_ROUND_BONUS_SECONDS)

    @property
    def seconds_per_reveal_chapter(self) -> int:
        return self._get('seconds_per_reveal_chapter', DEFAULT_SECONDS_PER_REVEAL_CHAPTER)

    @property
    def tick_interval(self) -> float:
        """Real seconds between two timer ticks."""
        return self._get('tick_interval_seconds', DEFAULT_TICK_INTERVAL_SECONDS)

    @property
    def min_players_required(self) -> int:
        return self._get('min_players_required', 2)

    @property
    def max_players_per_room(self) -> int:
        return self._get('max_players_per_room', 8)

    @property
    def max_chapter_length(self) -> int:
        return self._get('max_chapter_length', 2000)

    @property
    def max_title_length(self) -> int:
        return self._get('max_title_length', 80)

    @property
    def publish_timeout(self) -> float:
        return self._get('publish_timeout_seconds', 10.0)

    def round_deadline(self, is_first_round: bool) -> int:
        """
        Ticks a writing round lasts.

        The first round carries a bonus since players also name their tale.
        """
        if is_first_round:
            return self.base_round_seconds + self.first_round_bonus_seconds
        return self.base_round_seconds

    def reading_time(self, chapter_count: int) -> int:
        """Ticks needed to reveal every chapter of a tale."""
        return self.seconds_per_reveal_chapter * chapter_count


_game_settings_instance = None


def get_game_settings(app_config=None) -> GameSettings:
    """Shared settings; passing a config rebuilds them from it."""
    global _game_settings_instance
    if _game_settings_instance is None or app_config is not None:
        _game_settings_instance = GameSettings(app_config)
    return _game_settings_instance


def reset_game_settings():
    """Drop the shared settings so the next lookup reads the current config."""
    global _game_settings_instance
    _game_settings_instance = None
