"""
Configuration Factory - Centralized configuration management for Taleweave
Loads typed, validated settings from TALEWEAVE_* environment variables or a dict.
"""

import os
import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional


class Environment(Enum):
    """Environment types for configuration"""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class ConfigError(Exception):
    """Configuration-related errors"""
    pass


LOG_LEVELS = ('debug', 'info', 'warning', 'error', 'critical')

# field -> (lowest, highest) accepted value, both inclusive
NUMERIC_RANGES = {
    'publish_timeout_seconds': (0.001, 120),
    'base_round_seconds': (5, 1800),
    'first_round_bonus_seconds': (0, 600),
    'seconds_per_reveal_chapter': (1, 300),
    'tick_interval_seconds': (0.001, 60),
    'max_players_per_room': (2, 50),
    'max_chapter_length': (10, 100000),
    'max_title_length': (1, 500),
}


@dataclass
class AppConfig:
    """Application configuration; timings are counted in timer ticks"""

    debug: bool = False
    log_level: str = 'info'

    # Game hub connection
    server_url: str = 'http://localhost:5000'
    socketio_namespace: str = '/'
    publish_timeout_seconds: float = 10.0

    # Round timing
    base_round_seconds: int = 30
    first_round_bonus_seconds: int = 10
    seconds_per_reveal_chapter: int = 15
    tick_interval_seconds: float = 1.0

    # Roster and content limits
    min_players_required: int = 2
    max_players_per_room: int = 8
    max_chapter_length: int = 2000
    max_title_length: int = 80

    # Local simulation
    simulated_players: int = 3

    environment: Environment = Environment.DEVELOPMENT

    def __post_init__(self):
        self._validate()

    def _validate(self):
        """Raise ConfigError for the first value out of range"""
        if self.log_level.lower() not in LOG_LEVELS:
            raise ConfigError(f"Invalid log_level: {self.log_level}")

        for name, (lowest, highest) in NUMERIC_RANGES.items():
            value = getattr(self, name)
            if not lowest <= value <= highest:
                raise ConfigError(f"Invalid {name}: {value} (expected {lowest}..{highest})")

        if not 2 <= self.min_players_required <= self.max_players_per_room:
            raise ConfigError(f"Invalid min_players_required: {self.min_players_required}")

        if not self.min_players_required <= self.simulated_players <= self.max_players_per_room:
            raise ConfigError(f"Invalid simulated_players: {self.simulated_players}")

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING


class ConfigurationFactory:
    """
    Builds and holds the application configuration.

    Every AppConfig field except environment can be set with an environment
    variable named after it (TALEWEAVE_BASE_ROUND_SECONDS and so on); the
    environment comes from TALEWEAVE_ENV. The factory is a singleton.
    """

    _instance: Optional['ConfigurationFactory'] = None
    _config: Optional[AppConfig] = None

    def __new__(cls) -> 'ConfigurationFactory':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not hasattr(self, '_initialized'):
            self._logger = logging.getLogger(__name__)
            self._overrides: Dict[str, Any] = {}
            self._initialized = True

    def _convert(self, env_key: str, raw: str, field_type: type, default: Any) -> Any:
        """Convert an environment string to the field's type"""
        if field_type is bool:
            return raw.lower() in ('true', '1', 'yes', 'on')
        if field_type in (int, float):
            try:
                return field_type(raw)
            except ValueError:
                self._logger.warning(f"Invalid {field_type.__name__} value for {env_key}: {raw}, using default: {default}")
                return default
        return raw

    def load_from_environment(self, env_prefix: str = 'TALEWEAVE_') -> AppConfig:
        """
        Load configuration from environment variables.

        Args:
            env_prefix: Prefix for environment variables

        Returns:
            Validated AppConfig, also stored as the current configuration
        """
        env_name = os.environ.get(f"{env_prefix}ENV", Environment.DEVELOPMENT.value)
        try:
            environment = Environment(env_name)
        except ValueError:
            environment = Environment.PRODUCTION

        values: Dict[str, Any] = {
            'environment': environment,
            'debug': environment != Environment.PRODUCTION,
        }
        defaults = AppConfig.__dataclass_fields__
        for field_info in fields(AppConfig):
            if field_info.name == 'environment':
                continue
            env_key = f"{env_prefix}{field_info.name.upper()}"
            raw = os.environ.get(env_key)
            if raw is None:
                continue
            default = values.get(field_info.name, defaults[field_info.name].default)
            values[field_info.name] = self._convert(env_key, raw, field_info.type, default)

        values.update({key: value for key, value in self._overrides.items() if key in defaults})
        self._config = AppConfig(**values)
        self._logger.info(f"Configuration loaded for environment: {environment.value}")
        return self._config

    def load_from_dict(self, config_dict: Dict[str, Any]) -> AppConfig:
        """Load configuration from a dictionary (useful for testing)"""
        values = dict(config_dict)
        if isinstance(values.get('environment'), str):
            values['environment'] = Environment(values['environment'])
        self._config = AppConfig(**values)
        return self._config

    def override_setting(self, key: str, value: Any) -> 'ConfigurationFactory':
        """
        Override one setting now and on every later environment load.

        Raises:
            ConfigError: The overridden configuration does not validate
        """
        self._overrides[key] = value
        if self._config is not None and hasattr(self._config, key):
            setattr(self._config, key, value)
            self._config._validate()
        return self

    def get_config(self) -> AppConfig:
        """
        Get the current configuration.

        Raises:
            ConfigError: If no configuration has been loaded
        """
        if self._config is None:
            raise ConfigError("Configuration not loaded. Call load_from_environment() or load_from_dict() first.")
        return self._config

    def reset(self) -> 'ConfigurationFactory':
        """Forget the configuration and overrides (useful for testing)"""
        self._config = None
        self._overrides.clear()
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Current configuration as plain values"""
        config = self.get_config()
        values = {}
        for field_info in fields(config):
            value = getattr(config, field_info.name)
            values[field_info.name] = value.value if isinstance(value, Environment) else value
        return values


_config_factory = ConfigurationFactory()


def get_config() -> AppConfig:
    """Get the global application configuration"""
    return _config_factory.get_config()


def load_config(env_prefix: str = 'TALEWEAVE_') -> AppConfig:
    """Load configuration from environment variables"""
    return _config_factory.load_from_environment(env_prefix)


def load_config_from_dict(config_dict: Dict[str, Any]) -> AppConfig:
    """Load configuration from dictionary"""
    return _config_factory.load_from_dict(config_dict)


def override_config(key: str, value: Any) -> ConfigurationFactory:
    """Override a configuration setting"""
    return _config_factory.override_setting(key, value)


def reset_config() -> ConfigurationFactory:
    """Reset configuration (for testing)"""
    return _config_factory.reset()
