"""
Global pytest configuration and fixtures.
Resets the global configuration, settings and container around every test.
"""

import os

import pytest

# Ensure testing environment
os.environ['TESTING'] = '1'


@pytest.fixture(scope="function", autouse=True)
def reset_globals():
    """Give every test a fresh configuration, game settings and container."""
    from config_factory import reset_config
    from container import reset_container
    from taleweave.config.game_settings import reset_game_settings

    reset_config()
    reset_game_settings()
    reset_container()

    yield

    reset_config()
    reset_game_settings()
    reset_container()


@pytest.fixture(scope="function")
def container():
    """Service container configured from the default configuration."""
    from config_factory import ConfigurationFactory, load_config_from_dict
    from container import configure_container

    load_config_from_dict({'environment': 'testing'})
    return configure_container(config=ConfigurationFactory().to_dict())


@pytest.fixture(scope="function")
def local_hub(container):
    """Provide LocalConsensusHub through dependency injection."""
    return container.get('LocalConsensusHub')
