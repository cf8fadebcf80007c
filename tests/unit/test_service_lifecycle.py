"""
Tests for service lifecycle management and BaseService functionality.

Tests:
- BaseService initialization and lifecycle
- Service dependency injection container
- Service shutdown and cleanup
"""

import logging

import pytest
from unittest.mock import Mock

from container import (
    CircularDependencyError, ServiceContainer, ServiceLifecycle, ServiceNotFoundError,
    configure_container, get_container, reset_container
)
from config_factory import ConfigurationFactory, load_config_from_dict
from taleweave.config.game_settings import GameSettings
from taleweave.core.phase_timer import ThreadScheduler
from taleweave.services.base_service import BaseService
from taleweave.services.game_session import GameSession
from taleweave.services.local_consensus_hub import LocalConsensusHub
from taleweave.services.socketio_channel import SocketIOConsensusChannel
from tests.factories.tale_factory import TaleFactory
from tests.helpers.socket_mocks import create_mock_socketio_client


class MockTestService(BaseService):
    """Mock test service implementation for testing BaseService functionality"""

    def __init__(self):
        self.initialization_called = False
        self.cleanup_called = False
        super().__init__()  # Call super after setting up instance vars

    def _initialize(self):
        self.initialization_called = True

    def _cleanup(self):
        self.cleanup_called = True


class FailingCleanupService(BaseService):
    def _initialize(self):
        pass

    def _cleanup(self):
        raise RuntimeError("cleanup failed")


class TestBaseService:
    """Test BaseService abstract base class"""

    def test_base_service_initialization(self):
        """Test BaseService initialization"""
        service = MockTestService()

        assert service.is_initialized
        assert not service.is_shutdown
        assert service.initialization_called

    def test_logging_methods(self, caplog):
        """Test logging helpers attach the service name"""
        service = MockTestService()

        with caplog.at_level(logging.DEBUG):
            service.log_info("Round loaded", round_number=3)
            service.log_warning("Stale tales")
            service.log_error("Publish failed", exception=RuntimeError("offline"))

        records = [r for r in caplog.records if r.name.endswith('MockTestService')]
        assert [r.levelname for r in records[-3:]] == ['INFO', 'WARNING', 'ERROR']
        assert records[-3].round_number == 3
        assert records[-3].service == 'MockTestService'
        assert "offline" in records[-1].getMessage()

    def test_service_shutdown(self):
        """Test service shutdown runs cleanup once"""
        service = MockTestService()

        service.shutdown()
        service.cleanup_called = False
        service.shutdown()

        assert service.is_shutdown
        assert not service.cleanup_called

    def test_cleanup_errors_are_contained(self):
        """Test a failing cleanup still marks the service shut down"""
        service = FailingCleanupService()
        service.shutdown()
        assert service.is_shutdown

    def test_repr(self):
        assert repr(MockTestService()) == "MockTestService(initialized=True, shutdown=False)"


class TestServiceContainer:
    """Test the dependency injection container"""

    def setup_method(self):
        self.container = ServiceContainer()

    def test_service_registration(self):
        """Test registering and resolving a singleton"""
        self.container.register('hub', LocalConsensusHub)

        hub = self.container.get('hub')

        assert isinstance(hub, LocalConsensusHub)
        assert self.container.get('hub') is hub
        assert self.container.has_service('hub')

    def test_duplicate_registration(self):
        """Test names can only be registered once"""
        self.container.register('hub', LocalConsensusHub)
        with pytest.raises(ValueError):
            self.container.register('hub', LocalConsensusHub)

    def test_factory_must_be_callable(self):
        with pytest.raises(ValueError):
            self.container.register('broken', 'not callable')

    def test_transient_lifecycle(self):
        """Test transient services are created per request"""
        self.container.register('hub', LocalConsensusHub, lifecycle=ServiceLifecycle.TRANSIENT)
        assert self.container.get('hub') is not self.container.get('hub')

    def test_dependencies_and_config(self):
        """Test dependencies are injected positionally and config as keywords"""
        factory = Mock(return_value='built')
        self.container.register('dep', lambda: 'dependency')
        self.container.register('service', factory, dependencies=['dep'], config={'timeout': 3})

        assert self.container.get('service') == 'built'
        factory.assert_called_once_with('dependency', timeout=3)

    def test_external_dependency(self):
        client = Mock()
        self.container.set_external_dependency('socketio_client', client)
        assert self.container.get('socketio_client') is client

    def test_circular_dependency(self):
        """Test circular dependency detection"""
        self.container.register('a', lambda b: b, dependencies=['b'])
        self.container.register('b', lambda a: a, dependencies=['a'])
        with pytest.raises(CircularDependencyError):
            self.container.get('a')

    def test_missing_service(self):
        with pytest.raises(ServiceNotFoundError):
            self.container.get('nothing')

    def test_validate_dependencies(self):
        self.container.register('service', lambda dep: dep, dependencies=['missing'])
        assert self.container.validate_dependencies() == {'service': ['missing']}

    def test_clear(self):
        self.container.register('hub', LocalConsensusHub)
        self.container.clear()
        assert self.container.get_service_names() == []


class TestConfiguredContainer:
    """Test the application wiring"""

    def test_configure_services(self):
        """Test the default registrations"""
        load_config_from_dict({'environment': 'testing', 'base_round_seconds': 12})
        container = configure_container(config=ConfigurationFactory().to_dict())

        assert isinstance(container.get('GameSettings'), GameSettings)
        assert container.get('GameSettings').base_round_seconds == 12
        assert isinstance(container.get('TickScheduler'), ThreadScheduler)
        assert isinstance(container.get('LocalConsensusHub'), LocalConsensusHub)
        assert not container.has_service('SocketIOConsensusChannel')
        assert container.validate_dependencies() == {}

    def test_session_factory_shares_settings_and_scheduler(self):
        """Test sessions built by the container use its settings and scheduler"""
        container = configure_container(config={})
        players = TaleFactory.create_players(2)
        hub = container.get('LocalConsensusHub')
        room = TaleFactory.create_room()
        hub.open_room(room, players, TaleFactory.create_tales(players))

        create_session = container.get('SessionFactory')
        session = create_session(room, players, players[0], hub.connect(room.id, players[0].id))

        assert isinstance(session, GameSession)
        assert session.settings is container.get('GameSettings')
        assert session._scheduler is container.get('TickScheduler')
        assert [tale.id for tale in session.tales] == ["tale-0", "tale-1"]

    def test_socketio_channel_registered_with_client(self):
        """Test the socket channel is wired when a client is supplied"""
        load_config_from_dict({'socketio_namespace': '/tales', 'publish_timeout_seconds': 4.0})
        client = create_mock_socketio_client()
        container = configure_container(socketio_client=client, config=ConfigurationFactory().to_dict())

        channel = container.get('SocketIOConsensusChannel')

        assert isinstance(channel, SocketIOConsensusChannel)
        assert channel.namespace == '/tales'
        assert channel.timeout == 4.0
        assert container.get('SocketIOConsensusChannel') is not channel

    def test_global_container(self):
        assert get_container() is get_container()
        first = get_container()
        reset_container()
        assert get_container() is not first

    def test_container_fixture(self, container, local_hub):
        """Test the shared conftest fixtures"""
        assert container.get('LocalConsensusHub') is local_hub
