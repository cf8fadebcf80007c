"""
Service Container - wires the Taleweave services together.

Services are registered under a name with a factory and the names of the
services the factory takes as positional arguments. Singletons are built on
first use; transient services are built on every lookup.
"""

from dataclasses import dataclass, field
from enum import Enum
import inspect
from typing import Any, Callable, Dict, List, Optional


class ServiceLifecycle(Enum):
    SINGLETON = "singleton"
    TRANSIENT = "transient"


@dataclass
class ServiceDefinition:
    """Factory, dependencies and lifecycle of one registered service"""
    name: str
    factory: Callable
    dependencies: List[str] = field(default_factory=list)
    lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON
    config: Dict[str, Any] = field(default_factory=dict)


class CircularDependencyError(Exception):
    """A service depends on itself through its dependencies"""


class ServiceNotFoundError(Exception):
    """No service or external dependency with the requested name"""


def _create_game_settings(config_factory):
    from config_factory import ConfigError
    from taleweave.config.game_settings import get_game_settings
    try:
        return get_game_settings(config_factory.get_config())
    except ConfigError:
        return get_game_settings()


def _create_session_factory(settings, scheduler):
    """Callable building GameSessions that share the container's settings and scheduler."""
    from taleweave.services.game_session import GameSession

    def create_session(room, players, player, channel, tales=None):
        return GameSession(room, players, player, channel, tales=tales,
                           settings=settings, scheduler=scheduler)
    return create_session


def _create_socketio_channel(socketio_client, settings, namespace: str = '/'):
    from taleweave.services.socketio_channel import SocketIOConsensusChannel
    return SocketIOConsensusChannel(socketio_client, namespace=namespace, timeout=settings.publish_timeout)


class ServiceContainer:
    """Dependency injection container with circular dependency detection."""

    def __init__(self):
        self._services: Dict[str, ServiceDefinition] = {}
        self._instances: Dict[str, Any] = {}
        self._resolving: List[str] = []
        self._config: Dict[str, Any] = {}

    def register(self, name: str, factory: Callable, dependencies: Optional[List[str]] = None,
                 lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
                 config: Optional[Dict[str, Any]] = None) -> 'ServiceContainer':
        """
        Register a service.

        Args:
            name: Lookup name
            factory: Class or function building the service
            dependencies: Names resolved and passed to the factory positionally
            lifecycle: SINGLETON or TRANSIENT
            config: Keyword arguments for function factories
        """
        if name in self._services:
            raise ValueError(f"Service '{name}' is already registered")
        if not callable(factory):
            raise ValueError(f"Factory for '{name}' must be callable")

        self._services[name] = ServiceDefinition(
            name, factory, list(dependencies or []), lifecycle, dict(config or {})
        )
        return self

    def configure_services(self) -> 'ServiceContainer':
        """Register the game services."""
        from config_factory import ConfigurationFactory
        from taleweave.core.phase_timer import ThreadScheduler
        from taleweave.services.local_consensus_hub import LocalConsensusHub

        self.register('ConfigurationFactory', ConfigurationFactory)
        self.register('GameSettings', _create_game_settings, dependencies=['ConfigurationFactory'])
        self.register('TickScheduler', ThreadScheduler)
        self.register('LocalConsensusHub', LocalConsensusHub)
        self.register('SessionFactory', _create_session_factory,
                      dependencies=['GameSettings', 'TickScheduler'])

        # Networked play needs a python-socketio client supplied from outside
        if 'socketio_client' in self._instances:
            self.register(
                'SocketIOConsensusChannel',
                _create_socketio_channel,
                dependencies=['socketio_client', 'GameSettings'],
                lifecycle=ServiceLifecycle.TRANSIENT,
                config={'namespace': self._config.get('socketio_namespace', '/')},
            )
        return self

    def set_external_dependency(self, name: str, instance: Any) -> 'ServiceContainer':
        """Provide an object built outside the container, such as a socket client."""
        self._instances[name] = instance
        return self

    def set_config(self, config: Dict[str, Any]) -> 'ServiceContainer':
        self._config.update(config)
        return self

    def get(self, name: str) -> Any:
        """
        Resolve a service by name.

        Raises:
            ServiceNotFoundError: Nothing is registered under the name
            CircularDependencyError: Resolving the name requires itself
        """
        if name in self._instances:
            return self._instances[name]
        if name not in self._services:
            raise ServiceNotFoundError(f"Service '{name}' is not registered")
        return self._build(self._services[name])

    def _build(self, definition: ServiceDefinition) -> Any:
        if definition.name in self._resolving:
            chain = ' -> '.join(self._resolving + [definition.name])
            raise CircularDependencyError(f"Circular dependency detected: {chain}")

        self._resolving.append(definition.name)
        try:
            args = [self.get(dependency) for dependency in definition.dependencies]
            if inspect.isclass(definition.factory):
                instance = definition.factory(*args)
            else:
                instance = definition.factory(*args, **definition.config)
        finally:
            self._resolving.remove(definition.name)

        if definition.lifecycle == ServiceLifecycle.SINGLETON:
            self._instances[definition.name] = instance
        return instance

    def has_service(self, name: str) -> bool:
        return name in self._services

    def get_service_names(self) -> List[str]:
        return list(self._services)

    def validate_dependencies(self) -> Dict[str, List[str]]:
        """Map each service to the dependencies nothing provides."""
        missing = {}
        for name, definition in self._services.items():
            unresolved = [
                dependency for dependency in definition.dependencies
                if dependency not in self._services and dependency not in self._instances
            ]
            if unresolved:
                missing[name] = unresolved
        return missing

    def clear(self) -> 'ServiceContainer':
        self._services.clear()
        self._instances.clear()
        self._resolving.clear()
        self._config.clear()
        return self

    def __repr__(self) -> str:
        return f"ServiceContainer(services={len(self._services)}, instances={len(self._instances)})"


_app_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Global container, created on first use."""
    global _app_container
    if _app_container is None:
        _app_container = ServiceContainer()
    return _app_container


def reset_container() -> None:
    global _app_container
    _app_container = None


def configure_container(socketio_client=None, config=None) -> ServiceContainer:
    """
    Reset the global container and register the game services.

    Args:
        socketio_client: python-socketio client for networked play
        config: Application configuration dictionary
    """
    container = get_container().clear()
    if socketio_client is not None:
        container.set_external_dependency('socketio_client', socketio_client)
    if config is not None:
        container.set_config(config)
    return container.configure_services()
