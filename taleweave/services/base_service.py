"""
Base Service - lifecycle and logging shared by the game services

Every service gets a logger named after its class and an idempotent shutdown
that runs _cleanup once.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class BaseService(ABC):
    """
    Base class for the controllers and the game session.

    Subclasses build their state in _initialize() and release timers,
    subscriptions and executors in _cleanup().
    """

    def __init__(self):
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._initialized = False
        self._shutdown = False
        self._initialize()
        self._initialized = True
        self._logger.debug(f"{self.__class__.__name__} ready")

    @abstractmethod
    def _initialize(self) -> None:
        """Set up service state."""

    def _log(self, level: int, message: str, context: Dict[str, Any], exc_info=None) -> None:
        extra = {'service': self.__class__.__name__, **context}
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def log_error(self, message: str, exception: Optional[BaseException] = None, **context) -> None:
        """Log an error; with an exception, its message and traceback are attached."""
        if exception is None:
            self._log(logging.ERROR, message, context)
        else:
            self._log(logging.ERROR, f"{message}: {exception}", context, exc_info=exception)

    def log_warning(self, message: str, **context) -> None:
        self._log(logging.WARNING, message, context)

    def log_info(self, message: str, **context) -> None:
        self._log(logging.INFO, message, context)

    def log_debug(self, message: str, **context) -> None:
        self._log(logging.DEBUG, message, context)

    def shutdown(self) -> None:
        """Run _cleanup once; later calls do nothing."""
        if self._shutdown:
            return
        self._logger.info(f"Shutting down {self.__class__.__name__}")
        try:
            self._cleanup()
        except Exception as e:
            self.log_error("Error during service cleanup", exception=e)
        finally:
            self._shutdown = True

    def _cleanup(self) -> None:
        pass

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(initialized={self._initialized}, shutdown={self._shutdown})"
