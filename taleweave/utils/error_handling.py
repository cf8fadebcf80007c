"""
Error Handling Utilities

Callbacks from timers, the dispatch executor and socket events run on threads
that must survive a failing handler. These helpers run such callbacks and log
what went wrong, including the error code of game errors.
"""

import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


def describe_error(error: BaseException) -> str:
    """One-line description; game errors are prefixed with their code."""
    code = getattr(error, 'code', None)
    label = f"{type(error).__name__}[{code.value}]" if hasattr(code, 'value') else type(error).__name__
    return f"{label}: {error}"


def log_callback_error(source: str, error: BaseException, context: Optional[Dict[str, Any]] = None) -> None:
    """
    Log an error raised by a callback.

    Args:
        source: Name of the callback that failed
        error: Exception that occurred
        context: Optional context information
    """
    context_str = f" Context: {context}" if context else ""
    logger.error(f"Error in {source}: {describe_error(error)}{context_str}")


def safely_execute(func: Callable[[], Any], error_handler: Optional[Callable[[Exception], Any]] = None,
                   default_return: Any = None) -> Any:
    """
    Call func and return its result; on error, hand the exception to
    error_handler (or log it) and return default_return.
    """
    try:
        return func()
    except Exception as e:
        if error_handler is not None:
            error_handler(e)
        else:
            logger.exception(f"Unhandled error in callback: {e}")
        return default_return
