"""
Core error definitions for Taleweave

Provides error codes, the participant-facing validation exception and the
internal errors raised around phase transitions.
"""

from enum import Enum
from typing import Dict, Optional


class ErrorCode(Enum):
    """Standardized error codes for the application."""

    # Participant input errors
    INVALID_DATA = "INVALID_DATA"
    CHAPTER_TOO_LONG = "CHAPTER_TOO_LONG"
    TITLE_TOO_LONG = "TITLE_TOO_LONG"
    INPUT_LOCKED = "INPUT_LOCKED"
    WRONG_PHASE = "WRONG_PHASE"

    # Roster errors
    PLAYER_NOT_IN_ROSTER = "PLAYER_NOT_IN_ROSTER"
    INSUFFICIENT_PLAYERS = "INSUFFICIENT_PLAYERS"
    TOO_MANY_PLAYERS = "TOO_MANY_PLAYERS"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"

    # Transition errors
    STALE_REFERENCE = "STALE_REFERENCE"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    DUPLICATE_TRANSITION = "DUPLICATE_TRANSITION"

    # Channel errors
    CHANNEL_UNAVAILABLE = "CHANNEL_UNAVAILABLE"
    PUBLISH_FAILED = "PUBLISH_FAILED"


class ValidationError(Exception):
    """Custom exception for validation errors."""

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class TaleweaveError(Exception):
    """Base class for internal game engine errors."""

    code = ErrorCode.INVALID_DATA

    def __init__(self, message: str, details: Optional[Dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class StaleReferenceError(TaleweaveError):
    """Index computed against a tale set that no longer matches the current one."""

    code = ErrorCode.STALE_REFERENCE


class OutOfRangeError(TaleweaveError):
    """Round, tale or chapter index outside the bounds of the data it indexes."""

    code = ErrorCode.OUT_OF_RANGE


class DuplicateTransitionError(TaleweaveError):
    """A second trigger tried to advance a phase that already advanced."""

    code = ErrorCode.DUPLICATE_TRANSITION


class ChannelError(TaleweaveError):
    """The consensus channel could not deliver a request."""

    code = ErrorCode.PUBLISH_FAILED
