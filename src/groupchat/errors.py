"""
Error Types for the Group Chat Client

Local input problems (ValidationError, PreconditionError) never reach the
network. Transport problems (ConnectError, ReadError, WriteError) subclass
the built-in ConnectionError so callers can catch them either way.
"""

from enum import Enum
from typing import Optional


class ChatClientError(Exception):
    """Base class for all errors raised by the chat client."""


class ValidationError(ChatClientError, ValueError):
    """Bad local input: empty username, invalid host or port."""


class PreconditionReason(str, Enum):
    """Why an operation was rejected before any I/O took place."""

    NOT_CONNECTED = "not_connected"
    ALREADY_CONNECTED = "already_connected"
    NO_GROUP_SELECTED = "no_group_selected"
    EMPTY_MESSAGE = "empty_message"


class PreconditionError(ChatClientError):
    """
    An operation was attempted in a state that does not allow it.

    Attributes:
        reason: PreconditionReason identifying the failed check
    """

    def __init__(self, reason: PreconditionReason, message: str):
        super().__init__(message)
        self.reason = reason


class GroupNotFoundError(ChatClientError, KeyError):
    """The requested group key is not known to the store."""

    def __init__(self, group_key: str):
        super().__init__(group_key)
        self.group_key = group_key

    def __str__(self) -> str:
        return f"Unknown group: {self.group_key}"


class ConnectError(ChatClientError, ConnectionError):
    """
    The TCP connection could not be established.

    Attributes:
        reason: Human-readable cause (refused, DNS failure, timeout, ...)
    """

    def __init__(self, reason: str, endpoint: Optional[str] = None):
        message = reason if endpoint is None else f"{endpoint}: {reason}"
        super().__init__(message)
        self.reason = reason
        self.endpoint = endpoint


class ReadError(ChatClientError, ConnectionError):
    """Reading from the connection failed."""


class WriteError(ChatClientError, ConnectionError):
    """Writing to the connection failed."""
