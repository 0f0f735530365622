"""
Group Chat Client Package

This package provides a client for a plaintext, group-partitioned chat
protocol over TCP: the ChatClient session controller, the TCP connection
manager, the protocol codec, the per-group message store, endpoint
settings and a terminal user interface.

Schemas are organized in the `schemas` subpackage by category:
    - group: Groups and group announcements
    - message: Chat lines and send requests
    - session: Endpoint, Session and ConnectionState
"""

from .chat_client import ChatClient
from .config import SettingsStore
from .connection import TcpConnection
from .errors import (
    ChatClientError,
    ConnectError,
    GroupNotFoundError,
    PreconditionError,
    PreconditionReason,
    ReadError,
    ValidationError,
    WriteError,
)
from .group_store import GroupListPolicy, GroupStore
from .schemas import (
    ChatLine,
    ConnectionState,
    Endpoint,
    Group,
    GroupListUpdate,
    SendMessageRequest,
    Session,
    group_initials,
)

__all__ = [
    # Service classes
    "ChatClient",
    "GroupStore",
    "GroupListPolicy",
    "SettingsStore",
    "TcpConnection",
    # Errors
    "ChatClientError",
    "ConnectError",
    "GroupNotFoundError",
    "PreconditionError",
    "PreconditionReason",
    "ReadError",
    "ValidationError",
    "WriteError",
    # Schemas
    "ChatLine",
    "ConnectionState",
    "Endpoint",
    "Group",
    "GroupListUpdate",
    "SendMessageRequest",
    "Session",
    "group_initials",
]
