"""
Session Schema Definitions

This module defines the connection endpoint and the per-connection
session record owned by the chat client.
"""

from dataclasses import dataclass
from enum import Enum

from ..errors import ValidationError

MIN_PORT = 1
MAX_PORT = 65535


class ConnectionState(str, Enum):
    """Lifecycle states of a chat session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    FAILED = "failed"


@dataclass(frozen=True)
class Endpoint:
    """
    Server address to connect to.

    Attributes:
        host: Host name or IP address
        port: TCP port in [1, 65535]
    """

    host: str
    port: int

    def __post_init__(self):
        if not self.host or not self.host.strip():
            raise ValidationError("Please enter a valid IP address.")
        if (
            isinstance(self.port, bool)
            or not isinstance(self.port, int)
            or not MIN_PORT <= self.port <= MAX_PORT
        ):
            raise ValidationError(
                f"Please enter a valid port number ({MIN_PORT}-{MAX_PORT})."
            )

    @classmethod
    def parse(cls, host_text: str, port_text: str) -> "Endpoint":
        """
        Build an Endpoint from user-entered text.

        Args:
            host_text: Host as typed; surrounding whitespace is ignored
            port_text: Port as typed

        Raises:
            ValidationError: If the host is blank or the port is not an
                integer in range
        """
        host = (host_text or "").strip()
        if not host:
            raise ValidationError("Please enter a valid IP address.")
        try:
            port = int((port_text or "").strip())
        except ValueError:
            raise ValidationError(
                f"Please enter a valid port number ({MIN_PORT}-{MAX_PORT})."
            ) from None
        return cls(host=host, port=port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class Session:
    """
    The single active connection attempt.

    Attributes:
        username: Display name used as the sender of outgoing lines
        endpoint: Server the session is bound to
        state: Current ConnectionState
    """

    username: str
    endpoint: Endpoint
    state: ConnectionState = ConnectionState.IDLE
