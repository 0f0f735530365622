"""
TCP Connection Manager

This module owns the socket lifecycle for the chat client: opening the
stream, writing whole messages, reading raw chunks and closing.

Architecture:
    - Uses asyncio streams for non-blocking I/O
    - Supports dependency injection for the stream factory (for testability)
    - Closing the writer is the only cancellation mechanism; it makes a
      pending read_chunk() return end-of-stream

Limitations:
    - No connect timeout and no idle-read timeout
    - No reconnect; recovery is always user-initiated
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple

from .errors import ConnectError, ReadError, WriteError
from .schemas import Endpoint

logger = logging.getLogger(__name__)

# Upper bound for a single read. Not a message boundary.
READ_CHUNK_SIZE = 1024

StreamFactory = Callable[
    [str, int], Awaitable[Tuple[asyncio.StreamReader, asyncio.StreamWriter]]
]


class TcpConnection:
    """
    A single TCP stream to the chat server.

    Attributes:
        endpoint: Server the connection targets
        reader: asyncio StreamReader (None if not connected)
        writer: asyncio StreamWriter (None if not connected)
    """

    def __init__(
        self,
        endpoint: Endpoint,
        stream_factory: Optional[StreamFactory] = None,
        chunk_size: int = READ_CHUNK_SIZE,
    ):
        """
        Initialize the connection.

        Args:
            endpoint: Server host and port
            stream_factory: Optional coroutine function returning a
                            (reader, writer) pair, defaults to
                            asyncio.open_connection
            chunk_size: Maximum number of bytes returned per read
        """
        self.endpoint = endpoint
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None
        self.chunk_size = chunk_size
        self._stream_factory = stream_factory or asyncio.open_connection
        self._connected = False

    async def connect(self) -> None:
        """
        Open the TCP stream.

        Raises:
            ConnectError: On refusal, DNS failure or any other OS error
        """
        logger.info("Connecting to %s...", self.endpoint)
        try:
            self.reader, self.writer = await self._stream_factory(
                self.endpoint.host, self.endpoint.port
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.error("Failed to connect to %s: %s", self.endpoint, e)
            raise ConnectError(
                str(e) or e.__class__.__name__, str(self.endpoint)
            ) from e
        self._connected = True
        logger.info("Connected to %s", self.endpoint)

    async def close(self) -> None:
        """
        Close the stream. Safe to call more than once or before connect.
        """
        writer = self.writer
        self._connected = False
        if writer is None:
            return
        self.writer = None
        try:
            writer.close()
            await writer.wait_closed()
        except (OSError, RuntimeError) as e:
            # The peer may have reset the connection already
            logger.debug("Error while closing connection: %s", e)
        logger.info("Disconnected from %s", self.endpoint)

    @property
    def is_connected(self) -> bool:
        """Check if the stream is open."""
        return self._connected and self.writer is not None

    async def write(self, data: bytes) -> None:
        """
        Write the full buffer and wait until it is flushed.

        Raises:
            WriteError: If the stream is closed or the peer reset it
        """
        if not self.is_connected:
            raise WriteError("Not connected to a server")
        try:
            self.writer.write(data)
            await self.writer.drain()
        except (OSError, RuntimeError) as e:
            logger.error("Write to %s failed: %s", self.endpoint, e)
            raise WriteError(str(e) or e.__class__.__name__) from e
        logger.debug("Wrote %d bytes", len(data))

    async def read_chunk(self) -> bytes:
        """
        Read the next available chunk.

        Returns:
            Up to chunk_size bytes; b"" once the peer has closed the
            stream or the connection was closed locally.

        Raises:
            ReadError: If the read fails or the stream was never opened
        """
        if self.reader is None:
            raise ReadError("Not connected to a server")
        try:
            data = await self.reader.read(self.chunk_size)
        except (OSError, asyncio.IncompleteReadError) as e:
            if not self._connected:
                # Closed locally while the read was pending
                return b""
            logger.error("Read from %s failed: %s", self.endpoint, e)
            raise ReadError(str(e) or e.__class__.__name__) from e
        logger.debug("Read %d bytes", len(data))
        return data

    def _set_test_mode(self, reader: object = None, writer: object = None) -> None:
        """
        Attach pre-built stream objects instead of opening a socket.

        This is a helper for tests that need to bypass real networking.

        Raises:
            ValueError: If either stream object is missing
        """
        if reader is None or writer is None:
            raise ValueError("_set_test_mode requires a reader and a writer")
        self.reader = reader
        self.writer = writer
        self._connected = True
