"""
Chat Client Session Controller

This module provides the ChatClient class that drives a single chat
session: it opens the TCP connection, runs the receive loop, applies
decoded messages to the GroupStore and exposes the user-facing operations
(connect, send, select group, disconnect).

Architecture:
    - Uses TcpConnection for socket I/O (injectable for testing)
    - Uses the protocol codec to classify inbound chunks
    - Uses GroupStore for per-group timelines and the selection
    - Provides callback hooks for UI integration
    - Runs the receive loop as an asyncio task; store mutations happen
      synchronously on the event loop so they never interleave

Usage:
    client = ChatClient()
    await client.connect("alice", Endpoint("127.0.0.1", 5000))
    client.select_group("General")
    await client.send_message("hello")
    await client.disconnect()
"""

import asyncio
import logging
from typing import Callable, List, Optional

from .config import SettingsStore
from .connection import TcpConnection
from .errors import (
    ConnectError,
    PreconditionError,
    PreconditionReason,
    ReadError,
    ValidationError,
    WriteError,
)
from .group_store import GroupListPolicy, GroupStore
from .protocol import decode_chunk
from .schemas import (
    ChatLine,
    ConnectionState,
    Endpoint,
    Group,
    GroupListUpdate,
    SendMessageRequest,
    Session,
)

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[Endpoint], TcpConnection]


class ChatClient:
    """
    Session controller for the group chat protocol.

    Attributes:
        settings: SettingsStore supplying the default endpoint
        store: GroupStore holding groups, timelines and the selection
        connection: Active TcpConnection (None if not connected)
        session: Current Session (None when idle)
        last_error: Error that ended the last session or connect attempt
        auto_select_first_group: Select the first known group when none is
                                 selected
    """

    def __init__(
        self,
        settings: Optional[SettingsStore] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        group_policy: GroupListPolicy = GroupListPolicy.APPEND,
        auto_select_first_group: bool = True,
    ):
        """
        Initialize the chat client.

        Args:
            settings: Endpoint configuration, defaults to a SettingsStore
                      backed by the user's settings file
            connection_factory: Optional factory creating a TcpConnection
                                for an endpoint (for dependency
                                injection/testing)
            group_policy: How GROUPS: announcements are applied
            auto_select_first_group: Auto-select the first group on
                                     discovery
        """
        self.settings = settings or SettingsStore()
        self.store = GroupStore(group_policy)
        self.connection: Optional[TcpConnection] = None
        self.session: Optional[Session] = None
        self.last_error: Optional[Exception] = None
        self.auto_select_first_group = auto_select_first_group

        self._connection_factory = connection_factory or TcpConnection
        self._state = ConnectionState.IDLE
        self._receive_task: Optional[asyncio.Task] = None
        self._closing = False

        # Callbacks for UI integration
        self._on_groups_changed: Optional[Callable[[List[str]], None]] = None
        self._on_message_appended: Optional[
            Callable[[Optional[str], ChatLine], None]
        ] = None
        self._on_connection_state_changed: Optional[
            Callable[[ConnectionState], None]
        ] = None
        self._on_error: Optional[Callable[[str, str], None]] = None
        self._on_group_selected: Optional[
            Callable[[Optional[Group]], None]
        ] = None

    # Callback registration

    def set_on_groups_changed(self, callback: Callable[[List[str]], None]) -> None:
        """
        Register callback for changes to the known group list.

        Args:
            callback: Function that receives the ordered group names
        """
        self._on_groups_changed = callback

    def set_on_message_appended(
        self, callback: Callable[[Optional[str], ChatLine], None]
    ) -> None:
        """
        Register callback for new timeline lines.

        Args:
            callback: Function that receives the group key (None for
                      cross-cutting notices) and the ChatLine
        """
        self._on_message_appended = callback

    def set_on_connection_state_changed(
        self, callback: Callable[[ConnectionState], None]
    ) -> None:
        """
        Register callback for session state transitions.

        Args:
            callback: Function that receives the new ConnectionState
        """
        self._on_connection_state_changed = callback

    def set_on_error(self, callback: Callable[[str, str], None]) -> None:
        """
        Register callback for connection errors.

        Args:
            callback: Function that receives the error kind ("connect",
                      "read" or "write") and a human-readable message
        """
        self._on_error = callback

    def set_on_group_selected(
        self, callback: Callable[[Optional[Group]], None]
    ) -> None:
        """
        Register callback for selection changes.

        Args:
            callback: Function that receives the selected Group, or None
                      when the selection was cleared
        """
        self._on_group_selected = callback

    # State accessors

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if a session is connected."""
        return (
            self._state is ConnectionState.CONNECTED
            and self.connection is not None
            and self.connection.is_connected
        )

    @property
    def username(self) -> Optional[str]:
        return self.session.username if self.session else None

    @property
    def selected_group(self) -> Optional[Group]:
        return self.store.selected_group

    @property
    def groups(self) -> List[Group]:
        return self.store.groups

    @property
    def notices(self) -> List[ChatLine]:
        return self.store.notices

    def messages_for(self, group_key: Optional[str]) -> List[ChatLine]:
        return self.store.messages_for(group_key)

    # Operations

    async def connect(
        self, username: str, endpoint: Optional[Endpoint] = None
    ) -> None:
        """
        Open a session and start the receive loop.

        Args:
            username: Display name; surrounding whitespace is ignored
            endpoint: Server to connect to, defaults to the configured one

        Raises:
            ValidationError: If the username is empty
            PreconditionError: If a session is already active
            ConnectError: If the connection could not be established
        """
        username = (username or "").strip()
        if not username:
            raise ValidationError("Please enter your name before connecting.")
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            raise PreconditionError(
                PreconditionReason.ALREADY_CONNECTED,
                "Already connected to a server.",
            )

        endpoint = endpoint or self.settings.get_endpoint()
        self.store.reset()
        self.last_error = None
        self._closing = False
        self.session = Session(username=username, endpoint=endpoint)

        connection = self._connection_factory(endpoint)
        self.connection = connection
        self._set_state(ConnectionState.CONNECTING)

        try:
            await connection.connect()
        except ConnectError as e:
            if self.connection is connection:
                self.connection = None
            self.last_error = e
            self.session = None
            self._set_state(ConnectionState.IDLE)
            self._emit_error("connect", f"Failed to connect: {e}")
            raise

        if self.connection is not connection:
            # disconnect() was called while the connect was pending
            await connection.close()
            raise ConnectError("Connection attempt cancelled", str(endpoint))

        self._set_state(ConnectionState.CONNECTED)
        self._add_notice("Connected to server.")
        self._receive_task = asyncio.create_task(self._receive_loop(connection))
        logger.info("Session started for %s at %s", username, endpoint)

    async def send_message(self, text: str) -> ChatLine:
        """
        Send a chat line to the selected group.

        The line is echoed into the local store before it is written, so
        the sender sees it without waiting for the server.

        Args:
            text: Message text; surrounding whitespace is ignored

        Returns:
            The echoed ChatLine.

        Raises:
            PreconditionError: If not connected, no group is selected or
                the text is blank
            WriteError: If the write failed; the session is closed
        """
        if not self.is_connected:
            raise PreconditionError(
                PreconditionReason.NOT_CONNECTED, "Not connected to a server."
            )
        group = self.store.selected_group
        if group is None:
            raise PreconditionError(
                PreconditionReason.NO_GROUP_SELECTED,
                "Please select a group before sending a message.",
            )
        content = (text or "").strip()
        if not content:
            raise PreconditionError(
                PreconditionReason.EMPTY_MESSAGE, "Message text is empty."
            )

        request = SendMessageRequest(group.key, self.username, content)
        line = self._record(ChatLine(group.key, request.to_text()))
        connection = self.connection

        try:
            await connection.write(request.to_bytes())
        except WriteError as e:
            logger.error("Failed to send message: %s", e)
            self._record(
                ChatLine.notice(f"Error sending message: {e}", group.key)
            )
            self._emit_error("write", f"Error sending message: {e}")
            if self.connection is connection:
                await self._teardown(ConnectionState.FAILED, e)
            raise

        logger.debug("Sent message to group %s", group.key)
        return line

    def select_group(self, group_key: str) -> Group:
        """
        Select the group whose timeline is shown and which sends target.

        Raises:
            GroupNotFoundError: If the group is not known
        """
        group = self.store.select(group_key)
        if self._on_group_selected:
            self._on_group_selected(group)
        return group

    async def disconnect(self) -> None:
        """
        Close the connection and return to idle.

        Callable from any state. Closing the socket ends the pending read,
        after which the receive loop exits.
        """
        self._closing = True
        connection = self.connection
        self.connection = None
        if connection is not None:
            await connection.close()

        task = self._receive_task
        self._receive_task = None
        if task is not None and task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning("Receive loop ended with error: %s", e)

        self._set_state(ConnectionState.IDLE)
        self.session = None
        logger.info("Disconnected")

    # Receive loop

    async def _receive_loop(self, connection: TcpConnection) -> None:
        """
        Continuously read and apply chunks until the stream ends.

        End-of-stream ends the session as DISCONNECTED. A read error, or
        an error raised while applying a chunk, ends it as FAILED. A local
        disconnect ends the loop silently.
        """
        logger.info("Starting message receive loop")
        error: Optional[Exception] = None

        try:
            while True:
                chunk = await connection.read_chunk()
                if not chunk:
                    break
                self._process_chunk(chunk)
        except ReadError as e:
            error = e
        except Exception as e:
            # e.g. a listener callback that raised
            logger.exception("Error in message receive loop: %s", e)
            error = e

        if self._closing or self.connection is not connection:
            logger.info("Receive loop stopped")
            return

        if error is None:
            logger.warning("Connection closed by server")
            self._add_notice("Disconnected from server.")
            await self._teardown(ConnectionState.DISCONNECTED)
        else:
            logger.error("Connection lost: %s", error)
            try:
                self._add_notice(f"Connection lost: {error}")
                self._emit_error("read", f"Connection lost: {error}")
            finally:
                await self._teardown(ConnectionState.FAILED, error)

    def _process_chunk(self, chunk: bytes) -> None:
        """
        Apply one received chunk to the store.

        Args:
            chunk: Raw bytes of one logical message
        """
        message = decode_chunk(chunk)
        if message is None:
            return

        if isinstance(message, GroupListUpdate):
            selected_before = self.store.selected_group
            if self.store.apply_group_list(message.names):
                self._emit_groups_changed()
            if not self._auto_select() and (
                self.store.selected_group != selected_before
            ):
                # The selected group was dropped by a replace
                if self._on_group_selected:
                    self._on_group_selected(None)
            return

        self._record(message)

    def _record(self, line: ChatLine) -> ChatLine:
        """Store a group line and notify listeners."""
        created = not self.store.has_group(line.group_key)
        self.store.append(line)

        if self._on_message_appended:
            self._on_message_appended(line.group_key, line)
        if created:
            self._emit_groups_changed()
            self._auto_select()
        return line

    def _auto_select(self) -> bool:
        """
        Select the first known group when nothing is selected.

        Returns:
            True if a group was selected.
        """
        if not self.auto_select_first_group:
            return False
        if self.store.selected_group is not None:
            return False
        groups = self.store.groups
        if not groups:
            return False
        logger.info("Auto-selecting group %s", groups[0].key)
        self.select_group(groups[0].key)
        return True

    # Helpers

    def _add_notice(self, message: str) -> ChatLine:
        line = self.store.record_notice(message)
        if self._on_message_appended:
            self._on_message_appended(None, line)
        return line

    async def _teardown(
        self, state: ConnectionState, error: Optional[Exception] = None
    ) -> None:
        """Release the connection after the session ended on its own."""
        connection = self.connection
        self.connection = None
        self._closing = True
        if error is not None:
            self.last_error = error
        if connection is not None:
            await connection.close()
        self._set_state(state)

    def _set_state(self, state: ConnectionState) -> None:
        if self.session is not None:
            self.session.state = state
        if state is self._state:
            return
        logger.info("Connection state: %s -> %s", self._state.value, state.value)
        self._state = state
        if self._on_connection_state_changed:
            self._on_connection_state_changed(state)

    def _emit_groups_changed(self) -> None:
        if self._on_groups_changed:
            self._on_groups_changed(self.store.group_names)

    def _emit_error(self, kind: str, message: str) -> None:
        if self._on_error:
            self._on_error(kind, message)
