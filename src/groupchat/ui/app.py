"""
Chat Application UI

Main application class for the group chat terminal UI.
Built using the Textual framework.
"""

import logging
from typing import Callable, List, Optional

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import (
    Container,
    Horizontal,
    Vertical,
    ScrollableContainer,
)
from textual.css.query import NoMatches
from textual.widgets import (
    Button,
    Footer,
    Header,
    Input,
    Label,
    Static,
)

from ..chat_client import ChatClient
from ..config import SettingsStore
from ..errors import (
    ChatClientError,
    GroupNotFoundError,
    PreconditionError,
    ValidationError,
    WriteError,
)
from ..schemas import ChatLine, ConnectionState, Endpoint, Group, group_initials

logger = logging.getLogger(__name__)


class ChatLineDisplay(Static):
    """Widget for displaying a single timeline line."""

    def __init__(self, line: ChatLine, is_own_message: bool = False) -> None:
        """Initialize line display."""
        classes = "chat-line"
        if line.is_system:
            classes += " system-line"
        elif is_own_message:
            classes += " own-message"
        # Lines start with "[group]", which must not be read as markup
        super().__init__(line.text, markup=False, classes=classes)
        self.line = line
        self.is_own_message = is_own_message


class GroupButton(Button):
    """Round group button labelled with the group's initials."""

    def __init__(self, group_name: str, selected: bool = False) -> None:
        """Initialize group button."""
        classes = "group-button"
        if selected:
            classes += " selected-group"
        super().__init__(Text(group_initials(group_name)), classes=classes)
        self.group_key = group_name
        self.tooltip = group_name


class ConnectionBar(Container):
    """Username entry and connection controls."""

    def compose(self) -> ComposeResult:
        """Compose the connection bar."""
        with Horizontal(id="connection-row"):
            yield Input(placeholder="Enter your name...", id="username-input")
            yield Button(
                "Connect", id="connect-btn", variant="primary", disabled=True
            )
            yield Button(
                "Disconnect", id="disconnect-btn", variant="warning",
                disabled=True,
            )
            yield Button("Settings", id="settings-btn", variant="default")
        yield Static("", id="connection-status", classes="status-message")


class ChatScreen(Container):
    """Group bar, timeline and message input."""

    def compose(self) -> ComposeResult:
        """Compose the chat screen."""
        yield Horizontal(id="groups-panel")
        yield Static(
            "No group selected", id="group-header", classes="group-header"
        )
        yield ScrollableContainer(id="messages-container")
        with Horizontal(id="message-input-row"):
            yield Input(placeholder="Type a message...", id="message-input")
            yield Button(
                "Send", id="send-btn", variant="primary", disabled=True
            )


class SettingsDialog(Container):
    """Dialog for editing the server endpoint."""

    def compose(self) -> ComposeResult:
        """Compose the settings dialog."""
        yield Static("[bold blue]Server Settings[/]", classes="screen-title")
        with Vertical(id="settings-form"):
            yield Label("IP Address:")
            yield Input(placeholder="127.0.0.1", id="host-input")
            yield Label("Port:")
            yield Input(placeholder="5000", id="port-input")
            with Horizontal(classes="button-row"):
                yield Button("Save", id="save-settings-btn", variant="primary")
                yield Button(
                    "Cancel", id="cancel-settings-btn", variant="default"
                )
        yield Static("", id="settings-status", classes="status-message")


class ChatApp(App):
    """Main chat application."""

    CSS = """
    Screen {
        layout: vertical;
    }

    .screen-title {
        text-align: center;
        padding: 1 0;
        text-style: bold;
    }

    ConnectionBar {
        height: auto;
        padding: 0 1;
    }

    #connection-row {
        height: 3;
    }

    #username-input {
        width: 1fr;
    }

    #connection-row Button {
        margin: 0 0 0 1;
    }

    .status-message {
        text-align: center;
        padding: 0 1;
    }

    ChatScreen {
        height: 1fr;
    }

    #groups-panel {
        height: 3;
        padding: 0 1;
    }

    .group-button {
        min-width: 6;
        width: 6;
        margin: 0 1 0 0;
        background: #4E7FFF;
    }

    .selected-group {
        background: #3A5AD9;
        text-style: bold;
    }

    .group-header {
        padding: 0 1;
        background: $surface;
        text-align: center;
    }

    #messages-container {
        height: 1fr;
        padding: 0 1;
    }

    .chat-line {
        padding: 0 1;
    }

    .own-message {
        text-align: right;
    }

    .system-line {
        text-style: italic;
        color: $warning;
    }

    #message-input-row {
        height: 3;
        padding: 0 1;
    }

    #message-input {
        width: 1fr;
    }

    #send-btn {
        margin: 0 0 0 1;
    }

    SettingsDialog {
        align: center middle;
        padding: 2;
    }

    #settings-form {
        width: 50;
        height: auto;
        padding: 1;
        border: solid green;
    }

    #settings-form Input {
        margin: 0 0 1 0;
    }

    .button-row {
        height: 3;
        margin: 1 0 0 0;
    }

    .button-row Button {
        margin: 0 1 0 0;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", show=True),
        Binding("escape", "go_back", "Back", show=True),
    ]

    def __init__(
        self,
        settings: Optional[SettingsStore] = None,
        client_factory: Optional[Callable[[SettingsStore], ChatClient]] = None,
    ) -> None:
        """
        Initialize the chat application.

        Args:
            settings: Endpoint settings, defaults to the user's settings file
            client_factory: Optional factory building a ChatClient for the
                            settings (for dependency injection/testing)
        """
        super().__init__()
        self.settings = settings or SettingsStore()
        self._client_factory = client_factory or (
            lambda store: ChatClient(settings=store)
        )
        self.client: Optional[ChatClient] = None
        self.username: Optional[str] = None
        self._current_screen = "chat"

    def compose(self) -> ComposeResult:
        """Compose the main application layout."""
        yield Header()
        yield ConnectionBar(id="connection-bar")
        yield ChatScreen(id="chat-screen")
        yield SettingsDialog(id="settings-dialog")
        yield Footer()

    def on_mount(self) -> None:
        """Handle application mount."""
        self._show_screen("chat")
        self._update_controls()

    def _show_screen(self, screen_name: str) -> None:
        """Show the chat view or the settings dialog."""
        screens = {
            "chat": ("connection-bar", "chat-screen"),
            "settings": ("settings-dialog",),
        }

        for name, screen_ids in screens.items():
            for screen_id in screen_ids:
                try:
                    screen = self.query_one(f"#{screen_id}")
                    screen.display = name == screen_name
                except NoMatches:
                    pass

        self._current_screen = screen_name

    # Derived state

    @property
    def is_connected(self) -> bool:
        return self.client is not None and self.client.is_connected

    @property
    def is_session_active(self) -> bool:
        """Check if a connect is pending or a session is connected."""
        return self.client is not None and self.client.state in (
            ConnectionState.CONNECTING,
            ConnectionState.CONNECTED,
        )

    @property
    def selected_group(self) -> Optional[Group]:
        return self.client.selected_group if self.client else None

    def can_connect(self, username: str) -> bool:
        """Connect needs a non-blank name and no active session."""
        return bool(username.strip()) and not self.is_session_active

    def can_send(self, text: str) -> bool:
        """Send is allowed for non-blank text to a selected group."""
        return (
            bool(text.strip())
            and self.is_connected
            and self.selected_group is not None
        )

    # Event handlers

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button press events."""
        if isinstance(event.button, GroupButton):
            self._handle_select_group(event.button.group_key)
            return

        button_id = event.button.id

        if button_id == "connect-btn":
            await self._handle_connect()
        elif button_id == "disconnect-btn":
            await self._handle_disconnect()
        elif button_id == "settings-btn":
            self._show_settings()
        elif button_id == "save-settings-btn":
            self._handle_save_settings()
        elif button_id == "cancel-settings-btn":
            self._show_screen("chat")
        elif button_id == "send-btn":
            await self._handle_send_message()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        """Handle input submit events (Enter key)."""
        input_id = event.input.id

        if input_id == "message-input":
            if self.can_send(event.value):
                await self._handle_send_message()
        elif input_id == "username-input":
            if self.can_connect(event.value):
                await self._handle_connect()
        elif input_id in ("host-input", "port-input"):
            self._handle_save_settings()

    def on_input_changed(self, event: Input.Changed) -> None:
        """Keep button state in sync with the inputs."""
        if event.input.id in ("username-input", "message-input"):
            self._update_controls()

    async def _handle_connect(self) -> None:
        """Handle connection to the server."""
        if self.is_session_active:
            return

        username_input = self.query_one("#username-input", Input)
        username = username_input.value.strip()
        if not username:
            self._set_status("Please enter your name before connecting.", "red")
            return

        self.client = self._client_factory(self.settings)
        self.client.set_on_groups_changed(self._on_groups_changed)
        self.client.set_on_message_appended(self._on_message_appended)
        self.client.set_on_connection_state_changed(self._on_state_changed)
        self.client.set_on_error(self._on_error)
        self.client.set_on_group_selected(self._on_group_selected)

        endpoint = self.settings.get_endpoint()
        self._set_status(f"Connecting to {endpoint}...", "yellow")
        # connect() marks the session CONNECTING before its first await
        self.call_later(self._render_groups)
        self.call_later(self._render_timeline)

        try:
            await self.client.connect(username, endpoint)
        except ChatClientError as e:
            logger.error("Connection failed: %s", e)
            self._set_status(f"Failed to connect: {e}", "red")
            self._update_controls()
            return

        self.username = username
        self._set_status("Connected!", "green")
        self._update_controls()

    async def _handle_disconnect(self) -> None:
        """Handle disconnection from the server."""
        if self.client:
            await self.client.disconnect()
        self.username = None
        self._set_status("Disconnected", "yellow")
        self._update_controls()

    async def _handle_send_message(self) -> None:
        """Handle sending a message."""
        if not self.client:
            return

        message_input = self.query_one("#message-input", Input)
        try:
            await self.client.send_message(message_input.value)
        except PreconditionError as e:
            self._set_status(str(e), "yellow")
            return
        except WriteError as e:
            # The failure notice is already in the timeline
            logger.error("Failed to send message: %s", e)
            return
        message_input.value = ""
        self._update_controls()

    def _handle_select_group(self, group_key: str) -> None:
        """Handle a click on a group button."""
        if not self.client:
            return
        try:
            self.client.select_group(group_key)
        except GroupNotFoundError as e:
            self._set_status(str(e), "red")

    def _show_settings(self) -> None:
        """Show the settings dialog filled with the current endpoint."""
        endpoint = self.settings.get_endpoint()
        try:
            self.query_one("#host-input", Input).value = endpoint.host
            self.query_one("#port-input", Input).value = str(endpoint.port)
            self.query_one("#settings-status", Static).update("")
        except NoMatches:
            pass
        self._show_screen("settings")

    def _handle_save_settings(self) -> None:
        """Validate and persist the endpoint from the settings dialog."""
        host = self.query_one("#host-input", Input).value
        port = self.query_one("#port-input", Input).value
        status = self.query_one("#settings-status", Static)

        try:
            endpoint = Endpoint.parse(host, port)
        except ValidationError as e:
            status.update(Text(str(e), style="red"))
            return

        try:
            self.settings.set_endpoint(endpoint)
        except OSError as e:
            status.update(Text(f"Could not save settings: {e}", style="red"))
            return

        self._show_screen("chat")
        if self.is_connected:
            self._set_status(
                f"Settings saved. {endpoint} is used on the next connect.",
                "yellow",
            )
        else:
            self._set_status(f"Server set to {endpoint}", "green")

    # Client callbacks

    def _on_groups_changed(self, names: List[str]) -> None:
        """Callback when the known group list changes."""
        self.call_later(self._render_groups)

    def _on_message_appended(
        self, group_key: Optional[str], line: ChatLine
    ) -> None:
        """Callback when a line is added to a timeline."""
        selected = self.selected_group
        if group_key is None or (selected and selected.key == group_key):
            self.call_later(lambda ln=line: self._add_line(ln))

    def _on_state_changed(self, state: ConnectionState) -> None:
        """Callback when the session state changes."""
        if state is ConnectionState.DISCONNECTED:
            self._set_status("Disconnected from server.", "yellow")
        elif state is ConnectionState.FAILED:
            self._set_status("Connection lost.", "red")
        self.call_later(self._update_controls)

    def _on_error(self, kind: str, message: str) -> None:
        """Callback when the client reports an error."""
        logger.error("Client error (%s): %s", kind, message)
        self._set_status(message, "red")

    def _on_group_selected(self, group: Optional[Group]) -> None:
        """Callback when the selected group changes."""
        self.call_later(self._render_groups)
        self.call_later(self._render_timeline)
        self.call_later(self._update_controls)

    # Rendering

    def _update_controls(self) -> None:
        """Enable or disable buttons according to the session state."""
        try:
            username = self.query_one("#username-input", Input)
            message = self.query_one("#message-input", Input)
            self.query_one("#connect-btn", Button).disabled = not (
                self.can_connect(username.value)
            )
            self.query_one("#disconnect-btn", Button).disabled = not (
                self.is_connected
            )
            self.query_one("#send-btn", Button).disabled = not self.can_send(
                message.value
            )
            username.disabled = self.is_session_active
        except NoMatches:
            pass

    async def _render_groups(self) -> None:
        """Rebuild the group bar from the client's groups."""
        try:
            panel = self.query_one("#groups-panel", Horizontal)
        except NoMatches:
            return
        await panel.remove_children()
        if not self.client:
            return
        selected = self.selected_group
        buttons = [
            GroupButton(
                group.name,
                selected=selected is not None and selected.key == group.key,
            )
            for group in self.client.groups
        ]
        if buttons:
            await panel.mount(*buttons)

    async def _render_timeline(self) -> None:
        """Show the selected group's timeline."""
        try:
            header = self.query_one("#group-header", Static)
            messages = self.query_one(
                "#messages-container", ScrollableContainer
            )
        except NoMatches:
            return
        await messages.remove_children()

        selected = self.selected_group
        if selected is None or not self.client:
            header.update("No group selected")
            return

        header.update(f"Group: {selected.name}")
        widgets = [
            ChatLineDisplay(line, self._is_own(line))
            for line in self.client.messages_for(selected.key)
        ]
        if widgets:
            await messages.mount(*widgets)
            messages.scroll_end()

    def _add_line(self, line: ChatLine) -> None:
        """Append one line to the visible timeline."""
        try:
            messages = self.query_one(
                "#messages-container", ScrollableContainer
            )
            if any(
                widget.line is line
                for widget in messages.query(ChatLineDisplay)
            ):
                # Already shown by a timeline re-render
                return
            messages.mount(ChatLineDisplay(line, self._is_own(line)))
            messages.scroll_end()
        except NoMatches:
            pass

    def _is_own(self, line: ChatLine) -> bool:
        if line.is_system or not self.username or not line.group_key:
            return False
        return line.text.startswith(f"[{line.group_key}] {self.username}: ")

    def _set_status(self, message: str, style: str = "") -> None:
        # Plain Text so bracketed error details are not parsed as markup
        try:
            self.query_one("#connection-status", Static).update(
                Text(message, style=style)
            )
        except NoMatches:
            pass

    def action_go_back(self) -> None:
        """Handle back action."""
        if self._current_screen == "settings":
            self._show_screen("chat")
