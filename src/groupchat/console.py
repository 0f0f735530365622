#!/usr/bin/env python3
"""
Line-Mode Console Client

A minimal client for terminals where the full UI is not wanted. Lines
typed on stdin are sent to the selected group; commands start with "/".

Usage:
    python -m groupchat.console --username alice
    python -m groupchat.console --username alice --host 10.0.0.5 --port 5000

Commands:
    /groups          list known groups, the selected one marked with *
    /join <group>    select a group
    /quit            disconnect and exit
"""

import argparse
import asyncio
import logging
import os
import sys
import threading
from typing import Optional, TextIO

from .chat_client import ChatClient
from .config import SettingsStore
from .errors import (
    ChatClientError,
    GroupNotFoundError,
    PreconditionError,
    ValidationError,
    WriteError,
)
from .schemas import ChatLine, ConnectionState, Endpoint, Group

logger = logging.getLogger(__name__)


class ConsoleSession:
    """
    Bridges a ChatClient to a pair of text streams.

    Attributes:
        client: The ChatClient driving the session
        output: Stream that receives timeline lines and notices
    """

    def __init__(self, client: ChatClient, output: TextIO = sys.stdout):
        self.client = client
        self.output = output
        client.set_on_message_appended(self._on_message_appended)
        client.set_on_groups_changed(self._on_groups_changed)
        client.set_on_group_selected(self._on_group_selected)
        client.set_on_error(self._on_error)

    def _print(self, text: str) -> None:
        print(text, file=self.output, flush=True)

    def _on_message_appended(
        self, group_key: Optional[str], line: ChatLine
    ) -> None:
        selected = self.client.selected_group
        if group_key is None or (selected and selected.key == group_key):
            self._print(line.text)

    def _on_groups_changed(self, names) -> None:
        self._print(f"* Groups: {', '.join(names) or '(none)'}")

    def _on_group_selected(self, group: Optional[Group]) -> None:
        if group is None:
            self._print("* No group selected")
            return
        self._print(f"* Now chatting in {group.name}")
        for line in self.client.messages_for(group.key):
            self._print(line.text)

    def _on_error(self, kind: str, message: str) -> None:
        self._print(f"* Error ({kind}): {message}")

    async def handle_line(self, line: str) -> bool:
        """
        Process one line of user input.

        Returns:
            False when the session should end.
        """
        line = line.strip()
        if not line:
            return True

        if line == "/quit":
            return False
        if line == "/groups":
            selected = self.client.selected_group
            for group in self.client.groups:
                marker = "*" if selected and selected.key == group.key else " "
                self._print(f"{marker} {group.name} ({group.initials})")
            return True
        if line == "/join" or line.startswith("/join "):
            group_key = line[len("/join") :].strip()
            if not group_key:
                self._print("* Usage: /join <group>")
                return True
            try:
                self.client.select_group(group_key)
            except GroupNotFoundError as e:
                self._print(f"* {e}")
            return True

        try:
            await self.client.send_message(line)
        except PreconditionError as e:
            self._print(f"* {e}")
        except WriteError:
            # Already reported through the timeline and on_error
            return False
        return True

    def _start_reader(self, stdin: TextIO) -> "asyncio.Queue[Optional[str]]":
        """
        Read stdin on a daemon thread and hand lines to the event loop.

        None is queued on EOF and when the session ends, so the input loop
        never stays blocked on a dead connection.
        """
        loop = asyncio.get_running_loop()
        lines: "asyncio.Queue[Optional[str]]" = asyncio.Queue()

        def put(item: Optional[str]) -> bool:
            try:
                loop.call_soon_threadsafe(lines.put_nowait, item)
            except RuntimeError:
                # Event loop already closed
                return False
            return True

        def pump() -> None:
            for line in iter(stdin.readline, ""):
                if not put(line):
                    return
            put(None)

        def on_state_changed(state: ConnectionState) -> None:
            if state in (ConnectionState.DISCONNECTED, ConnectionState.FAILED):
                lines.put_nowait(None)

        self.client.set_on_connection_state_changed(on_state_changed)
        threading.Thread(target=pump, name="stdin-reader", daemon=True).start()
        return lines

    async def run(self, username: str, endpoint: Endpoint, stdin: TextIO) -> int:
        """
        Connect and pump stdin until EOF, /quit or connection loss.

        Returns:
            Process exit code.
        """
        try:
            await self.client.connect(username, endpoint)
        except ChatClientError as e:
            self._print(f"* {e}")
            return 1

        lines = self._start_reader(stdin)
        try:
            while self.client.state is ConnectionState.CONNECTED:
                line = await lines.get()
                if line is None:
                    break
                if not await self.handle_line(line):
                    break
        finally:
            failed = self.client.state is ConnectionState.FAILED
            await self.client.disconnect()
        return 1 if failed else 0


def main():
    """Main entry point for the console client."""
    parser = argparse.ArgumentParser(description="Group chat console client")
    parser.add_argument("--username", required=True, help="Display name")
    parser.add_argument("--host", help="Server host (default: from settings)")
    parser.add_argument("--port", help="Server port (default: from settings)")
    parser.add_argument(
        "--save",
        action="store_true",
        help="Remember --host/--port for future sessions",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=os.environ.get("GROUPCHAT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = SettingsStore()
    endpoint = settings.get_endpoint()
    if args.host or args.port:
        try:
            endpoint = Endpoint.parse(
                args.host or endpoint.host, args.port or str(endpoint.port)
            )
        except ValidationError as e:
            parser.error(str(e))
        if args.save:
            settings.set_endpoint(endpoint)

    session = ConsoleSession(ChatClient(settings=settings))
    try:
        sys.exit(asyncio.run(session.run(args.username, endpoint, sys.stdin)))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(0)


if __name__ == "__main__":
    main()
