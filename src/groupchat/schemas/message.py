"""
Message Schema Definitions

This module defines the chat line stored per group and the outbound
send request.

Wire format of a chat line:
    [{group}] {username}: {text}
"""

from dataclasses import dataclass
from typing import Optional

from .base import BaseNotification, BaseRequest

SYSTEM_PREFIX = "[System]: "


def extract_group_name(text: str) -> Optional[str]:
    """
    Recover the group a chat line belongs to from its bracketed prefix.

    Args:
        text: Full chat line, e.g. "[General] Alice: hi"

    Returns:
        The text between the first "[" and the first "]", or None when the
        line does not start with a non-empty bracketed name.
    """
    if not text.startswith("["):
        return None
    end = text.find("]")
    if end <= 1:
        return None
    return text[1:end]


@dataclass(frozen=True)
class ChatLine(BaseNotification):
    """
    One line in a group's timeline.

    Attributes:
        group_key: Group the line belongs to; None for cross-cutting
                   system notices
        text: The full line, stored verbatim
        is_system: True for notices generated locally by the client
    """

    group_key: Optional[str]
    text: str
    is_system: bool = False

    @classmethod
    def from_text(cls, text: str) -> Optional["ChatLine"]:
        """
        Create from a relayed chat line.

        Returns:
            ChatLine attributed to the bracketed group, or None when the
            group cannot be determined.
        """
        group_key = extract_group_name(text)
        if group_key is None:
            return None
        return cls(group_key=group_key, text=text)

    @classmethod
    def notice(cls, message: str, group_key: Optional[str] = None) -> "ChatLine":
        """
        Create a locally generated system notice.

        Args:
            message: Notice body, without the "[System]: " prefix
            group_key: Group to attach the notice to, if any
        """
        return cls(
            group_key=group_key, text=SYSTEM_PREFIX + message, is_system=True
        )


@dataclass
class SendMessageRequest(BaseRequest):
    """
    Request to send a chat line to a group.

    Attributes:
        group: Name of the target group
        username: Display name of the sender
        content: The message text
    """

    group: str
    username: str
    content: str

    def to_text(self) -> str:
        """Return the line exactly as it is written to the socket."""
        return f"[{self.group}] {self.username}: {self.content}"
