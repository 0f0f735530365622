"""
Group Schema Definitions

This module defines the Group value type, the group announcement sent by
the server, and the display label derived from a group name.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .base import BaseNotification

GROUPS_PREFIX = "GROUPS:"


def group_initials(name: str) -> str:
    """
    Derive the short display label for a group.

    Uses up to the first two space-separated tokens of the name. A single
    token contributes its first two characters, two or more tokens
    contribute the first character of each of the first two.

    Args:
        name: Full group name

    Returns:
        Upper-cased label, e.g. "Dev Team" -> "DT", "Ops" -> "OP".
    """
    parts = name.split()
    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0][:2].upper()
    return "".join(part[0] for part in parts[:2]).upper()


@dataclass(frozen=True)
class Group:
    """
    A named channel partitioning chat lines.

    Attributes:
        name: Group name as announced by the server
        key: Lookup key; identical to the name
    """

    name: str
    key: str = field(default="")

    def __post_init__(self):
        if not self.key:
            object.__setattr__(self, "key", self.name)

    @property
    def initials(self) -> str:
        """Short label used on group buttons."""
        return group_initials(self.name)


def parse_group_list(text: str) -> List[str]:
    """
    Split the payload of a group announcement into names.

    Accepts either the full announcement or just the part after the
    prefix. Entries are trimmed and empty entries are dropped.

    Args:
        text: e.g. "GROUPS:Dev Team, QA ,  ,Ops"

    Returns:
        Group names in announced order, e.g. ["Dev Team", "QA", "Ops"].
    """
    if text.startswith(GROUPS_PREFIX):
        text = text[len(GROUPS_PREFIX) :]
    names = []
    for raw in text.split(","):
        name = raw.strip()
        if name:
            names.append(name)
    return names


@dataclass(frozen=True)
class GroupListUpdate(BaseNotification):
    """
    Server announcement of the available groups.

    Attributes:
        names: Announced group names in order
    """

    names: Tuple[str, ...]

    @classmethod
    def from_text(cls, text: str) -> Optional["GroupListUpdate"]:
        """Create from wire text, or None if it is not an announcement."""
        if not text.startswith(GROUPS_PREFIX):
            return None
        return cls(names=tuple(parse_group_list(text)))

    def to_text(self) -> str:
        """Render the announcement as the server would send it."""
        return GROUPS_PREFIX + ",".join(self.names)
