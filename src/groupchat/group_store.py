"""
Group Store for Client-Side Message Routing

This module keeps the authoritative in-memory state for groups and their
chat lines: the ordered set of known groups, an append-only timeline per
group, the currently selected group, and cross-cutting system notices.

Architecture:
    - Groups are kept in discovery order with no duplicate keys
    - History is keyed by group and survives re-announcements
    - All mutations are serialized with a re-entrant lock

Usage:
    store = GroupStore()
    store.apply_group_list(["General", "Dev Team"])
    store.record_message("General", "[General] alice: hi")
    store.select("General")
    lines = store.messages_for("General")
"""

import logging
import threading
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .errors import GroupNotFoundError
from .schemas import ChatLine, Group, group_initials

logger = logging.getLogger(__name__)

__all__ = ["GroupListPolicy", "GroupStore", "group_initials"]


class GroupListPolicy(str, Enum):
    """How a group announcement is applied to the known set."""

    # Union with the known set; groups are never removed
    APPEND = "append"
    # The known set becomes exactly the announced names
    REPLACE = "replace"


class GroupStore:
    """
    Ordered groups, per-group timelines and the selection.

    Attributes:
        policy: GroupListPolicy used by apply_group_list
    """

    def __init__(self, policy: GroupListPolicy = GroupListPolicy.APPEND):
        """
        Initialize an empty store.

        Args:
            policy: How group announcements are applied
        """
        self.policy = GroupListPolicy(policy)
        self._groups: List[Group] = []
        self._messages: Dict[str, List[ChatLine]] = {}
        self._notices: List[ChatLine] = []
        self._selected: Optional[Group] = None
        self._lock = threading.RLock()

    @property
    def groups(self) -> List[Group]:
        """Known groups in discovery order."""
        with self._lock:
            return list(self._groups)

    @property
    def group_names(self) -> List[str]:
        with self._lock:
            return [group.name for group in self._groups]

    @property
    def selected_group(self) -> Optional[Group]:
        return self._selected

    @property
    def notices(self) -> List[ChatLine]:
        """System notices not tied to any group."""
        with self._lock:
            return list(self._notices)

    def has_group(self, group_key: str) -> bool:
        with self._lock:
            return self._find(group_key) is not None

    def apply_group_list(self, names: Iterable[str]) -> bool:
        """
        Apply a group announcement.

        Args:
            names: Announced group names in order

        Returns:
            True if the list of known groups changed.
        """
        with self._lock:
            before = [group.key for group in self._groups]

            if self.policy is GroupListPolicy.REPLACE:
                self._groups = []
            for name in names:
                if name and self._find(name) is None:
                    self._groups.append(Group(name))

            if self._selected is not None and self._find(
                self._selected.key
            ) is None:
                logger.info(
                    "Selected group %s is no longer announced",
                    self._selected.key,
                )
                self._selected = None

            changed = before != [group.key for group in self._groups]
            if changed:
                logger.info("Groups updated: %s", self.group_names)
            return changed

    def record_message(
        self, group_key: str, text: str, is_system: bool = False
    ) -> Optional[ChatLine]:
        """
        Append a line to a group's timeline.

        The group is created if it has not been announced yet.

        Args:
            group_key: Group the line belongs to
            text: Full line text
            is_system: True for locally generated notices

        Returns:
            The stored ChatLine, or None if group_key is empty.
        """
        if not group_key:
            logger.debug("Ignoring message without group: %r", text)
            return None
        return self.append(
            ChatLine(group_key=group_key, text=text, is_system=is_system)
        )

    def record_notice(self, message: str) -> ChatLine:
        """
        Append a system notice that belongs to no group.

        Args:
            message: Notice body, without the "[System]: " prefix

        Returns:
            The stored ChatLine.
        """
        return self.append(ChatLine.notice(message))

    def append(self, line: ChatLine) -> ChatLine:
        """
        Store a prebuilt line.

        Lines without a group key go to the notices; any other line goes
        to its group's timeline, creating the group if needed.
        """
        with self._lock:
            if line.group_key is None:
                self._notices.append(line)
                return line
            if self._find(line.group_key) is None:
                self._groups.append(Group(line.group_key))
                logger.info(
                    "Group %s created by incoming message", line.group_key
                )
            self._messages.setdefault(line.group_key, []).append(line)
        return line

    def select(self, group_key: str) -> Group:
        """
        Make a known group the selected one.

        Raises:
            GroupNotFoundError: If group_key is not a known group
        """
        with self._lock:
            group = self._find(group_key)
            if group is None:
                raise GroupNotFoundError(group_key)
            self._selected = group
        logger.debug("Selected group %s", group_key)
        return group

    def messages_for(self, group_key: Optional[str]) -> List[ChatLine]:
        """
        Get a group's timeline.

        Returns:
            Copy of the lines in insertion order; empty for unknown keys.
        """
        with self._lock:
            return list(self._messages.get(group_key, ()))

    def reset(self) -> None:
        """
        Clear groups, history, notices and the selection.

        This should be called when a new session starts.
        """
        with self._lock:
            self._groups.clear()
            self._messages.clear()
            self._notices.clear()
            self._selected = None
        logger.debug("Group store cleared")

    def _find(self, group_key: str) -> Optional[Group]:
        for group in self._groups:
            if group.key == group_key:
                return group
        return None
