"""
Schemas Package

This package contains the data model and wire schemas for the group chat
client, organized by category: group, message and session.
"""

from .base import BaseRequest, BaseNotification
from .group import (
    GROUPS_PREFIX,
    Group,
    GroupListUpdate,
    group_initials,
    parse_group_list,
)
from .message import (
    SYSTEM_PREFIX,
    ChatLine,
    SendMessageRequest,
    extract_group_name,
)
from .session import ConnectionState, Endpoint, Session

__all__ = [
    # Base classes
    "BaseRequest",
    "BaseNotification",
    # Group schemas
    "GROUPS_PREFIX",
    "Group",
    "GroupListUpdate",
    "group_initials",
    "parse_group_list",
    # Message schemas
    "SYSTEM_PREFIX",
    "ChatLine",
    "SendMessageRequest",
    "extract_group_name",
    # Session schemas
    "ConnectionState",
    "Endpoint",
    "Session",
]
