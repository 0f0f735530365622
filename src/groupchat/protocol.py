"""
Protocol Codec for Client-Server Communication

This module translates between in-memory chat concepts and the plaintext
wire format spoken over the TCP connection.

Message Format:
    Client -> Server chat send:
        [{group}] {username}: {text}
    Server -> Client group announcement:
        GROUPS:{name1},{name2},...
    Server -> Client chat relay:
        any other text, expected to start with "[{group}]"

There is no handshake, no length framing and no terminator. Each received
chunk is treated as exactly one logical message; coalesced or split writes
are not reassembled.
"""

import logging
from typing import Optional, Union

from .schemas import (
    GROUPS_PREFIX,
    ChatLine,
    GroupListUpdate,
    SendMessageRequest,
    extract_group_name,
    parse_group_list,
)
from .schemas.base import decode_wire

logger = logging.getLogger(__name__)

InboundMessage = Union[GroupListUpdate, ChatLine]

__all__ = [
    "GROUPS_PREFIX",
    "InboundMessage",
    "decode_chunk",
    "decode_text",
    "encode_chat",
    "extract_group_name",
    "parse_group_list",
]


def encode_chat(group: str, username: str, text: str) -> bytes:
    """
    Encode an outgoing chat line.

    Args:
        group: Target group name
        username: Sender display name
        text: Message text

    Returns:
        UTF-8 bytes to be written as one unit.
    """
    return SendMessageRequest(group, username, text).to_bytes()


def decode_text(text: str) -> Optional[InboundMessage]:
    """
    Classify one received message.

    Args:
        text: Decoded text of one chunk

    Returns:
        GroupListUpdate for a "GROUPS:" announcement, ChatLine for a line
        with a well-formed "[group]" prefix, or None when the line cannot
        be attributed to any group.
    """
    update = GroupListUpdate.from_text(text)
    if update is not None:
        logger.debug("Decoded group list: %s", update.names)
        return update

    line = ChatLine.from_text(text)
    if line is None:
        logger.warning("Dropping undeliverable line: %r", text)
        return None
    return line


def decode_chunk(data: bytes) -> Optional[InboundMessage]:
    """Decode and classify one raw chunk read from the socket."""
    return decode_text(decode_wire(data))
