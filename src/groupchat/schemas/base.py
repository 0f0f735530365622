"""
Base Schema Classes

This module provides base classes for outbound requests and inbound
notifications so that encoding and decoding live next to the wire format
instead of being repeated in every schema.
"""

from typing import Optional, TypeVar

T = TypeVar("T", bound="BaseNotification")

WIRE_ENCODING = "utf-8"


def decode_wire(data: bytes) -> str:
    """
    Decode one received chunk.

    Invalid UTF-8 sequences are replaced rather than rejected.
    """
    return data.decode(WIRE_ENCODING, errors="replace")


class BaseRequest:
    """
    Base class for outbound request schemas.

    Subclasses implement to_text(); the wire form is always that text
    encoded as UTF-8 with no length prefix or terminator.
    """

    def to_text(self) -> str:
        """
        Render the request as wire text.

        Should be overridden by subclasses.
        """
        raise NotImplementedError("Subclasses must define to_text")

    def to_bytes(self) -> bytes:
        """
        Encode the request for a single socket write.

        Returns:
            UTF-8 bytes of to_text().
        """
        return self.to_text().encode(WIRE_ENCODING)


class BaseNotification:
    """
    Base class for inbound notification schemas.

    Subclasses implement from_text(), which receives one chunk already
    decoded with decode_wire().
    """

    @classmethod
    def from_text(cls: type[T], text: str) -> Optional[T]:
        """
        Create instance from decoded wire text.

        Should be overridden by subclasses.
        """
        raise NotImplementedError("Subclasses must define from_text")
