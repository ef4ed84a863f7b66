"""Hardware (MAC) address parsing and canonical formatting."""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import Tuple

from powerloop.core.exceptions import AddressParseError

ADDRESS_LENGTH = 6
_HEX_DIGITS = frozenset(string.hexdigits)


@dataclass(frozen=True)
class HardwareAddress:
    """
    Six-octet hardware address of a network interface.

    The canonical text form is six colon-separated two-digit hexadecimal groups in lower case. Parsing accepts either
    case.

    Attributes:
        octets: The six address octets, each in [0, 255].

    Example:
        >>> addr = HardwareAddress.parse("01:23:45:67:89:AB")
        >>> addr.octets
        (1, 35, 69, 103, 137, 171)
        >>> str(addr)
        '01:23:45:67:89:ab'
    """

    octets: Tuple[int, ...]

    def __post_init__(self):
        octets = tuple(self.octets)
        if len(octets) != ADDRESS_LENGTH:
            raise AddressParseError(octets, f"expected {ADDRESS_LENGTH} octets, got {len(octets)}")
        for octet in octets:
            if isinstance(octet, bool) or not isinstance(octet, int) or not 0 <= octet <= 255:
                raise AddressParseError(octets, f"octet {octet!r} is not in [0, 255]")
        object.__setattr__(self, "octets", octets)

    @classmethod
    def parse(cls, text: str) -> "HardwareAddress":
        """
        Parse a colon-separated hardware address.

        Args:
            text: Address text such as ``"aa:bb:cc:dd:ee:ff"``.

        Returns:
            The parsed address.

        Raises:
            AddressParseError: If the text is empty, has the wrong number of groups, a group that is not exactly two
                hex digits, or any other character.
        """
        if not isinstance(text, str):
            raise AddressParseError(text, "expected a string")
        if not text:
            raise AddressParseError(text, "empty address")

        groups = text.split(":")
        if len(groups) != ADDRESS_LENGTH:
            raise AddressParseError(text, f"expected {ADDRESS_LENGTH} groups, got {len(groups)}")

        octets = []
        for index, group in enumerate(groups):
            if len(group) != 2:
                raise AddressParseError(text, f"group {index + 1} ({group!r}) must be exactly two hex digits")
            if not _HEX_DIGITS.issuperset(group):
                raise AddressParseError(text, f"group {index + 1} ({group!r}) is not hexadecimal")
            octets.append(int(group, 16))
        return cls(tuple(octets))

    @classmethod
    def from_bytes(cls, data: bytes) -> "HardwareAddress":
        return cls(tuple(data))

    @property
    def packed(self) -> bytes:
        """The address as six raw bytes."""
        return bytes(self.octets)

    def __str__(self) -> str:
        return ":".join(f"{octet:02x}" for octet in self.octets)
