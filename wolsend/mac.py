from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Union

from .errors import MacFormatError, MissingAddressError

MAC_LENGTH = 6

# Always accepted
_PLAIN = re.compile(r"[0-9a-f]{12}", re.IGNORECASE)
_HYPHEN = re.compile(r"[0-9a-f]{2}(?:-[0-9a-f]{2}){5}", re.IGNORECASE)
# Accepted only with extended=True
_COLON = re.compile(r"[0-9a-f]{2}(?::[0-9a-f]{2}){5}", re.IGNORECASE)
_DOTTED = re.compile(r"[0-9a-f]{4}(?:\.[0-9a-f]{4}){2}", re.IGNORECASE)

BASIC_FORMS = (_PLAIN, _HYPHEN)
EXTENDED_FORMS = BASIC_FORMS + (_COLON, _DOTTED)


@dataclass(frozen=True)
class MacAddress:
    octets: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.octets, (bytes, bytearray)):
            raise MacFormatError(f"MAC address must be bytes, not {type(self.octets).__name__}")
        if len(self.octets) != MAC_LENGTH:
            raise MacFormatError("MAC address must be 6 bytes (48 bits) long")
        # bytearray would make the frozen value mutable through the back door
        object.__setattr__(self, "octets", bytes(self.octets))

    @classmethod
    def parse(cls, text: str, extended: bool = True) -> "MacAddress":
        return parse_mac(text, extended=extended)

    @classmethod
    def from_bytes(cls, raw: Union[bytes, bytearray]) -> "MacAddress":
        return cls(bytes(raw))

    def format(self, sep: str = ":") -> str:
        return sep.join(f"{b:02x}" for b in self.octets)

    def __str__(self) -> str:
        return self.format()

    def __bytes__(self) -> bytes:
        return self.octets


def parse_mac(text: str, extended: bool = True) -> MacAddress:
    """Parse a textual MAC address.

    Plain (``0123456789AB``) and hyphenated (``01-23-45-67-89-AB``) forms are
    always accepted. With ``extended`` (the default) colon-separated
    (``00:11:22:33:44:55``) and Cisco dotted (``0011.2233.4455``) forms are
    accepted too. Hex digits are case-insensitive in every form.
    """
    if text is None or (isinstance(text, str) and not text):
        raise MissingAddressError("MAC address is required")
    if not isinstance(text, str):
        raise MacFormatError(f"MAC address must be text, not {type(text).__name__}")

    forms = EXTENDED_FORMS if extended else BASIC_FORMS
    if not any(form.fullmatch(text) for form in forms):
        raise MacFormatError(f"Invalid MAC address: {text!r}")
    digits = re.sub(r"[-:.]", "", text)
    return MacAddress(bytes.fromhex(digits))


def parse_macs(texts: Iterable[str], extended: bool = True) -> List[MacAddress]:
    if texts is None:
        raise MissingAddressError("MAC address list is required")
    return [parse_mac(t, extended=extended) for t in texts]


def coerce_mac(value: Union[MacAddress, bytes, bytearray, str], extended: bool = True) -> MacAddress:
    """Accept a MacAddress, raw bytes or text and return a MacAddress."""
    if isinstance(value, MacAddress):
        return value
    if isinstance(value, (bytes, bytearray)):
        return MacAddress.from_bytes(value)
    return parse_mac(value, extended=extended)
