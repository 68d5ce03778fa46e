"""
IPv4 dotted-quad <-> 32-bit integer conversion and range membership.

Only IPv4 is supported. IPv6 input raises UnsupportedAddressFamily so callers
can tell "wrong family" apart from "garbage".
"""
from typing import Optional


class AddressError(ValueError):
    pass


class InvalidAddress(AddressError):
    pass


class UnsupportedAddressFamily(AddressError):
    pass


def parse_ipv4(value: str) -> int:
    if not isinstance(value, str):
        raise InvalidAddress(f"Not an address: {value!r}")

    text = value.strip()
    if ":" in text:
        raise UnsupportedAddressFamily(f"IPv6 is not supported: {text}")

    parts = text.split(".")
    if len(parts) != 4:
        raise InvalidAddress(f"Expected 4 segments: {text}")

    number = 0
    for part in parts:
        # isdigit() also accepts non-ASCII digits
        if not part or not (part.isascii() and part.isdigit()) or len(part) > 3:
            raise InvalidAddress(f"Invalid segment {part!r} in {text}")
        octet = int(part)
        if octet > 255:
            raise InvalidAddress(f"Segment out of range {part!r} in {text}")
        number = (number << 8) | octet

    return number


def ip_to_int(value) -> Optional[int]:
    """Non-raising form of parse_ipv4; None means the address cannot be evaluated."""
    try:
        return parse_ipv4(value)
    except AddressError:
        return None


def int_to_ip(number: int) -> str:
    if not 0 <= number <= 0xFFFFFFFF:
        raise InvalidAddress(f"Out of IPv4 range: {number}")
    return ".".join(str((number >> shift) & 0xFF) for shift in (24, 16, 8, 0))


def in_range(ip: int, start: int, end: int) -> bool:
    return start <= ip <= end
