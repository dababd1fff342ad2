"""Hardware (MAC-style) address discovery and synthesis."""

import random
from typing import Iterable, Optional

from . import logger

# Read in order, first readable address wins
INTERFACE_ADDRESS_PATHS = (
    "/sys/class/net/eth0/address",
    "/sys/class/net/wlan0/address",
)

OCTETS = 6

# Low-order bits of the first octet
MULTICAST_BIT = 0x01
LOCAL_BIT = 0x02


def parse_hw_addr(text: str) -> bytes:
    """Parse a colon-separated hex address such as 'b8:27:eb:01:02:03'.

    Args:
        text: Address text, exactly six two-digit hex groups

    Returns:
        bytes: The six raw octets

    Raises:
        ValueError: If the text is not in the fixed six-group format
    """
    groups = text.strip().split(":")
    if len(groups) != OCTETS:
        raise ValueError(f"invalid hardware address '{text}': expected {OCTETS} groups")

    octets = []
    for group in groups:
        if len(group) != 2 or any(c not in "0123456789abcdefABCDEF" for c in group):
            raise ValueError(f"invalid hardware address '{text}': bad group '{group}'")
        octets.append(int(group, 16))
    return bytes(octets)


def format_hw_addr(raw: bytes) -> str:
    return ":".join(f"{octet:02x}" for octet in raw)


def find_hw_addr(paths: Iterable[str] = INTERFACE_ADDRESS_PATHS) -> Optional[str]:
    """Read the address of a real network interface.

    Args:
        paths: Interface address files, in priority order

    Returns:
        Optional[str]: Address text from the first usable file, or None
    """
    for path in paths:
        try:
            with open(path, 'r') as f:
                content = f.read().split()
        except OSError:
            continue

        if not content:
            continue
        try:
            parse_hw_addr(content[0])
        except ValueError:
            logger.debug(f"Ignoring unusable address in {path}: {content[0]}")
            continue
        return content[0]
    return None


def random_hw_addr(rng: Optional[random.Random] = None) -> bytes:
    """Generate a locally administered, unicast address."""
    rng = rng or random
    first = (rng.randrange(64) << 2) | LOCAL_BIT
    first &= ~MULTICAST_BIT
    return bytes([first] + [rng.randrange(256) for _ in range(OCTETS - 1)])


def resolve_hw_addr(force_random: bool = False, paths: Iterable[str] = INTERFACE_ADDRESS_PATHS) -> bytes:
    """Pick the hardware address used to register the service.

    Args:
        force_random: Skip the interface files and always synthesize
        paths: Interface address files

    Returns:
        bytes: Six-byte address
    """
    if not force_random:
        found = find_hw_addr(paths)
        if found:
            return parse_hw_addr(found)

    hw_addr = random_hw_addr()
    logger.info(f"Using randomly-generated MAC address {format_hw_addr(hw_addr)}")
    return hw_addr
