# src/wg_registry/ipam.py
from __future__ import annotations
import ipaddress
from typing import Set

from .errors import AddressSpaceExhausted
from .models import State

FIRST_PEER_SUFFIX = 2
LAST_PEER_SUFFIX = 254


def parse_network(cidr: str) -> ipaddress.IPv4Network:
    return ipaddress.IPv4Network(cidr, strict=False)


def with_suffix(address: str, suffix: int) -> str:
    octets = address.split(".")
    octets[3] = str(suffix)
    return ".".join(octets)


def block_address(block: str) -> str:
    """'10.8.5.0/16' -> '10.8.5.0' : l'adresse telle que configurée, sans le préfixe."""
    return block.split("/")[0].strip()


def server_address(block: str) -> str:
    """Adresse du serveur : le bloc par défaut avec le dernier octet forcé à 1."""
    return with_suffix(block_address(block), 1)


def is_valid_ipv4(address: str) -> bool:
    if not isinstance(address, str):
        return False
    parts = address.split(".")
    if len(parts) != 4:
        return False
    for part in parts:
        if not part.isdigit() or not part.isascii():
            return False
        if len(part) > 1 and part[0] == "0":
            return False
        if int(part) > 255:
            return False
    return True


def get_used_suffixes(state: State, block: str) -> Set[int]:
    used = set()
    prefix = block_address(block).rsplit(".", 1)[0]
    # Les peers désactivés gardent leur adresse
    for p in state.peers.values():
        if not is_valid_ipv4(p.address):
            continue
        head, last = p.address.rsplit(".", 1)
        if head == prefix:
            used.add(int(last))
    return used


def allocate_address(state: State, block: str) -> str:
    """
    Retourne la plus petite adresse libre '10.8.0.X' avec X dans [2, 254].
    Les trois premiers octets sont ceux du bloc configuré.
    """
    used = get_used_suffixes(state, block)
    base = block_address(block)

    for suffix in range(FIRST_PEER_SUFFIX, LAST_PEER_SUFFIX + 1):
        if suffix not in used:
            return with_suffix(base, suffix)

    raise AddressSpaceExhausted(block)
