"""
Address helpers for 0x-prefixed 20-byte account addresses.
"""

import re
from typing import Optional

ZERO_ADDRESS = '0x' + '0' * 40

_ADDRESS_PATTERN = re.compile(r'^0x[0-9a-fA-F]{40}$')


def is_valid_address(address: Optional[str]) -> bool:
    """Check that the value is a well formed 0x-prefixed 20-byte hex address."""
    return bool(address) and isinstance(address, str) and bool(_ADDRESS_PATTERN.match(address))


def is_zero_address(address: Optional[str]) -> bool:
    """Empty and all-zero addresses both count as zero."""
    if not address:
        return True
    return normalize_address(address) == ZERO_ADDRESS


def is_usable_address(address: Optional[str]) -> bool:
    return is_valid_address(address) and not is_zero_address(address)


def normalize_address(address: str) -> str:
    """Lowercase form used as a storage key."""
    return address.strip().lower()
