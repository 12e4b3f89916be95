"""
Identifier Generator
====================

- Opaque ids for invitations and connections
- 24-hex record ids used as store primary keys
- Short numeric invite codes typed on a feature-phone keypad
"""

import re
import secrets
import time

from .errors import ValidationError

RECORD_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def new_opaque_id() -> str:
    """Random hex followed by the current time in hex (milliseconds)"""
    return secrets.token_hex(6) + format(int(time.time() * 1000), "x")


def new_record_id() -> str:
    """
    Generate a record primary key

    4-byte big-endian seconds timestamp + 8 random bytes, hex encoded
    (24 characters). Ids created later sort after earlier ones at
    one-second granularity.
    """
    timestamp = int(time.time()).to_bytes(4, "big")
    return (timestamp + secrets.token_bytes(8)).hex()


def is_valid_record_id(value) -> bool:
    """Check that value is a well-formed record id"""
    return isinstance(value, str) and bool(RECORD_ID_PATTERN.match(value))


def generate_invite_code(length: int = 5) -> str:
    """
    Generate a numeric invite code

    Args:
        length: Number of digits

    Returns:
        Decimal string drawn uniformly from [10**(length-1), 10**length - 1]
    """
    if length < 1:
        raise ValueError(f"Invite code length must be positive: {length}")

    low = 10 ** (length - 1)
    high = 10 ** length - 1
    return str(low + secrets.randbelow(high - low + 1))


def require_record_id(value, field_name: str) -> str:
    """
    Normalize and validate a record id taken from a request

    Raises:
        ValidationError: id is missing or malformed
    """
    record_id = str(value).strip() if value is not None else ""
    if not record_id:
        raise ValidationError(f"{field_name} is required")
    if not is_valid_record_id(record_id):
        raise ValidationError(f"Invalid {field_name}")
    return record_id.lower()
