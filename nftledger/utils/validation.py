"""
Input Validation - shape checks for every external input.

Validators return (is_valid, error_message) tuples; the ledger turns
failures into ValueError before touching state.
"""

import re
from typing import Any, Optional, Tuple

from nftledger.crypto import ADDRESS_SIZE, is_valid_address

# =============================================================================
# Constants
# =============================================================================

MAX_TOKEN_ID = 2**256 - 1
MAX_STRING_LENGTH = 1024
INTERFACE_ID_SIZE = 4

NAMESPACE_PATTERN = r"^[A-Za-z0-9_.\-]+$"


# =============================================================================
# Validation Functions
# =============================================================================


def validate_integer(
    value: Any,
    name: str,
    min_val: int = 0,
    max_val: int = MAX_TOKEN_ID,
) -> Tuple[bool, str]:
    """
    Validate integer within bounds.

    Args:
        value: Value to validate
        name: Field name for errors
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        (is_valid, error_message)
    """
    # bool is an int subclass, but True is not a token id
    if not isinstance(value, int) or isinstance(value, bool):
        return False, f"{name} must be int, got {type(value).__name__}"

    if value < min_val:
        return False, f"{name} must be >= {min_val}, got {value}"

    if value > max_val:
        return False, f"{name} must be <= {max_val}, got {value}"

    return True, ""


def validate_token_id(token_id: Any) -> Tuple[bool, str]:
    """Validate a token id (uint256)."""
    return validate_integer(token_id, "token_id", 0, MAX_TOKEN_ID)


def validate_address(address: Any, name: str = "address") -> Tuple[bool, str]:
    """Validate an address given as 20 raw bytes or a 0x hex string."""
    if isinstance(address, (bytes, bytearray)):
        if len(address) != ADDRESS_SIZE:
            return False, f"{name} must be {ADDRESS_SIZE} bytes, got {len(address)}"
        return True, ""

    if not isinstance(address, str):
        return False, f"{name} must be str or bytes, got {type(address).__name__}"

    if not is_valid_address(address):
        return False, f"{name} is not a 0x-prefixed {ADDRESS_SIZE}-byte hex address: {address!r}"

    return True, ""


def validate_string(
    value: Any,
    name: str,
    max_length: int = MAX_STRING_LENGTH,
    pattern: Optional[str] = None,
) -> Tuple[bool, str]:
    """
    Validate string input.

    Args:
        value: Value to validate
        name: Field name for errors
        max_length: Maximum string length
        pattern: Optional regex pattern

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, f"{name} must be str, got {type(value).__name__}"

    if len(value) > max_length:
        return False, f"{name} exceeds max length {max_length}"

    if pattern and not re.match(pattern, value):
        return False, f"{name} does not match required pattern"

    return True, ""


def validate_namespace(namespace: Any) -> Tuple[bool, str]:
    """Validate a storage namespace (no separators, not empty)."""
    if namespace == "":
        return False, "namespace must not be empty"
    return validate_string(namespace, "namespace", max_length=64, pattern=NAMESPACE_PATTERN)


def validate_interface_id(interface_id: Any) -> Tuple[bool, str]:
    """Validate an ERC-165 interface id (4 bytes or int below 2**32)."""
    if isinstance(interface_id, (bytes, bytearray)):
        if len(interface_id) != INTERFACE_ID_SIZE:
            return False, f"interface_id must be {INTERFACE_ID_SIZE} bytes, got {len(interface_id)}"
        return True, ""
    return validate_integer(interface_id, "interface_id", 0, 2**32 - 1)


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "validate_integer",
    "validate_token_id",
    "validate_address",
    "validate_string",
    "validate_namespace",
    "validate_interface_id",
    "MAX_TOKEN_ID",
    "MAX_STRING_LENGTH",
]
