"""
Address primitives for the NFT ledger.

This module provides:
- Hashing (Keccak-256 for address derivation and checksums)
- Key generation on secp256k1 (for demo and test accounts)
- Address derivation, normalization and EIP-55 checksum encoding

Design Notes:
-------------
Addresses follow Ethereum conventions: the last 20 bytes of
keccak256(public_key). Inside the ledger every address is a lowercase
0x-prefixed hex string so that equality is plain string equality and
store keys are canonical. The checksummed form is for display only.

NULL_ADDRESS is the sentinel for "no owner", "no approval", the mint
source and the burn destination.
"""

import re
import secrets
from dataclasses import dataclass
from typing import Union

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


# =============================================================================
# Constants
# =============================================================================

# secp256k1 curve order (number of points on the curve)
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

ADDRESS_SIZE = 20

NULL_ADDRESS = "0x" + "0" * (ADDRESS_SIZE * 2)

ADDRESS_PATTERN = re.compile(r"0[xX][0-9a-fA-F]{%d}" % (ADDRESS_SIZE * 2))


# =============================================================================
# Hashing
# =============================================================================


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).

    Used for: address derivation, checksum encoding, interface ids.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# =============================================================================
# Key Generation
# =============================================================================


@dataclass
class KeyPair:
    """
    An ECDSA keypair on secp256k1.

    Attributes:
        private_key: 32-byte secret key (integer in [1, order-1])
        public_key: 64-byte uncompressed public key (x || y coordinates)
    """
    private_key: bytes  # 32 bytes
    public_key: bytes   # 64 bytes (uncompressed, no 0x04 prefix)

    @property
    def address(self) -> str:
        """Ledger address (lowercase hex) derived from the public key."""
        return address_from_public_key(self.public_key)


def generate_keypair() -> KeyPair:
    """
    Generate a new random keypair.

    Uses cryptographically secure random number generator.
    """
    private_key_int = secrets.randbelow(SECP256K1_ORDER - 1) + 1
    private_key = private_key_int.to_bytes(32, byteorder="big")
    return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))


def private_key_to_public_key(private_key: bytes) -> bytes:
    """
    Derive public key from private key.

    Args:
        private_key: 32-byte private key

    Returns:
        64-byte uncompressed public key
    """
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    public_key_point = secp256k1.privtopub(private_key)
    x_bytes = public_key_point[0].to_bytes(32, byteorder="big")
    y_bytes = public_key_point[1].to_bytes(32, byteorder="big")
    return x_bytes + y_bytes


# =============================================================================
# Addresses
# =============================================================================


def address_from_public_key(public_key: bytes) -> str:
    """
    Derive address from public key.

    Address = last 20 bytes of keccak256(public_key), lowercase hex with 0x prefix.
    """
    if len(public_key) != 64:
        raise ValueError(f"Public key must be 64 bytes, got {len(public_key)}")
    return bytes_to_hex(keccak256(public_key)[-ADDRESS_SIZE:])


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string (with or without 0x prefix) to bytes."""
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(address: str) -> bool:
    """Check if string is a valid address format (any letter case)."""
    if not isinstance(address, str):
        return False
    return ADDRESS_PATTERN.fullmatch(address) is not None


def normalize_address(address: Union[str, bytes]) -> str:
    """
    Canonicalize an address to lowercase 0x-prefixed hex.

    Accepts 20 raw bytes or a hex string in any letter case.

    Raises:
        ValueError: if the input is not a 20-byte address
    """
    if isinstance(address, (bytes, bytearray)):
        if len(address) != ADDRESS_SIZE:
            raise ValueError(f"Address must be {ADDRESS_SIZE} bytes, got {len(address)}")
        return bytes_to_hex(bytes(address))

    if not is_valid_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return "0x" + address[2:].lower()


def to_checksum_address(address: Union[str, bytes]) -> str:
    """
    Encode an address with EIP-55 mixed-case checksum.

    Args:
        address: Address in any accepted form

    Returns:
        Checksummed 0x-prefixed address
    """
    lowered = normalize_address(address)[2:]
    digest = keccak256(lowered.encode("ascii")).hex()
    return "0x" + "".join(
        char.upper() if char.isalpha() and int(digest[i], 16) >= 8 else char
        for i, char in enumerate(lowered)
    )


def is_null_address(address: str) -> bool:
    """Check whether a normalized address is the null sentinel."""
    return address == NULL_ADDRESS
