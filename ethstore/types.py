"""Hash, address and block reference types shared across the package."""

from __future__ import annotations

import binascii
import re
from dataclasses import dataclass, field

HASH_LENGTH = 32
ADDRESS_LENGTH = 20
ZERO_HASH = bytes(HASH_LENGTH)
ZERO_ADDRESS = bytes(ADDRESS_LENGTH)

_HEX_ADDRESS = re.compile(r"(0[xX])?[0-9a-fA-F]{40}")


def _from_hex(text: str) -> bytes:
    """Decode a hex string with an optional 0x prefix, padding odd lengths."""
    if text.startswith(("0x", "0X")):
        text = text[2:]
    if len(text) % 2:
        text = "0" + text
    try:
        return binascii.unhexlify(text)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid hex string: {text!r}") from exc


def _left_pad(data: bytes, size: int) -> bytes:
    """Keep the last ``size`` bytes of ``data``, left-padding with zeros."""
    return bytes(data)[-size:].rjust(size, b"\0")


def parse_address(text: str) -> bytes:
    """Parse a hex string into a 20-byte address (extra leading bytes are dropped)."""
    return _left_pad(_from_hex(text), ADDRESS_LENGTH)


def parse_hash(text: str) -> bytes:
    """Parse a hex string into a 32-byte hash (extra leading bytes are dropped)."""
    return _left_pad(_from_hex(text), HASH_LENGTH)


def is_hex_address(text: str) -> bool:
    """Return whether ``text`` is exactly 40 hex digits, optionally 0x-prefixed."""
    return _HEX_ADDRESS.fullmatch(text) is not None


def bytes_to_hash(data: bytes) -> bytes:
    """Convert bytes to a 32-byte hash, keeping the trailing bytes."""
    return _left_pad(data, HASH_LENGTH)


def _check_hash(value: bytes, what: str) -> None:
    if len(value) != HASH_LENGTH:
        raise ValueError(f"{what} must be {HASH_LENGTH} bytes, got {len(value)}")


def _full_form(block_hash: bytes, number: int) -> str:
    return f"0x{block_hash.hex()}:{number}"


def _terminal_form(block_hash: bytes, number: int) -> str:
    return f"{block_hash[:3].hex()}..{block_hash[29:].hex()}:{number}"


@dataclass(frozen=True)
class BlockID:
    """A block hash paired with its number."""

    hash: bytes = ZERO_HASH
    number: int = 0

    def __post_init__(self) -> None:
        _check_hash(self.hash, "hash")

    def __str__(self) -> str:
        return _full_form(self.hash, self.number)

    def terminal_string(self) -> str:
        """Short form for console output."""
        return _terminal_form(self.hash, self.number)


@dataclass(frozen=True)
class L1BlockRef:
    """Reference to an L1 block."""

    hash: bytes = ZERO_HASH
    number: int = 0
    parent_hash: bytes = ZERO_HASH
    time: int = 0
    mix_digest: bytes = ZERO_HASH

    def __post_init__(self) -> None:
        _check_hash(self.hash, "hash")
        _check_hash(self.parent_hash, "parent_hash")
        _check_hash(self.mix_digest, "mix_digest")

    def __str__(self) -> str:
        return _full_form(self.hash, self.number)

    def terminal_string(self) -> str:
        """Short form for console output."""
        return _terminal_form(self.hash, self.number)

    def id(self) -> BlockID:
        """Return the hash and number of this block."""
        return BlockID(hash=self.hash, number=self.number)

    def parent_id(self) -> BlockID:
        """Return the parent's hash and number, saturating the number at zero."""
        return BlockID(hash=self.parent_hash, number=max(self.number - 1, 0))


@dataclass(frozen=True)
class L2BlockRef:
    """Reference to an L2 block and its L1 origin."""

    hash: bytes = ZERO_HASH
    number: int = 0
    parent_hash: bytes = ZERO_HASH
    time: int = 0
    l1_origin: BlockID = field(default_factory=BlockID)
    sequence_number: int = 0

    def __post_init__(self) -> None:
        _check_hash(self.hash, "hash")
        _check_hash(self.parent_hash, "parent_hash")

    def __str__(self) -> str:
        return _full_form(self.hash, self.number)

    def terminal_string(self) -> str:
        """Short form for console output."""
        return _terminal_form(self.hash, self.number)

    def id(self) -> BlockID:
        """Return the hash and number of this block."""
        return BlockID(hash=self.hash, number=self.number)

    def parent_id(self) -> BlockID:
        """Return the parent's hash and number, saturating the number at zero."""
        return BlockID(hash=self.parent_hash, number=max(self.number - 1, 0))