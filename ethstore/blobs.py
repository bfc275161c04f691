"""Blob packing helpers: field-element encoding, raw splitting and versioned hashes."""

from __future__ import annotations

import hashlib
import re

FIELD_ELEMENTS_PER_BLOB = 4096
FIELD_ELEMENT_SIZE = 32
BLOB_SIZE = FIELD_ELEMENTS_PER_BLOB * FIELD_ELEMENT_SIZE
_USABLE_BYTES = FIELD_ELEMENT_SIZE - 1
BLOB_COMMITMENT_VERSION_KZG = 0x01
MAX_UINT256 = (1 << 256) - 1

_DECIMAL = re.compile(r"[+-]?[0-9]+")
_HEX = re.compile(r"[+-]?[0-9a-fA-F]+")


def encode_blobs(data: bytes) -> list[bytes]:
    """Pack ``data`` 31 bytes per field element, leaving each element's first byte zero.

    Always returns at least one blob.
    """
    data = bytes(data)
    blobs = [bytearray(BLOB_SIZE)]
    for n, start in enumerate(range(0, len(data), _USABLE_BYTES)):
        field_index = n % FIELD_ELEMENTS_PER_BLOB
        if n and field_index == 0:
            blobs.append(bytearray(BLOB_SIZE))
        piece = data[start:start + _USABLE_BYTES]
        offset = field_index * FIELD_ELEMENT_SIZE + 1
        blobs[-1][offset:offset + len(piece)] = piece
    return [bytes(blob) for blob in blobs]


def convert_to_blobs(data: bytes) -> list[bytes]:
    """Split ``data`` into blob-sized pieces, zero-padding the last one."""
    data = bytes(data)
    return [
        data[start:start + BLOB_SIZE].ljust(BLOB_SIZE, b"\0")
        for start in range(0, len(data), BLOB_SIZE)
    ]


def decode_blob(blob: bytes) -> bytes:
    """Undo :func:`encode_blobs` for a single blob, returning its 31-byte payloads."""
    blob = bytes(blob)
    if len(blob) != BLOB_SIZE:
        raise ValueError("Invalid blob encoding")
    return b"".join(
        blob[start + 1:start + FIELD_ELEMENT_SIZE]
        for start in range(0, BLOB_SIZE, FIELD_ELEMENT_SIZE)
    )


def decode_uint256_string(text: str) -> int:
    """Parse a decimal or 0x-prefixed hex string into an unsigned 256-bit integer."""
    if text.startswith("0x"):
        digits, base, pattern = text[2:], 16, _HEX
    else:
        digits, base, pattern = text, 10, _DECIMAL
    if pattern.fullmatch(digits) is None:
        raise ValueError("invalid value")
    value = int(digits, base)
    if value < 0:
        raise ValueError("invalid value")
    if value > MAX_UINT256:
        raise ValueError("value is too big")
    return value


def kzg_to_versioned_hash(commitment: bytes) -> bytes:
    """Versioned hash of a KZG commitment: sha256 with the first byte set to the version."""
    digest = bytearray(hashlib.sha256(bytes(commitment)).digest())
    digest[0] = BLOB_COMMITMENT_VERSION_KZG
    return bytes(digest)