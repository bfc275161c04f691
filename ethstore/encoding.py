"""Chunk encoding: key derivation, masking and the reversible chunk encoders."""

from __future__ import annotations

from enum import IntEnum
from itertools import cycle

from Crypto.Hash import keccak as _keccak

from .types import HASH_LENGTH, bytes_to_hash

HASH_SIZE_IN_CONTRACT = 24


class EncodeType(IntEnum):
    """How chunk data is encoded on disk."""

    NO_ENCODE = 0
    KECCAK_256 = 1
    ETHASH = 2
    BLOB_POSEIDON = 3


ENCODE_END = EncodeType.BLOB_POSEIDON


class UnsupportedEncodingError(ValueError):
    """The encode type is unknown or has no mask generator available."""


def keccak256(data: bytes) -> bytes:
    """Return the Keccak-256 digest of ``data``."""
    digest = _keccak.new(digest_bits=256)
    digest.update(bytes(data))
    return digest.digest()


def mask_data(mask: bytes, user_data: bytes) -> bytes:
    """XOR ``user_data`` over the start of ``mask``; the result is as long as the mask."""
    if len(user_data) > len(mask):
        raise ValueError("user data can not be larger than mask data")
    head = bytes(m ^ u for m, u in zip(mask, user_data))
    return head + bytes(mask[len(user_data):])


def unmask_data(user_data: bytes, mask: bytes) -> bytes:
    """XOR ``user_data`` with ``mask``; the result is as long as the user data."""
    if len(user_data) > len(mask):
        raise ValueError("user data can not be larger than mask data")
    return bytes(m ^ u for m, u in zip(mask, user_data))


def calc_encode_key(commit: bytes, chunk_idx: int, miner: bytes) -> bytes:
    """Derive keccak256(commit[:24] padded || miner || chunk_idx) as the chunk key."""
    commit = bytes(commit)
    if len(commit) != HASH_LENGTH:
        raise ValueError(f"commit must be {HASH_LENGTH} bytes, got {len(commit)}")
    prefix = commit[:HASH_SIZE_IN_CONTRACT].ljust(HASH_LENGTH, b"\0")
    return keccak256(prefix + bytes_to_hash(miner) + chunk_idx.to_bytes(HASH_LENGTH, "big"))


def is_valid_encode_type(encode_type: int) -> bool:
    """Return whether ``encode_type`` is accepted for encoding."""
    return encode_type in (EncodeType.KECCAK_256, EncodeType.NO_ENCODE, EncodeType.ETHASH)


def _as_encode_type(encode_type: int) -> EncodeType:
    try:
        return EncodeType(encode_type)
    except ValueError as exc:
        raise UnsupportedEncodingError(f"unsupported encode type {encode_type}") from exc


def _xor_key(data: bytes, key: bytes) -> bytes:
    if not key:
        raise ValueError("encode key must not be empty")
    return bytes(b ^ k for b, k in zip(data, cycle(key)))


def _unavailable(encode_type: EncodeType) -> UnsupportedEncodingError:
    return UnsupportedEncodingError(
        f"no mask generator available for encode type {encode_type.name}"
    )


def encode_chunk(chunk_size: int, data: bytes, encode_type: int, encode_key: bytes) -> bytes:
    """Encode ``data`` into a chunk of exactly ``chunk_size`` bytes."""
    if len(data) > chunk_size:
        raise ValueError("cannot encode chunk with size > chunk size")
    kind = _as_encode_type(encode_type)
    padded = bytes(data).ljust(chunk_size, b"\0")
    if kind is EncodeType.KECCAK_256:
        return _xor_key(padded, encode_key)
    if kind is EncodeType.NO_ENCODE:
        return padded
    raise _unavailable(kind)


def decode_chunk(chunk_size: int, data: bytes, encode_type: int, encode_key: bytes) -> bytes:
    """Decode encoded chunk bytes; the result is as long as ``data``."""
    if len(data) > chunk_size:
        raise ValueError("cannot decode chunk with size > chunk size")
    kind = _as_encode_type(encode_type)
    if kind is EncodeType.KECCAK_256:
        return _xor_key(data, encode_key)
    if kind is EncodeType.NO_ENCODE:
        return bytes(data)
    raise _unavailable(kind)