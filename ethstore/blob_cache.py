"""In-memory cache of blobs per L1 block, kept until the block is finalized."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace

from .encoding import HASH_SIZE_IN_CONTRACT


@dataclass
class Blob:
    """A blob announced by a storage event, with its downloaded data."""

    kv_index: int
    kv_size: int
    hash: bytes
    data: bytes = b""


@dataclass
class BlockBlobs:
    """The blobs stored in one L1 block."""

    timestamp: int
    number: int
    hash: bytes
    blobs: list[Blob] = field(default_factory=list)


class BlobCache:
    """Thread-safe map from block hash to that block's blobs."""

    def __init__(self) -> None:
        self._blocks: dict[bytes, BlockBlobs] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._blocks)

    def set_block_blobs(self, block: BlockBlobs) -> None:
        """Store (or replace) the blobs of ``block``."""
        with self._lock:
            self._blocks[bytes(block.hash)] = block

    def blobs(self, block_hash: bytes) -> list[Blob] | None:
        """Return copies of the blobs of a block, or None if the block is not cached."""
        with self._lock:
            block = self._blocks.get(bytes(block_hash))
            if block is None:
                return None
            return [replace(blob) for blob in block.blobs]

    def get_key_value_by_index(self, idx: int, data_hash: bytes) -> bytes | None:
        """Return the data of the blob at KV index ``idx`` whose hash prefix matches."""
        prefix = bytes(data_hash)[:HASH_SIZE_IN_CONTRACT]
        with self._lock:
            for block in self._blocks.values():
                for blob in block.blobs:
                    if blob.kv_index == idx and blob.hash[:HASH_SIZE_IN_CONTRACT] == prefix:
                        return blob.data
        return None

    def cleanup(self, finalized: int) -> None:
        """Drop every block whose number is at or below ``finalized``."""
        with self._lock:
            self._blocks = {
                key: block for key, block in self._blocks.items() if block.number > finalized
            }