"""Local storage file holding a consecutive range of chunks plus per-KV metadata."""

from __future__ import annotations

import os
import struct
from typing import BinaryIO

from .encoding import ENCODE_END, EncodeType
from .types import ADDRESS_LENGTH

MAGIC = 0xCF20BD770C22B2E1  # keccak256(b"Web3Q Large Storage")[0:8]
VERSION = 1
HEADER_SIZE = 4096
META_SIZE = 32
SAMPLE_SIZE = 32

_HEADER = struct.Struct(">8Q20sQ")


class DataFileError(Exception):
    """A data file operation failed."""


def _is_pow2(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


class DataFile:
    """A file storing chunks ``[chunk_idx_start, chunk_idx_end())`` and their KV metadata."""

    def __init__(
        self,
        file: BinaryIO,
        *,
        chunk_idx_start: int,
        chunk_idx_len: int,
        encode_type: EncodeType,
        max_kv_size: int,
        chunk_size: int,
        meta_size: int,
        miner: bytes,
    ) -> None:
        self._file = file
        self.chunk_idx_start = chunk_idx_start
        self.chunk_idx_len = chunk_idx_len
        self.encode_type = encode_type
        self.max_kv_size = max_kv_size
        self.chunk_size = chunk_size
        self.meta_size = meta_size
        self.miner = miner

    @property
    def name(self) -> str:
        return str(self._file.name)

    @classmethod
    def create(
        cls,
        filename,
        chunk_idx_start: int,
        chunk_idx_len: int,
        epoch: int,
        max_kv_size: int,
        encode_type: int,
        miner: bytes,
        chunk_size: int,
    ) -> "DataFile":
        """Create (or truncate) a data file and write its header; ``epoch`` is not stored."""
        if chunk_size > max_kv_size:
            raise DataFileError("chunkSize must be smaller than maxKvSize")
        if not _is_pow2(chunk_size) or not _is_pow2(max_kv_size):
            raise DataFileError("chunkSize and maxKvSize must be 2^n")
        if (chunk_idx_len * chunk_size) % max_kv_size != 0:
            raise DataFileError("chunkSize * chunkIdxLen must be multiple of maxKvSize")
        if (chunk_idx_start * chunk_size) % max_kv_size != 0:
            raise DataFileError("chunkSize * chunkIdxStart must be multiple of maxKvSize")
        try:
            kind = EncodeType(encode_type)
        except ValueError as exc:
            raise DataFileError("unknown mask type") from exc
        miner = bytes(miner)
        if len(miner) != ADDRESS_LENGTH:
            raise DataFileError(f"miner must be {ADDRESS_LENGTH} bytes")

        file = open(filename, "w+b")
        try:
            # Space is reserved up front; chunks are filled in during synchronisation.
            file.truncate(HEADER_SIZE + (chunk_size + META_SIZE) * chunk_idx_len)
            data_file = cls(
                file,
                chunk_idx_start=chunk_idx_start,
                chunk_idx_len=chunk_idx_len,
                encode_type=kind,
                max_kv_size=max_kv_size,
                chunk_size=chunk_size,
                meta_size=META_SIZE,
                miner=miner,
            )
            data_file._write_header()
        except BaseException:
            file.close()
            raise
        return data_file

    @classmethod
    def open(cls, filename) -> "DataFile":
        """Open an existing data file and validate its header."""
        file = open(filename, "r+b")
        try:
            raw = file.read(HEADER_SIZE)
            if len(raw) != HEADER_SIZE:
                raise DataFileError("not full header read")
            (
                magic,
                version,
                chunk_idx_start,
                chunk_idx_len,
                encode_type,
                max_kv_size,
                chunk_size,
                meta_size,
                miner,
                _status,
            ) = _HEADER.unpack_from(raw)
            if magic != MAGIC:
                raise DataFileError("magic error")
            if version > VERSION:
                raise DataFileError("unsupported version")
            if encode_type > ENCODE_END:
                raise DataFileError("unknown mask type")
            return cls(
                file,
                chunk_idx_start=chunk_idx_start,
                chunk_idx_len=chunk_idx_len,
                encode_type=EncodeType(encode_type),
                max_kv_size=max_kv_size,
                chunk_size=chunk_size,
                meta_size=meta_size,
                miner=miner,
            )
        except BaseException:
            file.close()
            raise

    def __enter__(self) -> "DataFile":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"DataFile(name={self.name!r}, chunks=[{self.chunk_idx_start}, "
            f"{self.chunk_idx_end()}), chunk_size={self.chunk_size})"
        )

    def contains(self, chunk_idx: int) -> bool:
        return self.chunk_idx_start <= chunk_idx < self.chunk_idx_end()

    def contains_kv(self, kv_idx: int) -> bool:
        return self.kv_idx_start() <= kv_idx < self.kv_idx_end()

    def contains_sample(self, sample_idx: int) -> bool:
        return self.contains(sample_idx * SAMPLE_SIZE // self.chunk_size)

    def chunk_idx_end(self) -> int:
        return self.chunk_idx_start + self.chunk_idx_len

    def kv_idx_start(self) -> int:
        return self.chunk_idx_start * self.chunk_size // self.max_kv_size

    def kv_idx_end(self) -> int:
        return self.kv_idx_start() + self.chunk_idx_len * self.chunk_size // self.max_kv_size

    def _chunk_offset(self, chunk_idx: int) -> int:
        return HEADER_SIZE + (chunk_idx - self.chunk_idx_start) * self.chunk_size

    def _meta_offset(self, kv_idx: int) -> int:
        return (
            HEADER_SIZE
            + self.chunk_idx_len * self.chunk_size
            + (kv_idx - self.kv_idx_start()) * self.meta_size
        )

    def _require_open(self) -> None:
        if self._file.closed:
            raise DataFileError(f"data file {self.name} is closed")

    def _read_at(self, offset: int, size: int) -> bytes:
        self._require_open()
        self._file.seek(offset)
        return self._file.read(size)

    def _write_at(self, offset: int, data: bytes) -> None:
        self._require_open()
        self._file.seek(offset)
        self._file.write(data)
        self._file.flush()

    def read(self, chunk_idx: int, length: int) -> bytes:
        """Read ``length`` raw bytes from the start of a chunk."""
        if not self.contains(chunk_idx):
            raise DataFileError("chunk not found")
        if length > self.chunk_size:
            raise DataFileError("read too large")
        if length < 0:
            raise DataFileError("negative read length")
        data = self._read_at(self._chunk_offset(chunk_idx), length)
        if len(data) != length:
            raise DataFileError("not full read")
        return data

    def read_sample(self, sample_idx: int) -> bytes:
        """Read the 32-byte sample at ``sample_idx``."""
        if not self.contains_sample(sample_idx):
            raise DataFileError("sample not found")
        offset = HEADER_SIZE + sample_idx * SAMPLE_SIZE - self.chunk_idx_start * self.chunk_size
        data = self._read_at(offset, SAMPLE_SIZE)
        if len(data) != SAMPLE_SIZE:
            raise DataFileError("not full read")
        return data

    def write(self, chunk_idx: int, data: bytes) -> None:
        """Write raw bytes at the start of a chunk."""
        if not self.contains(chunk_idx):
            raise DataFileError("chunk not found")
        if len(data) > self.chunk_size:
            raise DataFileError("write data too large")
        self._write_at(self._chunk_offset(chunk_idx), bytes(data))

    def read_meta(self, kv_idx: int) -> bytes:
        """Read the metadata stored for a KV."""
        if not self.contains_kv(kv_idx):
            raise DataFileError("kv not found")
        data = self._read_at(self._meta_offset(kv_idx), self.meta_size)
        if len(data) != self.meta_size:
            raise DataFileError("not full read")
        return data

    def write_meta(self, kv_idx: int, data: bytes) -> None:
        """Write the metadata for a KV."""
        if not self.contains_kv(kv_idx):
            raise DataFileError("kv not found")
        if len(data) > self.meta_size:
            raise DataFileError("write meta too large")
        self._write_at(self._meta_offset(kv_idx), bytes(data))

    def _write_header(self) -> None:
        header = _HEADER.pack(
            MAGIC,
            VERSION,
            self.chunk_idx_start,
            self.chunk_idx_len,
            int(self.encode_type),
            self.max_kv_size,
            self.chunk_size,
            self.meta_size,
            self.miner,
            0,
        )
        self._write_at(0, header)

    def close(self) -> None:
        """Close the underlying file; closing twice is harmless."""
        if self._file.closed:
            return
        try:
            self._file.close()
        except OSError as exc:
            raise DataFileError(f"close data file {self.name} error: {exc}") from exc


def data_file_size(chunk_idx_len: int, chunk_size: int) -> int:
    """Total size in bytes of a freshly created data file."""
    return HEADER_SIZE + (chunk_size + META_SIZE) * chunk_idx_len


__all__ = [
    "DataFile",
    "DataFileError",
    "HEADER_SIZE",
    "MAGIC",
    "META_SIZE",
    "VERSION",
    "data_file_size",
]

_ = os  # os is kept for callers that join paths alongside data files