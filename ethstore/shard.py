"""A logical shard spread over several data files, with KV-level encoding and reads."""

from __future__ import annotations

from typing import Callable, Iterable

from .datafile import DataFile
from .encoding import (
    HASH_SIZE_IN_CONTRACT,
    EncodeType,
    calc_encode_key,
    decode_chunk,
    encode_chunk,
)
from .types import HASH_LENGTH, ZERO_ADDRESS, bytes_to_hash

SAMPLE_SIZE = 32
EMPTY_BLOB_COMMIT = bytes(HASH_SIZE_IN_CONTRACT)

ChunkCoder = Callable[[bytes, int], bytes]
CommitChecker = Callable[[bytes, bytes], None]


class ShardError(Exception):
    """A shard operation failed."""


def check_commit(commit: bytes, blob_data: bytes) -> None:
    """Check that ``blob_data`` matches ``commit``.

    An all-zero commit only matches an all-zero blob. Verifying a non-empty
    commit needs a KZG commitment backend, which this checker does not have;
    a shard can be given its own checker for that case.
    """
    commit = bytes(commit)
    if commit[:HASH_SIZE_IN_CONTRACT] == EMPTY_BLOB_COMMIT:
        if any(blob_data):
            raise ShardError("commit does not match")
        return
    raise ShardError("could not convert blob to commitment: no KZG backend available")


class DataShard:
    """A shard of ``kv_entries`` KVs backed by one or more data files."""

    def __init__(
        self,
        shard_idx: int,
        kv_size: int,
        kv_entries: int,
        chunk_size: int,
        *,
        commit_checker: CommitChecker = check_commit,
    ) -> None:
        if chunk_size <= 0 or kv_size % chunk_size != 0:
            raise ValueError("kvSize must be a multiple of chunk size")
        self.shard_idx = shard_idx
        self.kv_size = kv_size
        self.kv_entries = kv_entries
        self.chunk_size = chunk_size
        self.chunks_per_kv = kv_size // chunk_size
        self._data_files: list[DataFile] = []
        self._check_commit = commit_checker

    @property
    def data_files(self) -> tuple[DataFile, ...]:
        return tuple(self._data_files)

    def __enter__(self) -> "DataShard":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def add_data_file(self, data_file: DataFile) -> None:
        """Attach a data file, checking it agrees with the files already attached."""
        if self._data_files:
            first = self._data_files[0]
            if first.miner != data_file.miner:
                raise ShardError("mismatched data file SP")
            if first.encode_type != data_file.encode_type:
                raise ShardError("mismatched data file encode type")
            if first.max_kv_size != data_file.max_kv_size:
                raise ShardError("mismatched data file max kv size")
        self._data_files.append(data_file)

    def is_complete(self) -> bool:
        """Return whether the attached files cover every chunk of the shard."""
        chunk_idx = self.start_chunk_idx()
        chunk_idx_end = (self.shard_idx + 1) * self.chunks_per_kv * self.kv_entries
        while chunk_idx < chunk_idx_end:
            found = False
            for df in self._data_files:
                if df.contains(chunk_idx):
                    chunk_idx = df.chunk_idx_end()
                    found = True
            if not found:
                return False
        return True

    def miner(self) -> bytes:
        """The storage provider address of the shard, or the zero address."""
        return self._data_files[0].miner if self._data_files else ZERO_ADDRESS

    def encode_type(self) -> EncodeType:
        """The encode type of the shard; NO_ENCODE when no file is attached."""
        return self._data_files[0].encode_type if self._data_files else EncodeType.NO_ENCODE

    def contains(self, kv_idx: int) -> bool:
        return self.shard_idx * self.kv_entries <= kv_idx < (self.shard_idx + 1) * self.kv_entries

    def contains_sample(self, sample_idx: int) -> bool:
        return self.contains(sample_idx * SAMPLE_SIZE // self.kv_size)

    def start_chunk_idx(self) -> int:
        return self.shard_idx * self.chunks_per_kv * self.kv_entries

    def get_storage_file(self, chunk_idx: int) -> DataFile | None:
        """Return the data file holding ``chunk_idx``, or None."""
        return next((df for df in self._data_files if df.contains(chunk_idx)), None)

    def _decoder(self, commit: bytes) -> ChunkCoder:
        def decode(cdata: bytes, chunk_idx: int) -> bytes:
            first = self._data_files[0]
            key = calc_encode_key(commit, chunk_idx, first.miner)
            return decode_chunk(self.chunk_size, cdata, first.encode_type, key)

        return decode

    def _read_chunk_with(self, kv_idx: int, chunk_idx: int, decoder: ChunkCoder) -> bytes:
        if not self.contains(kv_idx):
            raise ShardError("kv not found")
        if not 0 <= chunk_idx < self.chunks_per_kv:
            raise ShardError(
                f"chunkIdx out of range, chunkIdx: {chunk_idx} vs chunksPerKv {self.chunks_per_kv}"
            )
        idx = kv_idx * self.chunks_per_kv + chunk_idx
        return decoder(self._read_chunk(idx, self.chunk_size), idx)

    def read_chunk_encoded(self, kv_idx: int, chunk_idx: int) -> bytes:
        """Read one chunk of a KV exactly as stored."""
        return self._read_chunk_with(kv_idx, chunk_idx, lambda cdata, _idx: cdata)

    def read_chunk(self, kv_idx: int, chunk_idx: int, commit: bytes) -> bytes:
        """Read one chunk of a KV and decode it."""
        return self._read_chunk_with(kv_idx, chunk_idx, self._decoder(commit))

    def _read_with(self, kv_idx: int, read_len: int, decoder: ChunkCoder) -> bytes:
        if not self.contains(kv_idx):
            raise ShardError("kv not found")
        if read_len > self.kv_size:
            raise ShardError("read len too large")
        if read_len < 0:
            raise ShardError("negative read len")
        parts = []
        remaining = read_len
        for i in range(self.chunks_per_kv):
            if remaining == 0:
                break
            length = min(remaining, self.chunk_size)
            remaining -= length
            idx = kv_idx * self.chunks_per_kv + i
            parts.append(decoder(self._read_chunk(idx, length), idx))
        return b"".join(parts)

    def read_encoded(self, kv_idx: int, read_len: int) -> bytes:
        """Read the first ``read_len`` bytes of a KV exactly as stored."""
        return self._read_with(kv_idx, read_len, lambda cdata, _idx: cdata)

    def _read_checked(self, kv_idx: int, read_len: int, commit: bytes) -> bytes:
        if not 0 <= read_len <= self.kv_size:
            raise ShardError("read len too large" if read_len > 0 else "negative read len")
        data = self._read_with(kv_idx, self.kv_size, self._decoder(commit))
        self._check_commit(commit, data)
        return data[:read_len]

    def read(self, kv_idx: int, read_len: int, commit: bytes) -> bytes:
        """Read and decode a KV, verify it against ``commit``, and return ``read_len`` bytes."""
        return self._read_checked(kv_idx, read_len, bytes_to_hash(commit))

    def read_with_meta(self, kv_idx: int, read_len: int) -> tuple[bytes, bytes]:
        """Like :meth:`read` with the stored metadata as commit; returns ``(data, meta)``."""
        meta = self.read_meta(kv_idx)
        return self._read_checked(kv_idx, read_len, bytes_to_hash(meta)), meta

    def read_sample(self, sample_idx: int) -> bytes:
        """Read the 32-byte sample at ``sample_idx``."""
        for df in self._data_files:
            if df.contains_sample(sample_idx):
                return df.read_sample(sample_idx)
        raise ShardError("chunk not found: the shard is not completed?")

    def write_with(self, kv_idx: int, data: bytes, commit: bytes, encoder: ChunkCoder) -> None:
        """Write a KV value chunk by chunk through ``encoder``, then store ``commit`` as meta."""
        if not self.contains(kv_idx):
            raise ShardError("kv not found")
        if len(data) > self.kv_size:
            raise ShardError("write data too large")
        padded = bytes(data).ljust(self.kv_size, b"\0")
        for i in range(self.chunks_per_kv):
            chunk_idx = kv_idx * self.chunks_per_kv + i
            piece = padded[i * self.chunk_size:(i + 1) * self.chunk_size]
            self._write_chunk(chunk_idx, encoder(piece, chunk_idx))
        self.write_meta(kv_idx, bytes(commit))

    def write(self, kv_idx: int, data: bytes, commit: bytes) -> None:
        """Write a KV value encoded with its chunk index, commit and the shard's miner."""
        commit = bytes_to_hash(commit)

        def encode(cdata: bytes, chunk_idx: int) -> bytes:
            key = calc_encode_key(commit, chunk_idx, self.miner())
            return encode_chunk(self.chunk_size, cdata, self.encode_type(), key)

        self.write_with(kv_idx, data, commit, encode)

    def _read_chunk(self, chunk_idx: int, read_len: int) -> bytes:
        df = self.get_storage_file(chunk_idx)
        if df is None:
            raise ShardError("chunk not found: the shard is not completed?")
        return df.read(chunk_idx, read_len)

    def _write_chunk(self, chunk_idx: int, data: bytes) -> None:
        df = self.get_storage_file(chunk_idx)
        if df is None:
            raise ShardError("chunk not found: the shard is not completed?")
        df.write(chunk_idx, data)

    def _file_for_kv(self, kv_idx: int) -> DataFile:
        for df in self._data_files:
            if df.contains_kv(kv_idx):
                return df
        raise ShardError("kv not found: the shard is not completed?")

    def write_meta(self, kv_idx: int, data: bytes) -> None:
        self._file_for_kv(kv_idx).write_meta(kv_idx, data)

    def read_meta(self, kv_idx: int) -> bytes:
        return self._file_for_kv(kv_idx).read_meta(kv_idx)

    def close(self) -> None:
        """Close every attached data file."""
        for df in self._data_files:
            df.close()


def _chunked(data: bytes, size: int) -> Iterable[bytes]:
    return (data[i:i + size] for i in range(0, len(data), size))


assert HASH_LENGTH == 32