"""Choosing which shards to store and creating one data file per shard."""

from __future__ import annotations

import logging
import os
from typing import Iterable, Sequence

from .config import StorageConfig
from .datafile import DataFile

FILE_NAME_PATTERN = "shard-{}.dat"

_log = logging.getLogger(__name__)


def sort_indices_by_value(values: Sequence[int]) -> list[int]:
    """Return the indices of ``values`` ordered by ascending value."""
    return sorted(range(len(values)), key=values.__getitem__)


def select_shards(difficulties: Iterable[int], shard_len: int) -> list[int]:
    """Pick up to ``shard_len`` shards with the lowest difficulty.

    ``difficulties`` lists the difficulty of shard 0, 1, ... in order; a zero
    difficulty marks the first shard that does not exist yet and ends the list.
    With no existing shard, shard 0 is chosen.
    """
    existing: list[int] = []
    for diff in difficulties:
        if diff == 0:
            break
        existing.append(diff)
    ordered = sort_indices_by_value(existing)
    if not ordered:
        return [0]
    return ordered[:max(shard_len, 0)]


def data_file_name(shard_idx: int) -> str:
    """File name of the data file of a shard."""
    return FILE_NAME_PATTERN.format(shard_idx)


def create_data_files(
    cfg: StorageConfig,
    shard_indexes: Iterable[int],
    datadir,
    encoding_type: int,
) -> list[str]:
    """Create one data file per shard in ``datadir`` and return their paths.

    Existing files are never overwritten: FileExistsError is raised instead.
    """
    shard_indexes = list(shard_indexes)
    _log.info("Creating data files: shards=%s dir=%s", shard_indexes, datadir)
    if not os.path.exists(datadir):
        os.mkdir(datadir, 0o755)
    files: list[str] = []
    for shard_idx in shard_indexes:
        path = os.path.join(datadir, data_file_name(shard_idx))
        if os.path.exists(path):
            raise FileExistsError(f"file already exists, will not overwrite: {path}")
        if cfg.chunk_size == 0:
            raise ValueError("chunk size should not be 0")
        if cfg.kv_size % cfg.chunk_size != 0:
            raise ValueError("max kv size % chunk size should be 0")
        chunks_per_kv = cfg.kv_size // cfg.chunk_size
        chunk_idx_len = chunks_per_kv * cfg.kv_entries_per_shard
        start_chunk_idx = shard_idx * chunk_idx_len
        _log.info(
            "Creating data file: chunkIdxStart=%d chunkIdxLen=%d chunkSize=%d encodeType=%d",
            start_chunk_idx, chunk_idx_len, cfg.chunk_size, encoding_type,
        )
        with DataFile.create(
            path,
            start_chunk_idx,
            chunk_idx_len,
            0,
            cfg.kv_size,
            encoding_type,
            cfg.miner,
            cfg.chunk_size,
        ) as df:
            _log.info(
                "Data file created: shard=%d file=%s kvIdxStart=%d kvIdxEnd=%d",
                shard_idx, path, df.kv_idx_start(), df.kv_idx_end(),
            )
        files.append(path)
    return files