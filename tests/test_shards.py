import os

import pytest

from ethstore.config import StorageConfig
from ethstore.datafile import DataFile
from ethstore.encoding import EncodeType
from ethstore.shards import (
    create_data_files,
    data_file_name,
    select_shards,
    sort_indices_by_value,
)
from ethstore.types import parse_address

MINER = parse_address("0x00000000000000000000000000000000000000aa")
CONTRACT = parse_address("0x00000000000000000000000000000000000000bb")


def _cfg(kv_size=131072, chunk_size=131072, entries=16):
    return StorageConfig(
        l1_contract=CONTRACT,
        miner=MINER,
        kv_size=kv_size,
        chunk_size=chunk_size,
        kv_entries_per_shard=entries,
    )


def test_sort_indices_by_value():
    values = [12345678901234567, 11111111111111111, 98765432109543210, 55555555555555555]
    assert sort_indices_by_value(values) == [1, 0, 3, 2]


def test_sort_indices_empty():
    assert sort_indices_by_value([]) == []


def test_create_data_files(tmp_path):
    files = create_data_files(_cfg(), [0, 1], str(tmp_path), EncodeType.BLOB_POSEIDON)
    assert [os.path.basename(f) for f in files] == ["shard-0.dat", "shard-1.dat"]
    expected_chunk_end = [16, 32]
    expected_kv_end = [16, 32]
    for i, name in enumerate(files):
        with DataFile.open(name) as df:
            assert df.chunk_idx_end() == expected_chunk_end[i]
            assert df.kv_idx_end() == expected_kv_end[i]
            assert df.miner == MINER
            assert df.encode_type == EncodeType.BLOB_POSEIDON


def test_create_data_files_makes_directory(tmp_path):
    target = tmp_path / "data"
    files = create_data_files(_cfg(kv_size=4096, chunk_size=4096, entries=2), [3], str(target), 0)
    assert target.is_dir()
    with DataFile.open(files[0]) as df:
        assert df.chunk_idx_start == 6
        assert df.kv_idx_start() == 6


def test_create_data_files_refuses_overwrite(tmp_path):
    cfg = _cfg(kv_size=4096, chunk_size=4096, entries=2)
    create_data_files(cfg, [0], str(tmp_path), 0)
    with pytest.raises(FileExistsError):
        create_data_files(cfg, [0], str(tmp_path), 0)


def test_create_data_files_zero_chunk(tmp_path):
    with pytest.raises(ValueError, match="chunk size should not be 0"):
        create_data_files(_cfg(chunk_size=0), [0], str(tmp_path), 0)


def test_create_data_files_kv_not_multiple(tmp_path):
    with pytest.raises(ValueError, match="should be 0"):
        create_data_files(_cfg(kv_size=6000, chunk_size=4096), [0], str(tmp_path), 0)


def test_data_file_name():
    assert data_file_name(7) == "shard-7.dat"


def test_select_shards_lowest_difficulty():
    assert select_shards([30, 10, 20], 2) == [1, 2]


def test_select_shards_stops_at_zero():
    assert select_shards([5, 3, 0, 1], 5) == [1, 0]


def test_select_shards_none_existing():
    assert select_shards([], 3) == [0]
    assert select_shards([0, 7], 3) == [0]


def test_select_shards_limit_larger_than_available():
    result = select_shards([9, 4, 6], 10)
    assert sorted(result) == [0, 1, 2]
    assert result[0] == 1