import pytest

from ethstore.datafile import DataFile, DataFileError
from ethstore.encoding import EncodeType, calc_encode_key, encode_chunk
from ethstore.shard import DataShard, ShardError, check_commit
from ethstore.types import ZERO_ADDRESS, ZERO_HASH

MINER = bytes.fromhex("04580493117292ba13361d8e9e28609ec112264d")
OTHER_MINER = bytes.fromhex("eeca1001388a5d554d8935e7eada08c103e31337")
KV_SIZE = 64
CHUNK = 32
ENTRIES = 4
COMMIT = bytes([7]) * 32


def make_file(tmp_path, name, start, length, encode_type=EncodeType.KECCAK_256, miner=MINER):
    return DataFile.create(tmp_path / name, start, length, 0, KV_SIZE, encode_type, miner, CHUNK)


@pytest.fixture
def shard(tmp_path):
    ds = DataShard(0, KV_SIZE, ENTRIES, CHUNK)
    ds.add_data_file(make_file(tmp_path, "a.dat", 0, 8))
    yield ds
    ds.close()


@pytest.fixture
def plain_shard(tmp_path):
    ds = DataShard(0, KV_SIZE, ENTRIES, CHUNK)
    ds.add_data_file(make_file(tmp_path, "p.dat", 0, 8, EncodeType.NO_ENCODE))
    yield ds
    ds.close()


def test_kv_size_must_be_multiple_of_chunk():
    with pytest.raises(ValueError):
        DataShard(0, 48, ENTRIES, CHUNK)


def test_is_complete(tmp_path):
    with DataShard(0, KV_SIZE, ENTRIES, CHUNK) as ds:
        ds.add_data_file(make_file(tmp_path, "a.dat", 0, 4))
        assert ds.is_complete() is False
        ds.add_data_file(make_file(tmp_path, "b.dat", 4, 4))
        assert ds.is_complete() is True


def test_mismatched_files_rejected(tmp_path):
    with DataShard(0, KV_SIZE, ENTRIES, CHUNK) as ds:
        ds.add_data_file(make_file(tmp_path, "a.dat", 0, 4))
        other_miner = make_file(tmp_path, "b.dat", 4, 4, miner=OTHER_MINER)
        other_type = make_file(tmp_path, "c.dat", 4, 4, EncodeType.NO_ENCODE)
        try:
            with pytest.raises(ShardError, match="SP"):
                ds.add_data_file(other_miner)
            with pytest.raises(ShardError, match="encode type"):
                ds.add_data_file(other_type)
        finally:
            other_miner.close()
            other_type.close()
        assert len(ds.data_files) == 1


def test_empty_shard_defaults():
    ds = DataShard(0, KV_SIZE, ENTRIES, CHUNK)
    assert ds.miner() == ZERO_ADDRESS
    assert ds.encode_type() == EncodeType.NO_ENCODE
    assert ds.is_complete() is False


def test_contains_ranges():
    ds = DataShard(1, KV_SIZE, ENTRIES, CHUNK)
    assert ds.contains(4) and ds.contains(7)
    assert not ds.contains(3) and not ds.contains(8)
    assert ds.start_chunk_idx() == 8
    assert ds.contains_sample(4 * KV_SIZE // 32)
    assert not ds.contains_sample(0)


def test_write_and_decode_chunks(shard):
    data = bytes(range(64))
    shard.write(1, data, COMMIT)
    assert shard.read_chunk(1, 0, COMMIT) == data[:32]
    assert shard.read_chunk(1, 1, COMMIT) == data[32:]
    expected = encode_chunk(
        CHUNK, data[:32], EncodeType.KECCAK_256, calc_encode_key(COMMIT, 2, MINER)
    ) + encode_chunk(CHUNK, data[32:], EncodeType.KECCAK_256, calc_encode_key(COMMIT, 3, MINER))
    assert shard.read_encoded(1, 64) == expected
    assert shard.read_chunk_encoded(1, 1) == expected[32:]
    assert shard.read_encoded(1, 40) == expected[:40]
    assert shard.read_meta(1) == COMMIT


def test_read_with_empty_commit(shard):
    shard.write(0, b"", ZERO_HASH)
    assert shard.read(0, 10, ZERO_HASH) == bytes(10)
    assert shard.read_with_meta(0, 5) == (bytes(5), ZERO_HASH)


def test_read_empty_commit_mismatch(shard):
    shard.write(0, b"\x01\x02", ZERO_HASH)
    with pytest.raises(ShardError, match="commit does not match"):
        shard.read(0, 2, ZERO_HASH)


def test_read_with_custom_checker(tmp_path):
    seen = []
    with DataShard(0, KV_SIZE, ENTRIES, CHUNK, commit_checker=lambda c, b: seen.append((c, b))) as ds:
        ds.add_data_file(make_file(tmp_path, "a.dat", 0, 8))
        data = bytes(range(1, 50))
        ds.write(2, data, COMMIT)
        assert ds.read(2, 49, COMMIT) == data
        assert seen[0][0] == COMMIT
        assert seen[0][1] == data.ljust(KV_SIZE, b"\0")
        assert ds.read_with_meta(2, 3) == (data[:3], COMMIT)


def test_read_nonempty_commit_without_backend(shard):
    shard.write(1, b"abc", COMMIT)
    with pytest.raises(ShardError):
        shard.read(1, 3, COMMIT)


def test_out_of_range_errors(shard):
    with pytest.raises(ShardError, match="chunkIdx out of range"):
        shard.read_chunk_encoded(0, 2)
    with pytest.raises(ShardError, match="kv not found"):
        shard.read_encoded(4, 1)
    with pytest.raises(ShardError, match="read len too large"):
        shard.read_encoded(0, KV_SIZE + 1)
    with pytest.raises(ShardError, match="write data too large"):
        shard.write(0, bytes(KV_SIZE + 1), COMMIT)
    with pytest.raises(ShardError, match="kv not found"):
        shard.write(9, b"", COMMIT)


def test_incomplete_shard_read(tmp_path):
    with DataShard(0, KV_SIZE, ENTRIES, CHUNK) as ds:
        ds.add_data_file(make_file(tmp_path, "a.dat", 0, 4))
        with pytest.raises(ShardError, match="not completed"):
            ds.read_encoded(3, 8)
        with pytest.raises(ShardError, match="not completed"):
            ds.read_meta(3)


def test_write_with_custom_encoder(shard):
    data = bytes(range(64))
    shard.write_with(2, data, COMMIT, lambda cdata, idx: bytes(reversed(cdata)))
    assert shard.read_encoded(2, 64) == bytes(reversed(data[:32])) + bytes(reversed(data[32:]))
    assert shard.read_meta(2) == COMMIT


def test_read_sample(plain_shard):
    data = bytes(range(100, 164))
    plain_shard.write(1, data, ZERO_HASH)
    assert plain_shard.read_sample(2) == data[:32]
    assert plain_shard.read_sample(3) == data[32:]
    with pytest.raises(ShardError):
        plain_shard.read_sample(8)


def test_get_storage_file(tmp_path):
    with DataShard(0, KV_SIZE, ENTRIES, CHUNK) as ds:
        first = make_file(tmp_path, "a.dat", 0, 4)
        second = make_file(tmp_path, "b.dat", 4, 4)
        ds.add_data_file(first)
        ds.add_data_file(second)
        assert ds.get_storage_file(3) is first
        assert ds.get_storage_file(4) is second
        assert ds.get_storage_file(8) is None


def test_close_closes_files(tmp_path):
    ds = DataShard(0, KV_SIZE, ENTRIES, CHUNK)
    ds.add_data_file(make_file(tmp_path, "a.dat", 0, 8))
    ds.close()
    with pytest.raises(DataFileError):
        ds.read_encoded(0, 4)


def test_check_commit_direct():
    with pytest.raises(ShardError, match="commit does not match"):
        check_commit(ZERO_HASH, b"\x00\x01")
    with pytest.raises(ShardError):
        check_commit(COMMIT, bytes(8))
    # Only the first 24 bytes of the commit are compared with the empty commit.
    assert check_commit(bytes(24) + b"\xff" * 8, bytes(8)) is None