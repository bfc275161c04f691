# ethstore

`ethstore` handles the local storage side of a blob storage node. It provides
pre-allocated data files that each hold a consecutive range of chunks, and
shards that join those files into a key-value store. It masks each chunk with
a key tied to the miner address, packs raw bytes into 4844-style blobs, and
has a command-line tool for working on data files directly.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `ethstore.types`: 32-byte hashes and 20-byte addresses as `bytes`
  (`parse_hash`, `parse_address`, `is_hex_address`, `bytes_to_hash`) and the
  frozen block references `BlockID`, `L1BlockRef` and `L2BlockRef`. These have
  `id()`, `parent_id()` (the parent number stops at zero) and
  `terminal_string()`.
- `ethstore.encoding`: the `EncodeType` enum (`NO_ENCODE`, `KECCAK_256`,
  `ETHASH`, `BLOB_POSEIDON`), `keccak256`, `mask_data` / `unmask_data`,
  `calc_encode_key`, `encode_chunk` / `decode_chunk` and
  `is_valid_encode_type`.
- `ethstore.datafile`: `DataFile` and `DataFileError`. A data file starts with
  a 4096-byte header, then holds `chunk_idx_len` chunks of `chunk_size` bytes,
  then one 32-byte meta slot per KV. The header records the magic number and
  version, the chunk range, the encode type, the maximum KV size, the meta size
  and the miner address. `DataFile.create` checks that the chunk size and the
  maximum KV size are powers of two, and that the range lines up with whole
  KVs. `DataFile.open` checks the magic number, the version and the encode
  type.
- `ethstore.shard`: `DataShard` and `ShardError`. A shard covers KV indexes
  `[shard_idx * kv_entries, (shard_idx + 1) * kv_entries)` over one or more
  data files. It turns KV reads and writes into chunk reads and writes and
  encodes or decodes each chunk with `calc_encode_key(commit, chunk_idx, miner)`.
  `check_commit` is the default commit check.
- `ethstore.blob_cache`: `Blob`, `BlockBlobs` and the thread-safe `BlobCache`.
  The cache maps a block hash to that block's blobs. It can be searched by KV
  index and hash prefix, and `cleanup(finalized)` removes every block at or
  below the finalized number.
- `ethstore.blobs`: `encode_blobs` packs 31 bytes per 32-byte field element
  and leaves each element's first byte zero; `decode_blob` undoes this for one
  blob. `convert_to_blobs` splits bytes into zero-padded 131072-byte blobs.
  `kzg_to_versioned_hash` computes sha256 of a commitment with the first byte
  set to `0x01`, and `decode_uint256_string` parses decimal or `0x` hex
  values up to 256 bits.
- `ethstore.beacon`: `BeaconClient`, which maps timestamps to slots
  (`timestamp_to_slot`) and fetches the blob sidecars of a slot over HTTP
  (`download_blobs`). The result is a dict of versioned hash to `BeaconBlob`.
  Also provides `commitment_hex_to_versioned_hash`.
- `ethstore.config`: the dataclasses `DBConfig` (see `default_db_config()`),
  `DownloaderConfig`, `L1EndpointConfig`, `LogConfig` (with `check()`) and
  `StorageConfig`. It also has `parse_log_level`, which maps trace/debug/info/
  warn/error/crit to `logging` levels, and `parse_big256`.
- `ethstore.shards`: `select_shards(difficulties, shard_len)` picks the shards
  with the lowest difficulty and stops at the first zero difficulty.
  `sort_indices_by_value` returns indices in order of ascending value.
  `data_file_name(i)` gives `shard-<i>.dat`.
  `create_data_files(cfg, shard_indexes, datadir, encoding_type)` creates one
  data file per shard and raises `FileExistsError` rather than overwrite a
  file.
- `ethstore.cli`: the `ethstore` command.

## Library use

Create a data file, write a chunk and read it back:

```python
from ethstore.datafile import DataFile
from ethstore.types import parse_address

miner = parse_address("0x1111111111111111111111111111111111111111")

with DataFile.create(
    "shard-0.dat",
    chunk_idx_start=0,
    chunk_idx_len=16,
    epoch=0,
    max_kv_size=4096,
    encode_type=0,   # EncodeType.NO_ENCODE
    miner=miner,
    chunk_size=4096,
) as df:
    df.write(3, b"hello")
    assert df.read(3, 5) == b"hello"

with DataFile.open("shard-0.dat") as df:
    print(df.kv_idx_start(), df.kv_idx_end())   # 0 16
```

Use the file through a shard:

```python
from ethstore.datafile import DataFile
from ethstore.shard import DataShard

with DataShard(shard_idx=0, kv_size=4096, kv_entries=16, chunk_size=4096) as shard:
    shard.add_data_file(DataFile.open("shard-0.dat"))
    assert shard.is_complete()
    commit = bytes(32)
    shard.write(2, b"value", commit)
    assert shard.read_encoded(2, 5) == b"value"
    assert shard.read_meta(2) == commit
```

Pack bytes into blobs and get them back:

```python
from ethstore.blobs import decode_blob, encode_blobs

data = bytes(range(32)) * 10
blobs = encode_blobs(data)
assert decode_blob(blobs[0])[: len(data)] == data
```

Errors are raised as exceptions. `DataFileError` is raised for chunks, KVs or
samples outside a file's range, for bad headers and for reads or writes that
are too large. `ShardError` is raised for KVs outside a shard, for mismatched
data files and for commits that do not match. `UnsupportedEncodingError`, a
`ValueError`, is raised for encode types that cannot be applied.

## Command line

```
ethstore --help
```

This lists the subcommands: `create`, `chunk_read`, `chunk_write`,
`shard_read`, `shard_write`, `meta_read`, `sample_read` and `kv_read`. Options
go after the subcommand. Every subcommand accepts `--filename` (which can be
repeated), `--kv_size` and `--chunk_size` (both 4096 by default),
`--encode_type`, `--miner`, `--commit`, `--shard_idx`, `--kv_entries`,
`--kv_idx`, `--chunk_idx`, `--readlen`, `--read_encoded`, `--read_start`,
`--read_end`, `--dump_folder`, `--sample_idx` and `--verbosity` (0 to 5).
`create` also takes `--kv_len` or `--chunk_len`. Values to write are read from
standard input, and read values go to standard output. `meta_read` prints hex,
and `kv_read` writes one file per KV into `--dump_folder`. The command exits
with status 1 and logs the error when something fails.

```
ethstore create --filename shard-0.dat --kv_len 16
printf hello | ethstore shard_write --filename shard-0.dat --kv_entries 16 --kv_idx 0
ethstore shard_read --filename shard-0.dat --kv_entries 16 --kv_idx 0 --readlen 5 --read_encoded
ethstore meta_read --filename shard-0.dat --kv_entries 16 --kv_idx 0
```

## What this package does not do

- It runs no storage node. It does not connect to an L1 RPC endpoint, read
  parameters from the storage contract, follow new blocks, download blobs into
  shards on its own, mine, or talk to peers. `StorageConfig`,
  `select_shards` and `BlobCache` take values you supply yourself.
- It sends no transactions and has no command for writing or uploading blobs.
- Only `NO_ENCODE` and `KECCAK_256` chunks can be encoded and decoded. For
  `ETHASH` and `BLOB_POSEIDON` there is no mask generator, so `encode_chunk`
  and `decode_chunk` raise `UnsupportedEncodingError`.
- It computes no KZG commitments. The default `check_commit` only accepts an
  all-zero commit with all-zero data, and raises `ShardError` for any other
  commit. This means `DataShard.read` and `read_with_meta` (and `shard_read`
  without `--read_encoded`) fail for non-empty commits unless the shard is
  given a `commit_checker` of your own.