"""Chunked data files, key-value shards, chunk encoding, blob helpers and a command-line tool."""

__version__ = "0.1.5"

__all__ = [
    "types",
    "encoding",
    "datafile",
    "shard",
    "blob_cache",
    "blobs",
    "beacon",
    "config",
    "shards",
    "cli",
]