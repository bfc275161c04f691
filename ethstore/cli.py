"""Command-line utilities for creating, reading and writing storage data files."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from contextlib import ExitStack
from typing import Callable, Sequence

from .config import TRACE
from .datafile import DataFile, DataFileError
from .encoding import EncodeType, calc_encode_key
from .shard import DataShard, ShardError
from .types import parse_address, parse_hash

_log = logging.getLogger("ethstore.cli")
_handler: logging.Handler | None = None

_VERBOSITY_LEVELS = {
    0: logging.CRITICAL + 10,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
    5: TRACE,
}


class CommandError(Exception):
    """A command was given invalid options and cannot proceed."""


def _uint(text: str) -> int:
    try:
        value = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid unsigned integer: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"value must not be negative: {text!r}")
    return value


def _setup_logger(verbosity: int) -> None:
    global _handler
    package_logger = logging.getLogger("ethstore")
    if _handler is not None:
        package_logger.removeHandler(_handler)
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter("%(levelname)-5s %(message)s"))
    package_logger.addHandler(_handler)
    level = _VERBOSITY_LEVELS.get(verbosity, TRACE if verbosity > 5 else logging.CRITICAL + 10)
    package_logger.setLevel(level)


def _stdin_bytes() -> bytes:
    return getattr(sys.stdin, "buffer", sys.stdin).read()


def _write_stdout(data: bytes) -> None:
    out = getattr(sys.stdout, "buffer", sys.stdout)
    out.write(data)
    out.flush()


def _single_filename(args: argparse.Namespace, message: str) -> str:
    if len(args.filename) != 1:
        raise CommandError(message)
    return args.filename[0]


def _open_shard(args: argparse.Namespace, stack: ExitStack) -> DataShard:
    shard = stack.enter_context(
        DataShard(args.shard_idx, args.kv_size, args.kv_entries, args.chunk_size)
    )
    for filename in args.filename:
        data_file = DataFile.open(filename)
        try:
            shard.add_data_file(data_file)
        except BaseException:
            data_file.close()
            raise
    if not shard.is_complete():
        _log.warning("Shard is not completed")
    return shard


def _run_create(args: argparse.Namespace) -> None:
    filename = _single_filename(args, "Must provide single filename")
    if args.encode_type != EncodeType.NO_ENCODE and args.miner == "":
        raise CommandError("Must provide miner")
    miner = parse_address(args.miner)
    if args.chunk_size == 0:
        raise CommandError("Chunk size should not be 0")
    if args.kv_size % args.chunk_size != 0:
        raise CommandError("Max kv size % chunk size should be 0")
    if args.chunk_len == 0 and args.kv_len == 0:
        raise CommandError("Chunk_Len or kv_Len is needed")
    if args.chunk_len > 0 and args.kv_len > 0:
        raise CommandError("Only one of chunk_Len and kv_Len is nonzero")
    chunk_len, chunk_idx = args.chunk_len, args.chunk_idx
    if chunk_len == 0:
        chunks_per_kv = args.kv_size // args.chunk_size
        chunk_len = args.kv_len * chunks_per_kv
        chunk_idx = args.kv_idx * chunks_per_kv
    _log.info(
        "Creating data file: chunkIdx=%d chunksLen=%d chunkSize=%d miner=0x%s encodeType=%d",
        chunk_idx, chunk_len, args.chunk_size, miner.hex(), args.encode_type,
    )
    DataFile.create(
        filename, chunk_idx, chunk_len, 0, args.kv_size, args.encode_type, miner, args.chunk_size
    ).close()


def _run_chunk_read(args: argparse.Namespace) -> None:
    filename = _single_filename(args, "Must provide a filename")
    with DataFile.open(filename) as data_file:
        data = data_file.read(args.chunk_idx, args.readlen)
    _write_stdout(data)


def _run_chunk_write(args: argparse.Namespace) -> None:
    _log.warning("Writing chunk without writing meta may corrupt the file!")
    filename = _single_filename(args, "Must provide a filename")
    with DataFile.open(filename) as data_file:
        data_file.write(args.chunk_idx, _stdin_bytes())


def _run_shard_read(args: argparse.Namespace) -> None:
    with ExitStack() as stack:
        shard = _open_shard(args, stack)
        if args.read_encoded:
            data = shard.read_encoded(args.kv_idx, args.readlen)
        else:
            data = shard.read(args.kv_idx, args.readlen, parse_hash(args.commit))
    _write_stdout(data)


def _run_kv_read(args: argparse.Namespace) -> None:
    with ExitStack() as stack:
        shard = _open_shard(args, stack)
        for kv_idx in range(args.read_start, args.read_end):
            data, _meta = shard.read_with_meta(kv_idx, args.readlen)
            path = os.path.join(args.dump_folder, f"{data[:5].hex()}.dat")
            with open(path, "wb") as out:
                out.write(data)


def _run_shard_write(args: argparse.Namespace) -> None:
    with ExitStack() as stack:
        shard = _open_shard(args, stack)
        data = _stdin_bytes()
        commit = parse_hash(args.commit)
        encoding_key = calc_encode_key(commit, args.kv_idx, shard.miner())
        _log.info("Write info: commit=0x%s encodingKey=0x%s", commit.hex(), encoding_key.hex())
        shard.write(args.kv_idx, data, commit)
        _log.info("Write value: kvIdx=%d bytes=%d", args.kv_idx, len(data))


def _run_meta_read(args: argparse.Namespace) -> None:
    with ExitStack() as stack:
        meta = _open_shard(args, stack).read_meta(args.kv_idx)
    _write_stdout(meta.hex().encode("ascii"))


def _run_sample_read(args: argparse.Namespace) -> None:
    with ExitStack() as stack:
        sample = _open_shard(args, stack).read_sample(args.sample_idx)
    _write_stdout(sample)


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--filename", action="append", default=[], help="Data filename")
    common.add_argument("--dump_folder", default="", help="Data dump folder")
    common.add_argument("--miner", default="", help="miner address")
    common.add_argument(
        "--verbosity", type=int, default=3,
        help="Logging verbosity: 0=silent, 1=error, 2=warn, 3=info, 4=debug, 5=detail",
    )
    common.add_argument("--chunk_idx", type=_uint, default=0, help="Chunk idx to start/read/write")
    common.add_argument("--shard_idx", type=_uint, default=0, help="Shard idx to read/write")
    common.add_argument("--kv_size", type=_uint, default=4096, help="Shard KV size to read/write")
    common.add_argument("--kv_idx", type=_uint, default=0, help="Shard KV index to read/write")
    common.add_argument("--read_start", type=_uint, default=0, help="Start index for KV reading")
    common.add_argument("--read_end", type=_uint, default=1, help="End index for KV reading")
    common.add_argument(
        "--kv_entries", type=_uint, default=0, help="Number of KV entries in the shard"
    )
    common.add_argument(
        "--encode_type", type=_uint, default=0, help="Encode Type, 0=no, 1=simple, 2=ethash"
    )
    common.add_argument(
        "--chunk_size", type=_uint, default=4096, help="Chunk size to encode/decode"
    )
    common.add_argument(
        "--readlen", type=_uint, default=0, help="Bytes to read (only for unmasked read)"
    )
    common.add_argument("--commit", default="", help="encode key")
    common.add_argument("--read_encoded", action="store_true", help="Read encoded KV data")
    common.add_argument("--sample_idx", type=_uint, default=0, help="Sample idx to read")
    return common


_COMMANDS: dict[str, tuple[str, Callable[[argparse.Namespace], None]]] = {
    "create": ("Create a data file", _run_create),
    "chunk_read": ("Read a chunk from a data file", _run_chunk_read),
    "chunk_write": ("Write a chunk from a data file", _run_chunk_write),
    "shard_read": ("Read a KV from a data shard", _run_shard_read),
    "shard_write": ("Write a value to a data shard", _run_shard_write),
    "sample_read": ("Read a sample to a data shard", _run_sample_read),
    "meta_read": ("Read a KV meta from a data shard", _run_meta_read),
    "kv_read": ("Read KV range from a data shard", _run_kv_read),
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="es-utils", description="EthStorage utilities")
    common = _common_options()
    subparsers = parser.add_subparsers(dest="command")
    for name, (summary, handler) in _COMMANDS.items():
        sub = subparsers.add_parser(name, parents=[common], help=summary, description=summary)
        sub.set_defaults(handler=handler)
        if name == "create":
            sub.add_argument("--kv_len", type=_uint, default=0, help="kv idx len to create")
            sub.add_argument(
                "--chunk_len", type=_uint, default=0, help="Chunks idx len to create"
            )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run one es-utils command; returns the process exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    _setup_logger(args.verbosity)
    try:
        args.handler(args)
    except (CommandError, DataFileError, ShardError, ValueError, OSError) as exc:
        _log.critical("%s failed: %s", args.command, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())