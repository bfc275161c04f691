"""Configuration records for the node's database, downloader, L1 endpoint, logging and storage."""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass, field

from .types import ZERO_ADDRESS

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_FORMATS = frozenset({"json", "json-pretty", "terminal", "text", "logfmt"})

_LEVELS = {
    "trace": TRACE,
    "trce": TRACE,
    "debug": logging.DEBUG,
    "dbug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "eror": logging.ERROR,
    "crit": logging.CRITICAL,
}

_DECIMAL = re.compile(r"[+-]?[0-9]+")
_HEX = re.compile(r"[+-]?[0-9a-fA-F]+")


@dataclass
class DBConfig:
    """Settings of the node's key-value database."""

    database_handles: int = 8196
    database_cache: int = 2048
    database_freezer: str = ""
    namespace: str = "eth/db/ethstoragedata/"
    name: str = "ethstoragedata"


def default_db_config() -> DBConfig:
    """Return the default database settings."""
    return DBConfig()


@dataclass
class DownloaderConfig:
    """Settings of the blob downloader."""

    download_start: int = 0  # block to download blobs from
    download_dump: str = ""  # directory to dump downloaded blobs into
    download_thread_num: int = 1  # threads writing blobs into storage files


@dataclass
class L1EndpointConfig:
    """Where and how to reach the L1 execution and beacon nodes."""

    l1_chain_id: int = 1
    l1_node_addr: str = ""
    l1_beacon_url: str = ""
    l1_beacon_based_time: int = 0
    l1_beacon_based_slot: int = 0
    l1_beacon_slot_time: int = 12
    l1_min_duration_for_blobs_request: int = 4096 * 32 * 12


def parse_log_level(text: str) -> int:
    """Parse a level name (case-insensitive) into a :mod:`logging` level number."""
    try:
        return _LEVELS[text.lower()]
    except KeyError:
        raise ValueError(f"unknown level: {text}") from None


def _stdout_is_terminal() -> bool:
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


@dataclass
class LogConfig:
    """Log level, output format and colouring."""

    level: str = "info"
    color: bool = field(default_factory=_stdout_is_terminal)
    format: str = "text"

    def check(self) -> None:
        """Raise ValueError if the format or level is not recognised."""
        if self.format not in LOG_FORMATS:
            raise ValueError(f"unrecognized log format: {self.format}")
        try:
            parse_log_level(self.level)
        except ValueError as exc:
            raise ValueError(f"unrecognized log level: {exc}") from exc


@dataclass
class StorageConfig:
    """Storage layout read from the storage contract, plus the local data files."""

    l1_contract: bytes = ZERO_ADDRESS
    miner: bytes = ZERO_ADDRESS
    kv_size: int = 0
    chunk_size: int = 0
    kv_entries_per_shard: int = 0
    filenames: list[str] = field(default_factory=list)


def parse_big256(text: str) -> int:
    """Parse a decimal or 0x-prefixed hex integer of at most 256 bits; "" is zero."""
    if text == "":
        return 0
    if text[:2] in ("0x", "0X"):
        digits, base, pattern = text[2:], 16, _HEX
    else:
        digits, base, pattern = text, 10, _DECIMAL
    if pattern.fullmatch(digits) is None:
        raise ValueError("invalid integer syntax")
    value = int(digits, base)
    if abs(value).bit_length() > 256:
        raise ValueError("invalid integer syntax")
    return value