"""Minimal beacon-node client for fetching blob sidecars."""

from __future__ import annotations

import binascii
import json
import urllib.error
import urllib.request
from dataclasses import dataclass

from .blobs import kzg_to_versioned_hash

KZG_COMMITMENT_SIZE = 48


@dataclass(frozen=True)
class BeaconBlob:
    """A blob sidecar's data keyed by its versioned hash."""

    versioned_hash: bytes
    data: bytes


def _decode_prefixed_hex(text: str) -> bytes:
    if len(text) < 2:
        raise ValueError(f"invalid hex string: {text!r}")
    try:
        return binascii.unhexlify(text[2:])
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid hex string: {text!r}") from exc


def commitment_hex_to_versioned_hash(commit: str) -> bytes:
    """Versioned hash of a 0x-prefixed hex KZG commitment (48 bytes, zero-padded)."""
    raw = _decode_prefixed_hex(commit)
    return kzg_to_versioned_hash(raw[:KZG_COMMITMENT_SIZE].ljust(KZG_COMMITMENT_SIZE, b"\0"))


class BeaconClient:
    """Talks to a beacon node and maps timestamps to slots."""

    def __init__(self, url: str, based_time: int, based_slot: int, slot_time: int) -> None:
        if slot_time <= 0:
            raise ValueError("slot time must be positive")
        self.beacon_url = url
        self.based_time = based_time
        self.based_slot = based_slot
        self.slot_time = slot_time

    def timestamp_to_slot(self, timestamp: int) -> int:
        """Return the slot containing ``timestamp``."""
        if timestamp < self.based_time:
            raise ValueError("timestamp is before the based time")
        return (timestamp - self.based_time) // self.slot_time + self.based_slot

    def download_blobs(self, slot: int) -> dict[bytes, BeaconBlob]:
        """Fetch the blob sidecars of ``slot``, keyed by versioned hash."""
        url = f"{self.beacon_url}/eth/v1/beacon/blob_sidecars/{slot}"
        try:
            with urllib.request.urlopen(url) as response:
                body = response.read()
        except urllib.error.HTTPError as exc:
            body = exc.read()
        payload = json.loads(body)
        entries = payload.get("data") or [] if isinstance(payload, dict) else []
        result: dict[bytes, BeaconBlob] = {}
        for entry in entries:
            data = _decode_prefixed_hex(entry.get("blob", ""))
            versioned = commitment_hex_to_versioned_hash(entry.get("kzg_commitment", ""))
            result[versioned] = BeaconBlob(versioned_hash=versioned, data=data)
        return result