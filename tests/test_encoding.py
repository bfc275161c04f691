import pytest

from ethstore.encoding import (
    EncodeType,
    UnsupportedEncodingError,
    calc_encode_key,
    decode_chunk,
    encode_chunk,
    is_valid_encode_type,
    keccak256,
    mask_data,
    unmask_data,
)

MINER = bytes.fromhex("04580493117292ba13361D8e9e28609ec112264D")
COMMIT = bytes(range(32))


def test_keccak_matches_storage_magic():
    assert keccak256(b"Web3Q Large Storage")[:8] == (0xCF20BD770C22B2E1).to_bytes(8, "big")


def test_keccak_of_empty_input():
    assert keccak256(b"").hex() == (
        "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    )


def test_mask_and_unmask_roundtrip():
    mask = bytes(range(8))
    user = b"\xff\x00\xaa"
    masked = mask_data(mask, user)
    assert len(masked) == len(mask)
    assert masked[3:] == mask[3:]
    assert unmask_data(masked[:3], mask) == user


def test_mask_rejects_larger_user_data():
    with pytest.raises(ValueError):
        mask_data(b"\x00", b"\x00\x01")
    with pytest.raises(ValueError):
        unmask_data(b"\x00\x01", b"\x00")


def test_encode_key_ignores_commit_tail():
    other = COMMIT[:24] + b"\xff" * 8
    assert calc_encode_key(COMMIT, 5, MINER) == calc_encode_key(other, 5, MINER)
    assert len(calc_encode_key(COMMIT, 5, MINER)) == 32


def test_encode_key_depends_on_index_and_miner():
    base = calc_encode_key(COMMIT, 5, MINER)
    assert calc_encode_key(COMMIT, 6, MINER) != base
    assert calc_encode_key(COMMIT, 5, bytes(20)) != base
    assert calc_encode_key(COMMIT, 5, MINER) == base


def test_encode_key_rejects_short_commit():
    with pytest.raises(ValueError):
        calc_encode_key(b"\x01", 0, MINER)


def test_no_encode_pads_and_decodes():
    data = b"hello"
    encoded = encode_chunk(64, data, EncodeType.NO_ENCODE, bytes(32))
    assert encoded == data + bytes(59)
    assert decode_chunk(64, data, EncodeType.NO_ENCODE, bytes(32)) == data


def test_keccak_encode_of_zeros_is_key():
    key = calc_encode_key(COMMIT, 1, MINER)
    assert encode_chunk(64, b"", EncodeType.KECCAK_256, key) == key * 2


def test_keccak_roundtrip():
    key = calc_encode_key(COMMIT, 3, MINER)
    data = bytes(range(100))
    encoded = encode_chunk(128, data, EncodeType.KECCAK_256, key)
    assert len(encoded) == 128
    assert encoded[:100] != data
    assert decode_chunk(128, encoded, EncodeType.KECCAK_256, key)[:100] == data
    assert decode_chunk(128, encoded[:10], EncodeType.KECCAK_256, key) == data[:10]


@pytest.mark.parametrize("kind", [EncodeType.ETHASH, EncodeType.BLOB_POSEIDON, 7])
def test_unavailable_encodings_raise(kind):
    with pytest.raises(UnsupportedEncodingError):
        encode_chunk(64, b"x", kind, bytes(32))
    with pytest.raises(UnsupportedEncodingError):
        decode_chunk(64, b"x", kind, bytes(32))


def test_oversize_chunk_raises():
    with pytest.raises(ValueError):
        encode_chunk(4, b"12345", EncodeType.NO_ENCODE, bytes(32))
    with pytest.raises(ValueError):
        decode_chunk(4, b"12345", EncodeType.NO_ENCODE, bytes(32))


@pytest.mark.parametrize(
    "kind, expected",
    [(0, True), (1, True), (2, True), (3, False), (4, False)],
)
def test_is_valid_encode_type(kind, expected):
    assert is_valid_encode_type(kind) is expected