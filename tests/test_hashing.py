import pytest

from mpcnode.hashing import blake3_hash, blake3_keyed_hash

LENGTHS = [0, 1, 63, 64, 65, 1023, 1024, 1025, 2048, 2049, 3072, 3073, 5000]


def _pattern(length):
    return bytes(i % 251 for i in range(length))


def test_empty_input_reference_digest():
    assert (
        blake3_hash(b"").hex()
        == "af1349b9f5f9a1a6a0404dea36dcc9499bcb25c9adc112b7cc9a93cae41f3262"
    )


def test_abc_reference_digest():
    assert (
        blake3_hash(b"abc").hex()
        == "6437b3ac38465133ffb63b75273a8db548c558465d79db03fd359c6cd5bd9d85"
    )


def test_keyed_empty_input_reference_digest():
    elvish_phrase = b"whats the Elvish word for friend"
    assert (
        blake3_keyed_hash(elvish_phrase, b"").hex()
        == "92b2b75604ed3c761f9d6f62392c8a9227ad0ea3f09573e783f1498a4ed60d26"
    )


@pytest.mark.parametrize("length", LENGTHS)
def test_digest_is_32_bytes_and_deterministic(length):
    data = _pattern(length)
    first = blake3_hash(data)
    assert len(first) == 32
    assert blake3_hash(data) == first


def test_distinct_lengths_give_distinct_digests():
    digests = {blake3_hash(_pattern(n)) for n in LENGTHS}
    assert len(digests) == len(LENGTHS)


def test_single_byte_change_in_later_chunk_changes_digest():
    data = bytearray(_pattern(4000))
    original = blake3_hash(bytes(data))
    data[3500] ^= 1
    assert blake3_hash(bytes(data)) != original


def test_keyed_hash_differs_from_plain_and_between_keys():
    data = _pattern(1500)
    key_a = bytes(32)
    key_b = bytes(range(32))
    assert blake3_keyed_hash(key_a, data) != blake3_hash(data)
    assert blake3_keyed_hash(key_a, data) != blake3_keyed_hash(key_b, data)


def test_keyed_hash_rejects_wrong_key_length():
    with pytest.raises(ValueError):
        blake3_keyed_hash(bytes(31), b"data")


def test_accepts_bytearray_input():
    assert blake3_hash(bytearray(b"abc")) == blake3_hash(b"abc")