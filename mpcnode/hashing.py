"""BLAKE3 hashing: plain and keyed modes with 32-byte output."""

from __future__ import annotations

import struct
from dataclasses import dataclass

OUT_LEN = 32
KEY_LEN = 32
BLOCK_LEN = 64
CHUNK_LEN = 1024

_CHUNK_START = 1 << 0
_CHUNK_END = 1 << 1
_PARENT = 1 << 2
_ROOT = 1 << 3
_KEYED_HASH = 1 << 4

_MASK = 0xFFFFFFFF
_IV = (
    0x6A09E667,
    0xBB67AE85,
    0x3C6EF372,
    0xA54FF53A,
    0x510E527F,
    0x9B05688C,
    0x1F83D9AB,
    0x5BE0CD19,
)
_PERMUTATION = (2, 6, 3, 10, 7, 0, 4, 13, 1, 11, 12, 5, 9, 14, 15, 8)
_ROUNDS = 7


def _rotr(x: int, n: int) -> int:
    return ((x >> n) | (x << (32 - n))) & _MASK


def _g(s: list[int], a: int, b: int, c: int, d: int, mx: int, my: int) -> None:
    s[a] = (s[a] + s[b] + mx) & _MASK
    s[d] = _rotr(s[d] ^ s[a], 16)
    s[c] = (s[c] + s[d]) & _MASK
    s[b] = _rotr(s[b] ^ s[c], 12)
    s[a] = (s[a] + s[b] + my) & _MASK
    s[d] = _rotr(s[d] ^ s[a], 8)
    s[c] = (s[c] + s[d]) & _MASK
    s[b] = _rotr(s[b] ^ s[c], 7)


def _round(s: list[int], m: list[int]) -> None:
    _g(s, 0, 4, 8, 12, m[0], m[1])
    _g(s, 1, 5, 9, 13, m[2], m[3])
    _g(s, 2, 6, 10, 14, m[4], m[5])
    _g(s, 3, 7, 11, 15, m[6], m[7])
    _g(s, 0, 5, 10, 15, m[8], m[9])
    _g(s, 1, 6, 11, 12, m[10], m[11])
    _g(s, 2, 7, 8, 13, m[12], m[13])
    _g(s, 3, 4, 9, 14, m[14], m[15])


def _compress(
    cv: tuple[int, ...],
    block_words: tuple[int, ...],
    counter: int,
    block_len: int,
    flags: int,
) -> list[int]:
    state = [
        *cv,
        *_IV[:4],
        counter & _MASK,
        (counter >> 32) & _MASK,
        block_len,
        flags,
    ]
    message = list(block_words)
    for r in range(_ROUNDS):
        _round(state, message)
        if r < _ROUNDS - 1:
            message = [message[i] for i in _PERMUTATION]
    low, high = state[:8], state[8:]
    return [a ^ b for a, b in zip(low, high)] + [b ^ c for b, c in zip(high, cv)]


def _block_words(block: bytes) -> tuple[int, ...]:
    return struct.unpack("<16I", block.ljust(BLOCK_LEN, b"\0"))


@dataclass(frozen=True)
class _Output:
    input_cv: tuple[int, ...]
    block_words: tuple[int, ...]
    counter: int
    block_len: int
    flags: int

    def chaining_value(self) -> tuple[int, ...]:
        words = _compress(
            self.input_cv, self.block_words, self.counter, self.block_len, self.flags
        )
        return tuple(words[:8])

    def root_bytes(self) -> bytes:
        words = _compress(
            self.input_cv, self.block_words, 0, self.block_len, self.flags | _ROOT
        )
        return struct.pack("<8I", *words[:8])


def _chunk_output(
    chunk: bytes, counter: int, key_words: tuple[int, ...], flags: int
) -> _Output:
    blocks = [chunk[i : i + BLOCK_LEN] for i in range(0, len(chunk), BLOCK_LEN)] or [b""]
    cv = key_words
    for position, block in enumerate(blocks[:-1]):
        start = _CHUNK_START if position == 0 else 0
        cv = tuple(
            _compress(cv, _block_words(block), counter, BLOCK_LEN, flags | start)[:8]
        )
    last = blocks[-1]
    start = _CHUNK_START if len(blocks) == 1 else 0
    return _Output(
        cv, _block_words(last), counter, len(last), flags | start | _CHUNK_END
    )


def _subtree_output(
    data: bytes, counter: int, key_words: tuple[int, ...], flags: int
) -> _Output:
    if len(data) <= CHUNK_LEN:
        return _chunk_output(data, counter, key_words, flags)
    chunks = -(-len(data) // CHUNK_LEN)
    left_chunks = 1 << ((chunks - 1).bit_length() - 1)
    split = left_chunks * CHUNK_LEN
    left = _subtree_output(data[:split], counter, key_words, flags).chaining_value()
    right = _subtree_output(
        data[split:], counter + left_chunks, key_words, flags
    ).chaining_value()
    return _Output(key_words, left + right, 0, BLOCK_LEN, flags | _PARENT)


def blake3_hash(data: bytes) -> bytes:
    """Return the 32-byte BLAKE3 digest of ``data``."""
    return _subtree_output(bytes(data), 0, _IV, 0).root_bytes()


def blake3_keyed_hash(key: bytes, data: bytes) -> bytes:
    """Return the 32-byte BLAKE3 keyed digest of ``data`` under a 32-byte key."""
    key = bytes(key)
    if len(key) != KEY_LEN:
        raise ValueError(f"key must be {KEY_LEN} bytes, got {len(key)}")
    key_words = struct.unpack("<8I", key)
    return _subtree_output(bytes(data), 0, key_words, _KEYED_HASH).root_bytes()