"""SM3 implementation using the `compress64` function from `compress.py`.

This module provides:

- `sm3(data: bytes) -> bytes`: compute the SM3 digest of arbitrary data.
- `SM3Hash`: an incremental digest object with the usual `hashlib`
  interface (`update`, `digest`, `hexdigest`, `copy`) plus `write` and
  `reset`.
- The building blocks (padding, block splitting, message expansion and
  the chaining step) as public helpers, so a custom compression pipeline
  can be assembled from them.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from compress import Registers, _rotl, compress64, p1


# Initial hash value V(0), GB/T 32905-2016 section 4.1.
IV: Registers = (
    0x7380166F,
    0x4914B2B9,
    0x172442D7,
    0xDA8A0600,
    0xA96F30BC,
    0x163138AA,
    0xE38DEE4D,
    0xB0FB0E4E,
)

DIGEST_SIZE = 32
BLOCK_SIZE = 64

MASK64 = (1 << 64) - 1

Schedule = Tuple[List[int], List[int]]


def _zero_bit_count(bit_length: int) -> int:
    """Number `k` of zero bits between the 1 bit and the length field.

    With `r = L mod 512`, `k = 448 - r - 1` if `r + 1 <= 448` and
    `960 - r - 1` otherwise.
    """
    remain = bit_length % 512
    if remain + 1 <= 448:
        k = 448 - remain - 1
    else:
        k = 960 - remain - 1

    # The 1 bit and the zero bits fill whole bytes: 0x80 then k // 8 zeros.
    assert (k + 1) % 8 == 0, f"padding of {k + 1} bits is not byte aligned"
    return k


def padding_for_length(length_bytes: int) -> bytes:
    """Return the padding appended to a message of `length_bytes` bytes.

    The message is followed by a single 1 bit, `k` zero bits and its bit
    length `L` as a 64-bit big-endian integer.
    """
    bit_length = length_bytes * 8
    zero_bytes = (_zero_bit_count(bit_length) + 1) // 8 - 1

    return b"\x80" + b"\x00" * zero_bytes + (bit_length & MASK64).to_bytes(8, byteorder="big")


def padding_length(length_bytes: int) -> int:
    """Number of padding bytes (9..72) appended to a `length_bytes` message."""
    return (_zero_bit_count(length_bytes * 8) + 1) // 8 + 8


def pad_message(message: bytes) -> bytes:
    """Pad the input message so its length is a multiple of 64 bytes."""
    message = bytes(message)
    return message + padding_for_length(len(message))


def _chunks(data: bytes, size: int) -> Iterable[bytes]:
    """Yield successive `size`-byte chunks from `data`."""
    for i in range(0, len(data), size):
        yield data[i : i + size]


def split_into_blocks(padded: bytes) -> List[bytes]:
    """Split a padded message into 512-bit (64-byte) blocks."""
    if len(padded) % BLOCK_SIZE != 0:
        raise ValueError(
            f"Padded message length must be a multiple of 64 bytes, got {len(padded)}"
        )
    return [bytes(block) for block in _chunks(padded, BLOCK_SIZE)]


def expand_message(block: bytes) -> Schedule:
    """Given a 512-bit block, build the expanded schedules W[0..67] and W'[0..63].

    The first 16 words of W are the block's big-endian words. The rest follow

        W[j] = P1(W[j-16] ^ W[j-9] ^ (W[j-3] <<< 15)) ^ (W[j-13] <<< 7) ^ W[j-6]

    and W'[j] = W[j] ^ W[j+4].
    """
    if len(block) != BLOCK_SIZE:
        raise ValueError(f"Expected 64-byte block, got {len(block)}")

    w: List[int] = [0] * 68
    for i in range(16):
        w[i] = int.from_bytes(block[4 * i : 4 * (i + 1)], byteorder="big")

    for j in range(16, 68):
        w[j] = (
            p1(w[j - 16] ^ w[j - 9] ^ _rotl(w[j - 3], 15))
            ^ _rotl(w[j - 13], 7)
            ^ w[j - 6]
        )

    w_prime = [w[j] ^ w[j + 4] for j in range(64)]

    return w, w_prime


def _after_compress_round(prev_state: Registers, regs: Registers) -> Registers:
    """Chain one block: V(i+1) = V(i) XOR (A..H after 64 rounds)."""
    v0, v1, v2, v3, v4, v5, v6, v7 = prev_state
    a, b, c, d, e, f, g, h = regs

    return (v0 ^ a, v1 ^ b, v2 ^ c, v3 ^ d, v4 ^ e, v5 ^ f, v6 ^ g, v7 ^ h)


def compress_block(state: Registers, block: bytes) -> Registers:
    """Run the compression function CF(V(i), B(i)) and return V(i+1)."""
    w, w_prime = expand_message(block)
    regs = compress64(*state, w, w_prime)
    return _after_compress_round(state, regs)


def finalize_digest(state: Registers) -> bytes:
    """Convert a final hash value V(n) into the 32-byte SM3 digest."""
    if len(state) != 8:
        raise ValueError(f"State must have exactly 8 words, got {len(state)}")
    return b"".join(word.to_bytes(4, byteorder="big") for word in state)


def sm3_before(data: bytes) -> Tuple[Registers, List[Schedule]]:
    """High-level helper that prepares all inputs needed before compression.

    This performs padding, splitting into 512-bit blocks and the message
    expansion of every block. It returns the initial state (the IV) and one
    `(W, W')` pair per block, so a custom pipeline can be written as:

        state, schedules = sm3_before(data)
        for w, w_prime in schedules:
            regs = compress64(*state, w, w_prime)
            state = tuple(v ^ r for v, r in zip(state, regs))
        digest = sm3_after(state)
    """
    padded = pad_message(data)
    schedules = [expand_message(block) for block in split_into_blocks(padded)]
    return IV, schedules


def sm3_after(final_state: Registers) -> bytes:
    """Finalize the digest from the state left after the last block."""
    return finalize_digest(final_state)


def sm3(data: bytes) -> bytes:
    """Compute the SM3 digest of `data` in one shot."""
    state, schedules = sm3_before(data)

    for w, w_prime in schedules:
        regs = compress64(*state, w, w_prime)
        state = _after_compress_round(state, regs)

    return sm3_after(state)


def sm3_hex(data: bytes) -> str:
    return sm3(data).hex()


def sm3_with_state_tracking(data: bytes) -> Tuple[bytes, List[List[Registers]]]:
    """Compute SM3 while tracking the registers A..H after every round.

    Returns:
        (digest, registers_per_block)
        where registers_per_block[block_idx] is a list of 64 register tuples
    """
    state, schedules = sm3_before(data)
    all_registers: List[List[Registers]] = []

    for w, w_prime in schedules:
        rounds: List[Registers] = []
        regs = compress64(*state, w, w_prime, track=rounds)
        all_registers.append(rounds)
        state = _after_compress_round(state, regs)

    return sm3_after(state), all_registers


def _as_bytes(data) -> memoryview:
    if isinstance(data, str):
        raise TypeError("Strings must be encoded before hashing")
    return memoryview(data).cast("B")


class SM3Hash:
    """Incremental SM3 digest.

    Data may be fed in chunks of any size with `update` or `write`. Whole
    blocks are compressed as soon as they are complete; at most 63 bytes
    stay buffered between calls. `digest` works on a copy, so the object
    can keep accepting data afterwards.

    An instance is not safe to share between threads without a lock.
    """

    name = "sm3"
    digest_size = DIGEST_SIZE
    block_size = BLOCK_SIZE

    __slots__ = ("_state", "_buf", "_length")

    def __init__(self, data: bytes = b"") -> None:
        self.reset()
        if data:
            self.update(data)

    def reset(self) -> None:
        """Return to the initial state: V = IV, empty buffer, zero length."""
        self._state: Registers = IV
        self._buf = bytearray()
        self._length = 0

    @property
    def message_length(self) -> int:
        """Total number of bytes written since construction or `reset`."""
        return self._length

    def write(self, data: bytes) -> int:
        """Absorb `data` and return the number of bytes accepted."""
        view = _as_bytes(data)
        n = len(view)
        self._length += n
        offset = 0

        # Top up a partially filled buffer first.
        if self._buf:
            take = min(BLOCK_SIZE - len(self._buf), n)
            self._buf += view[:take]
            offset = take
            if len(self._buf) == BLOCK_SIZE:
                self._state = compress_block(self._state, bytes(self._buf))
                self._buf.clear()

        while n - offset >= BLOCK_SIZE:
            self._state = compress_block(self._state, bytes(view[offset : offset + BLOCK_SIZE]))
            offset += BLOCK_SIZE

        if offset < n:
            self._buf += view[offset:]

        assert len(self._buf) < BLOCK_SIZE
        return n

    def update(self, data: bytes) -> None:
        self.write(data)

    def copy(self) -> "SM3Hash":
        """Return an independent clone of the current state."""
        clone = SM3Hash()
        clone._state = self._state
        clone._buf = bytearray(self._buf)
        clone._length = self._length
        return clone

    def digest(self) -> bytes:
        """Return the digest of everything written so far.

        The padding is pushed through a copy of this object, so the live
        state, buffer and length are left untouched.
        """
        final = self.copy()
        final.write(padding_for_length(self._length))
        assert not final._buf, f"{len(final._buf)} bytes left in buffer after padding"
        return finalize_digest(final._state)

    def hexdigest(self) -> str:
        return self.digest().hex()

    def __repr__(self) -> str:
        return f"<sm3 {self.__class__.__name__} object, {self._length} bytes>"


def new(data: bytes = b"") -> SM3Hash:
    """Return a new `SM3Hash`, optionally primed with `data`."""
    return SM3Hash(data)
