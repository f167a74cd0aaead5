"""Forward SM3 compression rounds.

This implements the 64-round compression loop of SM3 (GB/T 32905-2016).

Given the current working state words `(A, B, C, D, E, F, G, H)`, the round
index `j`, and the two expanded message words `W[j]` and `W'[j]`, one round
computes:

    SS1 = ((A <<< 12) + E + (T_j <<< (j mod 32))) <<< 7
    SS2 = SS1 ^ (A <<< 12)
    TT1 = FF_j(A, B, C) + D + SS2 + W'[j]
    TT2 = GG_j(E, F, G) + H + SS1 + W[j]

    D' = C
    C' = B <<< 9
    B' = A
    A' = TT1
    H' = G
    G' = F <<< 19
    F' = E
    E' = P0(TT2)

All additions are performed modulo 2**32. The chaining step (XOR of the
round output into the previous hash value) is not part of this module; see
`sm3_hash.compress_block`.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple


MASK32 = 0xFFFFFFFF

# Round constants: T0 for rounds 0..15, T1 for rounds 16..63.
T0 = 0x79CC4519
T1 = 0x7A879D8A

Registers = Tuple[int, int, int, int, int, int, int, int]


def _rotl(x: int, n: int) -> int:
    """Left-rotate a 32-bit word `x` by `n` bits.

    The amount is reduced modulo 32, so rotating by 0 or 32 returns `x`.
    """
    x &= MASK32
    n %= 32
    if n == 0:
        return x
    return ((x << n) | (x >> (32 - n))) & MASK32


def round_constant(j: int) -> int:
    """Return T_j for round `j` (0..63)."""
    if 0 <= j <= 15:
        return T0
    if 16 <= j <= 63:
        return T1
    raise ValueError(f"Round index must be in 0..63, got {j}")


def ff(x: int, y: int, z: int, j: int) -> int:
    """Boolean function FF_j: XOR for rounds 0..15, majority afterwards."""
    if j <= 15:
        return x ^ y ^ z
    return (x & y) | (x & z) | (y & z)


def gg(x: int, y: int, z: int, j: int) -> int:
    """Boolean function GG_j: XOR for rounds 0..15, choose afterwards."""
    if j <= 15:
        return x ^ y ^ z
    return ((x & y) | (~x & z)) & MASK32


def p0(x: int) -> int:
    """Permutation P0, applied to TT2 in every round."""
    return x ^ _rotl(x, 9) ^ _rotl(x, 17)


def p1(x: int) -> int:
    """Permutation P1, used by the message expansion."""
    return x ^ _rotl(x, 15) ^ _rotl(x, 23)


def compression(
    a: int,
    b: int,
    c: int,
    d: int,
    e: int,
    f: int,
    g: int,
    h: int,
    w: int,
    w_prime: int,
    j: int,
) -> Registers:
    """Perform one SM3 compression round.

    Parameters
    ----------
    a, b, c, d, e, f, g, h : int
        32-bit words representing the current working state.
    w : int
        Expanded message word `W[j]` (first schedule, 68 words).
    w_prime : int
        Expanded message word `W'[j]` (second schedule, 64 words).
    j : int
        Round index, 0..63. Selects T_j and the boolean functions.

    Returns
    -------
    (a_new, b_new, c_new, d_new, e_new, f_new, g_new, h_new) : tuple[int, ...]
        Updated working state after one round, all reduced modulo 2**32.
    """
    a &= MASK32
    b &= MASK32
    c &= MASK32
    d &= MASK32
    e &= MASK32
    f &= MASK32
    g &= MASK32
    h &= MASK32
    w &= MASK32
    w_prime &= MASK32

    a12 = _rotl(a, 12)

    # 1. SS1 and SS2
    ss1 = _rotl((a12 + e + _rotl(round_constant(j), j)) & MASK32, 7)
    ss2 = ss1 ^ a12

    # 2. TT1 and TT2
    tt1 = (ff(a, b, c, j) + d + ss2 + w_prime) & MASK32
    tt2 = (gg(e, f, g, j) + h + ss1 + w) & MASK32

    # 3. Shift the registers
    d_new = c
    c_new = _rotl(b, 9)
    b_new = a
    a_new = tt1
    h_new = g
    g_new = _rotl(f, 19)
    f_new = e
    e_new = p0(tt2)

    return a_new, b_new, c_new, d_new, e_new, f_new, g_new, h_new


def compress64(
    a: int,
    b: int,
    c: int,
    d: int,
    e: int,
    f: int,
    g: int,
    h: int,
    w1: Sequence[int],
    w2: Sequence[int],
    track: Optional[List[Registers]] = None,
) -> Registers:
    """Run the full 64-round SM3 compression loop for one block.

    Parameters
    ----------
    a, b, c, d, e, f, g, h : int
        Initial working state words (the current hash value V_i).
    w1 : Sequence[int]
        The 68-word expanded schedule `W[0..67]`.
    w2 : Sequence[int]
        The 64-word expanded schedule `W'[0..63]`.
    track : list, optional
        When given, the register tuple after every round is appended to it.

    Returns
    -------
    (a, b, c, d, e, f, g, h) : tuple[int, ...]
        Final working state words after 64 rounds, before the XOR with V_i.
    """
    if len(w1) != 68:
        raise ValueError(f"compress64 expects 68 W words, got {len(w1)}")
    if len(w2) != 64:
        raise ValueError(f"compress64 expects 64 W' words, got {len(w2)}")

    regs = (a, b, c, d, e, f, g, h)
    for j in range(64):
        regs = compression(*regs, w1[j], w2[j], j)
        if track is not None:
            track.append(regs)

    return regs
