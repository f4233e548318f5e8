"""
Deterministic hex sequences for puzzle derivation.

Puzzles are never stored; they are rebuilt from the challenge token at
redemption time, so ``derive`` must give the same output for the same input
in every process, forever. It is NOT a cryptographic generator and must never
be used for token material.
"""

from collections.abc import Iterator

MASK_32 = 0xFFFFFFFF
FNV_OFFSET_BASIS = 2166136261


def _code_units(seed: str) -> Iterator[int]:
    # UTF-16 code units; identical to the bytes for ASCII seeds
    data = seed.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def fnv1a(seed: str) -> int:
    """32-bit FNV-1a, with the prime multiply expressed as shifts."""
    h = FNV_OFFSET_BASIS
    for unit in _code_units(seed):
        h ^= unit
        h = (h + (h << 1) + (h << 4) + (h << 7) + (h << 8) + (h << 24)) & MASK_32
    return h


def xorshift32(state: int) -> int:
    state ^= (state << 13) & MASK_32
    state ^= state >> 17
    state ^= (state << 5) & MASK_32
    return state & MASK_32


def derive(seed: str, length: int) -> str:
    """Return exactly ``length`` lowercase hex characters derived from ``seed``."""
    state = fnv1a(seed)
    chunks: list[str] = []
    produced = 0
    while produced < length:
        state = xorshift32(state)
        chunks.append(f"{state:08x}")
        produced += 8
    return "".join(chunks)[:length]
