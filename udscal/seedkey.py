"""Seed-to-key algorithms for the security access service."""

from __future__ import annotations

_U32 = 0xFFFFFFFF

MASK_LEVEL1 = 0x5C735C73
MASK_LEVEL2 = 0x5F735F73

ID0_MASK_LEVEL1 = 0x51C5635C
ID0_MASK_LEVEL2 = 0x51F5635F
ID1_MASK_LEVEL1 = 0x51C5635C
ID1_MASK_LEVEL2 = 0x51F5635F
ID2_MASK_LEVEL1 = 0x5C735C73
ID2_MASK_LEVEL2 = 0x5F735F73

_TEA_CONSTANTS = (0x11, 0x22, 0x33, 0x44)
_TEA_DELTA = 0x9E3779B9
_TEA_ROUNDS = 2
_MASK_ROUNDS = 35


def _check_u32(name: str, value: int) -> None:
    if not 0 <= value <= _U32:
        raise ValueError(f"{name} must be a 32-bit unsigned value, got {value}")


def ror3(value: int) -> int:
    """Rotate an 8-bit value right by three bits."""
    if not 0 <= value <= 0xFF:
        raise ValueError(f"value must be within 0..255, got {value}")
    return ((value >> 3) | (value << 5)) & 0xFF


def mask_key(seed: int, mask: int) -> int:
    """Shift-and-xor key derivation; a zero seed yields a zero key."""
    _check_u32("seed", seed)
    _check_u32("mask", mask)
    if seed == 0:
        return 0
    for _ in range(_MASK_ROUNDS):
        if seed & 0x80000000:
            seed = ((seed << 1) ^ mask) & _U32
        else:
            seed = (seed << 1) & _U32
    return seed


def tea_key(seed: int, level2: bool) -> int:
    """Two-round TEA-style key derivation; level 2 rotates the constants."""
    _check_u32("seed", seed)
    constants = [ror3(c) for c in _TEA_CONSTANTS] if level2 else list(_TEA_CONSTANTS)
    v0 = seed
    v1 = _U32 - v0
    total = 0
    for _ in range(_TEA_ROUNDS):
        v0 = (v0 + (((((v1 << 4) & _U32) ^ (v1 >> 5)) + v1) ^ (total + constants[total & 3]))) & _U32
        total = (total + _TEA_DELTA) & _U32
        v1 = (v1 + (((((v0 << 4) & _U32) ^ (v0 >> 5)) + v0) ^ (total + constants[(total >> 11) & 3]))) & _U32
    return v0