"""Conversion between raw calibration EEPROM bytes and displayed parameter values."""

from __future__ import annotations

import enum
import math
import struct
from typing import Iterable, Optional, Sequence

OFFSET = -165
"""Offset applied by :attr:`DataType.UINT_OFFSET` parameters."""

FILL_BYTE = 245
"""Value every EEPROM byte starts from before the project defaults are applied."""


class DataType(enum.IntEnum):
    """How one displayed parameter is stored in the EEPROM image."""

    UINT = 0  # one byte, unsigned: 0xf5 shows 245
    INT = 1  # one byte, signed: 0xf5 shows -11
    UINT_DIV10 = 2  # one byte, unsigned / 10: 0xf5 shows 24.5
    INT_DIV10 = 3  # one byte, signed / 10: 0xf5 shows -1.1
    TEMP = 4  # two bytes little endian, signed / 10
    UINT_OFFSET = 5  # one byte, unsigned plus OFFSET
    INT_DIV2 = 6  # one byte, signed / 2
    UINT16 = 7  # two bytes little endian, unsigned
    UINT16_DIV10 = 8  # two bytes little endian, unsigned / 10
    INT16_DIV10 = 9  # two bytes little endian, signed / 10
    INT16 = 10  # two bytes little endian, signed
    PERCENT = 11  # one byte, 0..255 shown as 0..100
    UINT_MUL10 = 12  # one byte, unsigned * 10

    @property
    def width(self) -> int:
        """Number of EEPROM bytes a value of this type occupies."""
        return 2 if self in _TWO_BYTE_TYPES else 1


_TWO_BYTE_TYPES = frozenset(
    {DataType.TEMP, DataType.UINT16, DataType.UINT16_DIV10, DataType.INT16_DIV10, DataType.INT16}
)


def _runs(*pairs: tuple[DataType, int]) -> tuple[DataType, ...]:
    return tuple(kind for kind, count in pairs for _ in range(count))


PARAMETER_TYPES: tuple[DataType, ...] = _runs(
    (DataType.UINT_DIV10, 1),
    (DataType.TEMP, 24),
    (DataType.UINT16, 6),
    (DataType.TEMP, 6),
    (DataType.UINT16, 1),
    (DataType.UINT, 6),
    (DataType.INT_DIV10, 6),
    (DataType.UINT_DIV10, 3),
    (DataType.TEMP, 2),
    (DataType.UINT, 1),
    (DataType.UINT_DIV10, 1),
    (DataType.UINT, 1),
    (DataType.UINT_DIV10, 1),
    (DataType.UINT, 5),
    (DataType.TEMP, 9),
    (DataType.UINT, 3),
    (DataType.TEMP, 6),
    (DataType.TEMP, 4),
    (DataType.TEMP, 6),
    (DataType.TEMP, 16),
    (DataType.UINT_DIV10, 8),
    (DataType.TEMP, 2),
    (DataType.INT16, 5),
    (DataType.UINT, 1),
    (DataType.UINT16, 2),
)
"""Storage type of each displayed parameter, in display order."""

PARAMETER_COUNT = len(PARAMETER_TYPES)

EEPROM_LENGTH = sum(kind.width for kind in PARAMETER_TYPES)
"""Bytes taken by all parameters when every one of them is stored."""

DISPLAY_FLAGS: tuple[int, ...] = (1,) * 200
"""Which parameters are written back to the EEPROM image."""

_INITIAL_VALUES: tuple[tuple[int, int], ...] = (
    (95, 20), (96, 21), (97, 50), (103, 170), (103, 190),
    (131, 0), (132, 5), (133, 10), (138, 25), (139, 19),
    (140, 255), (141, 220), (142, 170), (147, 170), (148, 220),
    (150, 1), (159, 1), (150, 2), (159, 3), (160, 255),
    (170, 1), (179, 1), (180, 255), (189, 255),
    (109, 20), (110, 44), (111, 60),
)
_MIN_INITIAL_SIZE = max(index for index, _ in _INITIAL_VALUES) + 1


def _f32(value: float) -> float:
    """Round ``value`` to single precision."""
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _int8(value: int) -> int:
    value &= 0xFF
    return value - 0x100 if value & 0x80 else value


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def scale_by_ten(value: float) -> float:
    """Multiply by ten in single precision."""
    return _f32(_f32(value) * 10)


def byte_to_percent(value: int) -> float:
    """Map a byte on the 0..255 scale to a whole percentage, rounding above one half."""
    result = _f32(_f32(_f32(float(value)) * 100) / 255)
    if result - math.trunc(result) > 0.5:
        result += 1
    return float(math.trunc(result))


def percent_to_byte(value: float) -> int:
    """Map a percentage to the 0..255 scale, clamped at 255."""
    scaled = math.trunc(_f32(_f32(_f32(value) * 255) / 10))
    if math.fmod(scaled, 10) > 5:
        scaled += 10
    scaled = int(scaled / 10)
    return min(scaled, 255) & 0xFF


def _decode_one(kind: DataType, low: int, high: int) -> float:
    if kind is DataType.UINT:
        return float(low)
    if kind is DataType.INT:
        return float(_int8(low))
    if kind is DataType.UINT_DIV10:
        return _f32(float(low) / 10)
    if kind is DataType.UINT_MUL10:
        return _f32(float(low) * 10)
    if kind is DataType.INT_DIV10:
        return _f32(float(_int8(low)) / 10)
    if kind in (DataType.TEMP, DataType.INT16_DIV10):
        return _f32(float(_int16(low + high * 256)) / 10)
    if kind is DataType.UINT16_DIV10:
        return _f32(float(low + high * 256) / 10)
    if kind is DataType.INT16:
        return float(_int16(low + high * 256))
    if kind is DataType.UINT_OFFSET:
        return float(low + OFFSET)
    if kind is DataType.INT_DIV2:
        return _f32(float(_int8(low)) / 2)
    if kind is DataType.PERCENT:
        return byte_to_percent(low)
    return float(low + high * 256)  # UINT16


def decode(eeprom: Sequence[int]) -> list[float]:
    """Turn an EEPROM image into the displayed value of every parameter."""
    if len(eeprom) < EEPROM_LENGTH:
        raise ValueError(f"EEPROM image needs {EEPROM_LENGTH} bytes, got {len(eeprom)}")
    values = []
    position = 0
    for kind in PARAMETER_TYPES:
        low = eeprom[position]
        high = eeprom[position + 1] if kind.width == 2 else 0
        values.append(_decode_one(kind, low, high))
        position += kind.width
    return values


def _encode_one(kind: DataType, value: float) -> list[int]:
    if kind is DataType.UINT:
        return [math.trunc(value)]
    if kind is DataType.INT:
        return [math.trunc(value) & 0xFF]
    if kind is DataType.UINT_DIV10:
        return [math.trunc(scale_by_ten(value))]
    if kind is DataType.UINT_MUL10:
        return [math.trunc(_f32(_f32(value) / 10))]
    if kind is DataType.INT_DIV10:
        return [math.trunc(scale_by_ten(value)) & 0xFF]
    if kind is DataType.UINT_OFFSET:
        return [math.trunc(value) - OFFSET]
    if kind is DataType.INT_DIV2:
        return [math.trunc(_f32(_f32(value) * 2)) & 0xFF]
    if kind is DataType.PERCENT:
        return [percent_to_byte(value)]
    if kind in (DataType.UINT16, DataType.INT16):
        word = math.trunc(value) & 0xFFFF
    else:
        word = math.trunc(scale_by_ten(value)) & 0xFFFF
    return [word & 0xFF, word >> 8]


def encode(values: Sequence[float], display_flags: Optional[Iterable[int]] = None) -> list[int]:
    """Pack displayed values back into EEPROM bytes.

    Only parameters whose display flag is set are written, one after another;
    parameters with a clear flag take no bytes at all.
    """
    if len(values) < PARAMETER_COUNT:
        raise ValueError(f"need {PARAMETER_COUNT} values, got {len(values)}")
    flags = list(DISPLAY_FLAGS if display_flags is None else display_flags)
    if len(flags) < PARAMETER_COUNT:
        raise ValueError(f"need {PARAMETER_COUNT} display flags, got {len(flags)}")
    eeprom: list[int] = []
    for kind, value, shown in zip(PARAMETER_TYPES, values, flags):
        if shown:
            eeprom.extend(_encode_one(kind, value))
    return eeprom


def initial_eeprom(size: int) -> list[int]:
    """Return the default EEPROM image of ``size`` bytes."""
    if size < _MIN_INITIAL_SIZE:
        raise ValueError(f"EEPROM image needs at least {_MIN_INITIAL_SIZE} bytes, got {size}")
    eeprom = [FILL_BYTE] * size
    for index, value in _INITIAL_VALUES:
        eeprom[index] = value
    return eeprom