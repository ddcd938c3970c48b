"""Descriptions of the calibration parameters shown in the EEPROM table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from udscal.eeprom_codec import PARAMETER_TYPES, DataType

_HEADERS = ("编号", "名称", "值", "单位", "精度", "范围")

_TEMP_RANGE = "-100~100.0"
_TD_RANGE = "-100~ 100"


@dataclass(frozen=True)
class Parameter:
    """One row of the parameter table: number, name, unit, accuracy and range."""

    number: int
    name: str
    unit: str
    accuracy: str
    area: str

    @property
    def data_type(self) -> DataType:
        """How this parameter is stored in the EEPROM image."""
        return PARAMETER_TYPES[self.number - 1]


def _series(names: Iterable[str], unit: str, accuracy: str, area: str) -> list[tuple[str, str, str, str]]:
    return [(name, unit, accuracy, area) for name in names]


def _numbered(prefix: str, numbers: Iterable[int], suffix: str = "") -> list[str]:
    return [f"{prefix}{n}{suffix}" for n in numbers]


def _rows() -> list[tuple[str, str, str, str]]:
    rows: list[tuple[str, str, str, str]] = [
        ("Sun_d", "sec", "0.1", "0~25.5"),
        ("A", "%", "0.1", "0~25.5"),
    ]
    rows += _series(["B", "C", "D"], "%", "0.1", "0-25.5")
    rows.append(("EX1", "TD", "1", "-1000 ~1000 "))
    rows += _series(_numbered("EX", range(2, 11)), "TD", "1", "-1000 ~1000")
    rows += _series(_numbered("EY", range(1, 11)), "deg", "0.1", "-100.0 ~100.0")
    rows += _series(_numbered("ATtime_x", range(1, 7)), "S", "1", "0 ~1000")
    rows += _series(_numbered("ATtime_y", range(1, 7)), "deg", "0.1", "-100.0 ~100.0")
    rows.append(("Tincar_set", "S", "1", "0 ~1000"))
    rows += _series(_numbered("Sun_", range(1, 7), "X"), "AD", "1", "0-255")
    rows += _series(_numbered("Sun_", range(1, 7), "Y"), "TD", "1", "-120 ~ 0")
    rows += _series(["HOTSEQ_1", "COOLSEQ_1", "COOLSEQ_2"], "sec", "0.1", "0 ~ 25.5")
    rows += [
        ("UNUSE", "sec", "0.1", "0 ~ 255"),
        ("UNUSE1", "sec", "1", "0 ~ 255"),
        ("BV_FRESH", "%", "1", "00 ~ 255"),
        ("BLR_VSMAX", "V", "1", "0 ~ 25.5"),
        ("Core_Eff", "con", "1", "100 ~ 255"),
        ("G_Td", "con", "0.1", "0 ~ 25.5"),
    ]
    rows += _series(["吹面", "吹面吹脚"], "ad", "1", "0~255")
    rows += _series(["吹脚", "吹脚除霜", "除霜"], "AD", "1", "0~255")
    rows += _series(_numbered("AM_FF0_", range(10, 100, 10)), "%", "0.1", "0~100.0")
    rows += _series(["T1(B/L)", "T2", "T3"], "%", "1", "0~100")
    rows += _series(["AMB_STHOT", "AMB_STCOOL"], "deg", "0.1", _TEMP_RANGE)
    rows += _series(["TD_STHOT", "TD_STCOOL"], "td", "0.1", _TEMP_RANGE)
    rows += _series(
        ["Tadt_Lo1", "Tadt_Lo2", "Amb_Auto_off", "Amb_Auto_on", "Evap_Auto_off", "Evap_Auto_on"],
        "deg",
        "0.1",
        _TEMP_RANGE,
    )
    rows += _series(["TD_FOOT", "TD_BLF", "TD_BLU", "TD_VENT", "TD_FR", "TD_REC"], "TD", "0.1", _TD_RANGE)
    rows += _series(_numbered("BLRTDM_", range(8, 0, -1)), "TD", "0.1", _TD_RANGE)
    rows += _series(_numbered("BLRTDP_", range(1, 9)), "TD", "0.1", _TD_RANGE)
    rows += _series(_numbered("风量", range(1, 9), "当"), "V", "1", "0-25.5")
    rows += _series(["dTdt_I_Min", "dTdt_I_Max"], "dec", "0.1", "0~100")
    rows += [
        ("AM_Imax", "HEX", "1", "0~2000"),
        ("AM_Imin", "HEX", "1", "-2000~0"),
        ("AM_Pmax", "HEX", "1", "0~2000"),
        ("AM_Pmin", "HEX", "1", "-2000~0"),
        ("UNUSE", "HEX", "1", "0~0"),
        ("AM_I_TIME", "0.1sec", "1", "1~255"),
        ("全热", "AD", "1", "0~255"),
        ("全冷", "AD", "1", "0~255"),
    ]
    return rows


_PARAMETERS: tuple[Parameter, ...] = tuple(
    Parameter(number, name, unit, accuracy, area)
    for number, (name, unit, accuracy, area) in enumerate(_rows(), start=1)
)

if len(_PARAMETERS) != len(PARAMETER_TYPES):
    raise RuntimeError("parameter table and storage types disagree in length")


def column_headers() -> list[str]:
    """Return the captions of the parameter table's columns."""
    return list(_HEADERS)


def parameters() -> list[Parameter]:
    """Return every parameter, numbered from one in display order."""
    return list(_PARAMETERS)