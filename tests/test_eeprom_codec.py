import pytest

from udscal.eeprom_codec import (
    EEPROM_LENGTH,
    PARAMETER_COUNT,
    PARAMETER_TYPES,
    DataType,
    byte_to_percent,
    decode,
    encode,
    initial_eeprom,
    percent_to_byte,
    scale_by_ten,
)


def _first_index(kind):
    return PARAMETER_TYPES.index(kind)


def test_type_table_length_matches_parameter_count():
    assert len(decode([0] * EEPROM_LENGTH)) == len(PARAMETER_TYPES) == PARAMETER_COUNT
    assert len(encode([0.0] * PARAMETER_COUNT)) == sum(kind.width for kind in PARAMETER_TYPES)


@pytest.mark.parametrize(
    "kind, width",
    [(DataType.TEMP, 2), (DataType.UINT16, 2), (DataType.UINT, 1), (DataType.INT_DIV10, 1)],
)
def test_widths(kind, width):
    assert kind.width == width
    flags = [0] * PARAMETER_COUNT
    flags[_first_index(kind)] = 1
    assert len(encode([0.0] * PARAMETER_COUNT, flags)) == width


def test_scale_by_ten():
    assert scale_by_ten(24.5) == 245.0


def test_byte_to_percent_endpoints():
    assert byte_to_percent(255) == 100.0
    assert byte_to_percent(0) == 0.0


def test_byte_to_percent_is_monotonic_and_bounded():
    results = [byte_to_percent(b) for b in range(256)]
    assert results == sorted(results)
    assert all(0 <= r <= 100 and r == int(r) for r in results)


def test_percent_to_byte_full_scale_and_clamp():
    assert percent_to_byte(100) == 255
    assert percent_to_byte(200) == 255
    assert percent_to_byte(0) == 0


def test_percent_to_byte_bounded():
    assert all(0 <= percent_to_byte(p) <= 255 for p in range(0, 101))


def test_decode_documented_byte_views():
    values = decode([0xF5] * EEPROM_LENGTH)
    assert len(values) == PARAMETER_COUNT
    assert values[_first_index(DataType.UINT_DIV10)] == 24.5
    assert values[_first_index(DataType.UINT)] == 245.0
    assert values[_first_index(DataType.INT_DIV10)] == pytest.approx(-1.1, abs=1e-6)


def test_decode_two_byte_values_are_little_endian():
    values = decode([0xF5] * EEPROM_LENGTH)
    assert values[_first_index(DataType.UINT16)] == float(0xF5F5)
    assert values[_first_index(DataType.INT16)] == float(0xF5F5 - 0x10000)


def test_decode_zero_image():
    assert decode([0] * EEPROM_LENGTH) == [0.0] * PARAMETER_COUNT


def test_decode_rejects_short_image():
    with pytest.raises(ValueError):
        decode([0] * (EEPROM_LENGTH - 1))


@pytest.mark.parametrize("fill", [0, 0xF5, 0x7F, 0x80])
def test_round_trip_uniform_images(fill):
    image = [fill] * EEPROM_LENGTH
    assert encode(decode(image)) == image


def test_encode_full_length():
    assert len(encode([0.0] * PARAMETER_COUNT)) == EEPROM_LENGTH


def test_encode_skips_hidden_parameters():
    values = decode([0xF5] * EEPROM_LENGTH)
    full = encode(values)
    flags = [1] * PARAMETER_COUNT
    flags[0] = 0
    partial = encode(values, flags)
    assert partial == full[PARAMETER_TYPES[0].width:]


def test_encode_rejects_short_values():
    with pytest.raises(ValueError):
        encode([0.0] * (PARAMETER_COUNT - 1))


def test_encode_rejects_short_flags():
    with pytest.raises(ValueError):
        encode([0.0] * PARAMETER_COUNT, [1] * (PARAMETER_COUNT - 1))


def test_initial_eeprom_defaults():
    image = initial_eeprom(200)
    assert len(image) == 200
    assert image[0] == 245
    assert image[95] == 20
    assert image[103] == 190
    assert image[150] == 2
    assert image[159] == 3
    assert image[189] == 255


def test_initial_eeprom_too_small():
    with pytest.raises(ValueError):
        initial_eeprom(100)


def test_initial_eeprom_round_trips_through_codec():
    image = initial_eeprom(EEPROM_LENGTH)
    decoded = decode(image)
    assert decode(encode(decoded)) == decoded