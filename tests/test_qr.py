import pytest

from tsplbridge.qr import ErrorCorrection, encode


def _format_copies(grid):
    size = len(grid)
    first = [grid[i][8] for i in range(6)] + [grid[7][8], grid[8][8], grid[8][7]]
    first += [grid[8][14 - i] for i in range(9, 15)]
    second = [grid[8][size - 1 - i] for i in range(8)]
    second += [grid[size - 15 + i][8] for i in range(8, 15)]
    as_int = lambda bits: sum(int(b) << i for i, b in enumerate(bits))
    return as_int(first), as_int(second)


def _ecc_bits(grid):
    value, _ = _format_copies(grid)
    return ((value ^ 0x5412) >> 10) >> 3


def test_short_text_is_version_one():
    grid = encode("HELLO WORLD", ErrorCorrection.MEDIUM)
    assert len(grid) == 21
    assert all(len(row) == 21 for row in grid)


def test_numeric_mode_is_compact():
    assert len(encode("1" * 41, ErrorCorrection.LOW)) == 21


def test_size_grows_with_data():
    small = encode("x", ErrorCorrection.MEDIUM)
    large = encode("x" * 200, ErrorCorrection.MEDIUM)
    assert len(large) > len(small)
    assert (len(large) - 17) % 4 == 0


def test_finder_pattern_top_left():
    grid = encode("finder", ErrorCorrection.QUARTILE)
    assert grid[0][0:7] == [True] * 7
    assert grid[1][0:7] == [True, False, False, False, False, False, True]
    assert grid[2][0:7] == [True, False, True, True, True, False, True]
    assert grid[7][0:8] == [False] * 8


def test_timing_pattern_alternates():
    grid = encode("timing pattern check", ErrorCorrection.MEDIUM)
    size = len(grid)
    assert [grid[6][x] for x in range(8, size - 8)] == [x % 2 == 0 for x in range(8, size - 8)]
    assert [grid[y][6] for y in range(8, size - 8)] == [y % 2 == 0 for y in range(8, size - 8)]


def test_dark_module_present():
    grid = encode("dark", ErrorCorrection.HIGH)
    assert grid[len(grid) - 8][8] is True


@pytest.mark.parametrize(
    "level,bits",
    [
        (ErrorCorrection.LOW, 1),
        (ErrorCorrection.MEDIUM, 0),
        (ErrorCorrection.QUARTILE, 3),
        (ErrorCorrection.HIGH, 2),
    ],
)
def test_format_information_records_level(level, bits):
    grid = encode("format info", level)
    first, second = _format_copies(grid)
    assert first == second
    assert _ecc_bits(grid) == bits


def test_bytes_and_unicode_accepted():
    assert encode(b"\x00\x01\x02") == encode(b"\x00\x01\x02")
    assert len(encode("ñandú")) == 21


def test_large_version_has_version_blocks():
    grid = encode("v" * 300, ErrorCorrection.MEDIUM)
    size = len(grid)
    assert size >= 45
    top_right = [[grid[y][x] for x in range(size - 11, size - 8)] for y in range(6)]
    bottom_left = [[grid[y][x] for y in range(size - 11, size - 8)] for x in range(6)]
    assert top_right == bottom_left


def test_too_long_raises():
    with pytest.raises(ValueError):
        encode("z" * 5000, ErrorCorrection.HIGH)