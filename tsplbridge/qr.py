"""QR code symbol generation returning a module matrix without quiet zone."""

from __future__ import annotations

from enum import Enum

__all__ = ["ErrorCorrection", "encode"]


class ErrorCorrection(Enum):
    """QR error correction level."""

    LOW = (0, 1)
    MEDIUM = (1, 0)
    QUARTILE = (2, 3)
    HIGH = (3, 2)

    def __init__(self, ordinal: int, format_bits: int) -> None:
        self.ordinal = ordinal
        self.format_bits = format_bits


_ECC_PER_BLOCK = (
    (-1, 7, 10, 15, 20, 26, 18, 20, 24, 30, 18, 20, 24, 26, 30, 22, 24, 28, 30, 28, 28,
     28, 28, 30, 30, 26, 28, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30),
    (-1, 10, 16, 26, 18, 24, 16, 18, 22, 22, 26, 30, 22, 22, 24, 24, 28, 28, 26, 26, 26,
     26, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28, 28),
    (-1, 13, 22, 18, 26, 18, 24, 18, 22, 20, 24, 28, 26, 24, 20, 30, 24, 28, 28, 26, 30,
     28, 30, 30, 30, 30, 28, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30),
    (-1, 17, 28, 22, 16, 22, 28, 26, 26, 24, 28, 24, 28, 22, 24, 24, 30, 28, 28, 26, 28,
     30, 24, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30, 30),
)

_NUM_BLOCKS = (
    (-1, 1, 1, 1, 1, 1, 2, 2, 2, 2, 4, 4, 4, 4, 4, 6, 6, 6, 6, 7, 8, 8, 9, 9, 10, 12,
     12, 12, 13, 14, 15, 16, 17, 18, 19, 19, 20, 21, 22, 24, 25),
    (-1, 1, 1, 1, 2, 2, 4, 4, 4, 5, 5, 5, 8, 9, 9, 10, 10, 11, 13, 14, 16, 17, 17, 18,
     20, 21, 23, 25, 26, 28, 29, 31, 33, 35, 37, 38, 40, 43, 45, 47, 49),
    (-1, 1, 1, 2, 2, 4, 4, 6, 6, 8, 8, 8, 10, 12, 16, 12, 17, 16, 18, 21, 20, 23, 23,
     25, 27, 29, 34, 34, 35, 38, 40, 43, 45, 48, 51, 53, 56, 59, 62, 65, 68),
    (-1, 1, 1, 2, 4, 4, 4, 5, 6, 8, 8, 11, 11, 16, 16, 18, 16, 19, 21, 25, 25, 25, 34,
     30, 32, 35, 37, 40, 42, 45, 48, 51, 54, 57, 60, 63, 66, 70, 74, 77, 81),
)

_ALPHANUMERIC = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ $%*+-./:"
_DIGITS = "0123456789"

_MODE_NUMERIC = (0x1, (10, 12, 14))
_MODE_ALPHANUMERIC = (0x2, (9, 11, 13))
_MODE_BYTE = (0x4, (8, 16, 16))

_FINDER_RUN = [True, False, True, True, True, False, True, False, False, False, False]
_FINDER_RUN_REVERSED = _FINDER_RUN[::-1]


def _append_bits(bits: list[int], value: int, length: int) -> None:
    bits.extend((value >> i) & 1 for i in reversed(range(length)))


def _segment(data: str | bytes) -> tuple[tuple[int, tuple[int, int, int]], int, list[int]]:
    """Choose the most compact single mode and encode the payload bits."""
    bits: list[int] = []
    if isinstance(data, str) and data and all(ch in _DIGITS for ch in data):
        for start in range(0, len(data), 3):
            chunk = data[start : start + 3]
            _append_bits(bits, int(chunk), len(chunk) * 3 + 1)
        return _MODE_NUMERIC, len(data), bits
    if isinstance(data, str) and data and all(ch in _ALPHANUMERIC for ch in data):
        for start in range(0, len(data), 2):
            pair = data[start : start + 2]
            if len(pair) == 2:
                _append_bits(bits, _ALPHANUMERIC.index(pair[0]) * 45 + _ALPHANUMERIC.index(pair[1]), 11)
            else:
                _append_bits(bits, _ALPHANUMERIC.index(pair), 6)
        return _MODE_ALPHANUMERIC, len(data), bits
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    for byte in raw:
        _append_bits(bits, byte, 8)
    return _MODE_BYTE, len(raw), bits


def _raw_data_modules(version: int) -> int:
    result = (16 * version + 128) * version + 64
    if version >= 2:
        align = version // 7 + 2
        result -= (25 * align - 10) * align - 55
        if version >= 7:
            result -= 36
    return result


def _data_codewords(version: int, level: ErrorCorrection) -> int:
    return (
        _raw_data_modules(version) // 8
        - _ECC_PER_BLOCK[level.ordinal][version] * _NUM_BLOCKS[level.ordinal][version]
    )


def _gf_multiply(x: int, y: int) -> int:
    z = 0
    for i in reversed(range(8)):
        z = (z << 1) ^ ((z >> 7) * 0x11D)
        z ^= ((y >> i) & 1) * x
    return z


def _rs_divisor(degree: int) -> list[int]:
    result = [0] * (degree - 1) + [1]
    root = 1
    for _ in range(degree):
        for j in range(degree):
            result[j] = _gf_multiply(result[j], root)
            if j + 1 < degree:
                result[j] ^= result[j + 1]
        root = _gf_multiply(root, 0x02)
    return result


def _rs_remainder(data: list[int], divisor: list[int]) -> list[int]:
    result = [0] * len(divisor)
    for byte in data:
        factor = byte ^ result.pop(0)
        result.append(0)
        for i, coefficient in enumerate(divisor):
            result[i] ^= _gf_multiply(coefficient, factor)
    return result


def _build_codewords(data: str | bytes, level: ErrorCorrection) -> tuple[int, list[int]]:
    (indicator, count_widths), count, payload = _segment(data)
    for version in range(1, 41):
        width = count_widths[0 if version < 10 else 1 if version < 27 else 2]
        capacity = _data_codewords(version, level) * 8
        if count < (1 << width) and 4 + width + len(payload) <= capacity:
            break
    else:
        raise ValueError("data too long for a QR code at this error correction level")

    bits: list[int] = []
    _append_bits(bits, indicator, 4)
    _append_bits(bits, count, width)
    bits.extend(payload)
    bits.extend([0] * min(4, capacity - len(bits)))
    bits.extend([0] * (-len(bits) % 8))

    data_words = [
        int("".join(map(str, bits[i : i + 8])), 2) for i in range(0, len(bits), 8)
    ]
    pad = 0xEC
    while len(data_words) * 8 < capacity:
        data_words.append(pad)
        pad ^= 0xEC ^ 0x11
    return version, _interleave(data_words, version, level)


def _interleave(data: list[int], version: int, level: ErrorCorrection) -> list[int]:
    num_blocks = _NUM_BLOCKS[level.ordinal][version]
    ecc_len = _ECC_PER_BLOCK[level.ordinal][version]
    raw_codewords = _raw_data_modules(version) // 8
    num_short = num_blocks - raw_codewords % num_blocks
    short_len = raw_codewords // num_blocks
    divisor = _rs_divisor(ecc_len)

    blocks: list[list[int]] = []
    offset = 0
    for index in range(num_blocks):
        size = short_len - ecc_len + (0 if index < num_short else 1)
        chunk = data[offset : offset + size]
        offset += size
        ecc = _rs_remainder(chunk, divisor)
        if index < num_short:
            chunk = chunk + [0]
        blocks.append(chunk + ecc)

    result: list[int] = []
    for i in range(len(blocks[0])):
        for j, block in enumerate(blocks):
            if i != short_len - ecc_len or j >= num_short:
                result.append(block[i])
    return result


def _mask_applies(mask: int, x: int, y: int) -> bool:
    if mask == 0:
        return (x + y) % 2 == 0
    if mask == 1:
        return y % 2 == 0
    if mask == 2:
        return x % 3 == 0
    if mask == 3:
        return (x + y) % 3 == 0
    if mask == 4:
        return (x // 3 + y // 2) % 2 == 0
    if mask == 5:
        return x * y % 2 + x * y % 3 == 0
    if mask == 6:
        return (x * y % 2 + x * y % 3) % 2 == 0
    return ((x + y) % 2 + x * y % 3) % 2 == 0


class _Symbol:
    def __init__(self, version: int) -> None:
        self.version = version
        self.size = version * 4 + 17
        self.modules = [[False] * self.size for _ in range(self.size)]
        self.function = [[False] * self.size for _ in range(self.size)]

    def _set(self, x: int, y: int, dark: bool) -> None:
        self.modules[y][x] = dark
        self.function[y][x] = True

    def _alignment_positions(self) -> list[int]:
        if self.version == 1:
            return []
        count = self.version // 7 + 2
        step = (self.version * 8 + count * 3 + 5) // (count * 4 - 4) * 2
        positions = [6]
        position = self.size - 7
        while len(positions) < count:
            positions.insert(1, position)
            position -= step
        return positions

    def draw_function_patterns(self, level: ErrorCorrection) -> None:
        size = self.size
        for i in range(size):
            self._set(6, i, i % 2 == 0)
            self._set(i, 6, i % 2 == 0)
        for cx, cy in ((3, 3), (size - 4, 3), (3, size - 4)):
            for dy in range(-4, 5):
                for dx in range(-4, 5):
                    x, y = cx + dx, cy + dy
                    if 0 <= x < size and 0 <= y < size:
                        self._set(x, y, max(abs(dx), abs(dy)) not in (2, 4))
        positions = self._alignment_positions()
        last = len(positions) - 1
        for i, cx in enumerate(positions):
            for j, cy in enumerate(positions):
                if (i, j) in ((0, 0), (0, last), (last, 0)):
                    continue
                for dy in range(-2, 3):
                    for dx in range(-2, 3):
                        self._set(cx + dx, cy + dy, max(abs(dx), abs(dy)) != 1)
        self.draw_format(level, 0)
        self._draw_version()

    def draw_format(self, level: ErrorCorrection, mask: int) -> None:
        data = level.format_bits << 3 | mask
        remainder = data
        for _ in range(10):
            remainder = (remainder << 1) ^ ((remainder >> 9) * 0x537)
        bits = (data << 10 | remainder) ^ 0x5412

        def bit(i: int) -> bool:
            return (bits >> i) & 1 != 0

        size = self.size
        for i in range(6):
            self._set(8, i, bit(i))
        self._set(8, 7, bit(6))
        self._set(8, 8, bit(7))
        self._set(7, 8, bit(8))
        for i in range(9, 15):
            self._set(14 - i, 8, bit(i))
        for i in range(8):
            self._set(size - 1 - i, 8, bit(i))
        for i in range(8, 15):
            self._set(8, size - 15 + i, bit(i))
        self._set(8, size - 8, True)

    def _draw_version(self) -> None:
        if self.version < 7:
            return
        remainder = self.version
        for _ in range(12):
            remainder = (remainder << 1) ^ ((remainder >> 11) * 0x1F25)
        bits = self.version << 12 | remainder
        for i in range(18):
            dark = (bits >> i) & 1 != 0
            a, b = self.size - 11 + i % 3, i // 3
            self._set(a, b, dark)
            self._set(b, a, dark)

    def draw_codewords(self, codewords: list[int]) -> None:
        total_bits = len(codewords) * 8
        index = 0
        right = self.size - 1
        while right >= 1:
            if right == 6:
                right = 5
            upward = ((right + 1) & 2) == 0
            for vert in range(self.size):
                y = self.size - 1 - vert if upward else vert
                for x in (right, right - 1):
                    if not self.function[y][x] and index < total_bits:
                        self.modules[y][x] = (codewords[index >> 3] >> (7 - (index & 7))) & 1 != 0
                        index += 1
            right -= 2

    def masked(self, mask: int) -> list[list[bool]]:
        return [
            [
                dark != (not is_function and _mask_applies(mask, x, y))
                for x, (dark, is_function) in enumerate(zip(row, functions))
            ]
            for y, (row, functions) in enumerate(zip(self.modules, self.function))
        ]


def _penalty(grid: list[list[bool]]) -> int:
    size = len(grid)
    score = 0
    lines = grid + [list(column) for column in zip(*grid)]
    for line in lines:
        run = 0
        previous = None
        for cell in line:
            if cell == previous:
                run += 1
            else:
                if run >= 5:
                    score += run - 2
                previous, run = cell, 1
        if run >= 5:
            score += run - 2
        for start in range(size - 10):
            window = line[start : start + 11]
            if window == _FINDER_RUN or window == _FINDER_RUN_REVERSED:
                score += 40
    for y in range(size - 1):
        for x in range(size - 1):
            if grid[y][x] == grid[y][x + 1] == grid[y + 1][x] == grid[y + 1][x + 1]:
                score += 3
    dark = sum(map(sum, grid))
    total = size * size
    score += ((abs(dark * 20 - total * 10) + total - 1) // total - 1) * 10
    return score


def encode(
    data: str | bytes, level: ErrorCorrection = ErrorCorrection.MEDIUM
) -> list[list[bool]]:
    """Encode data as a QR symbol; returns rows of modules, True meaning dark."""
    version, codewords = _build_codewords(data, level)
    symbol = _Symbol(version)
    symbol.draw_function_patterns(level)
    symbol.draw_codewords(codewords)

    best_mask, best_score = 0, None
    for mask in range(8):
        symbol.draw_format(level, mask)
        score = _penalty(symbol.masked(mask))
        if best_score is None or score < best_score:
            best_mask, best_score = mask, score
    symbol.draw_format(level, best_mask)
    return symbol.masked(best_mask)