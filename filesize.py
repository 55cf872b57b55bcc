"""Parse human readable file sizes like `10gb`, `1.5 MB` or `512b`.

Two forms are accepted: `<number> <unit>` separated by a single space and the
compact `<number><unit>`. Units are powers of 1024 and matched case-insensitively.
"""

import math
from argparse import ArgumentTypeError
from dataclasses import dataclass
from enum import Enum
from typing import Dict

from typing_extensions import Self

DIGITS = "0123456789"


class SizeError(ValueError):
    pass


class MissingValue(SizeError):
    def __init__(self) -> None:
        super().__init__("Missing numeric value")


class DoublePeriod(SizeError):
    def __init__(self) -> None:
        super().__init__("Found two periods in the float input")


class InvalidMultiplier(SizeError):
    def __init__(self, token: str) -> None:
        super().__init__(f"Invalid multiplier `{token}`. Valid multipliers are b, kb, mb, gb, tb")
        self.token = token


class InvalidSize(SizeError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to parse size: {reason}")
        self.reason = reason


class Multiplier(Enum):
    BYTE = 1
    KILOBYTE = 1024
    MEGABYTE = 1024**2
    GIGABYTE = 1024**3
    TERABYTE = 1024**4

    @classmethod
    def from_str(cls, token: str) -> Self:
        try:
            return _UNITS[token.lower()]
        except KeyError:
            raise InvalidMultiplier(token) from None

    def to_bytes(self) -> int:
        return self.value


_UNITS: Dict[str, Multiplier] = {}
for _multiplier, _names in (
    (Multiplier.BYTE, ("b", "byte", "bytes")),
    (Multiplier.KILOBYTE, ("k", "kb", "kilobyte", "kilobytes")),
    (Multiplier.MEGABYTE, ("m", "mb", "megabyte", "megabytes")),
    (Multiplier.GIGABYTE, ("g", "gb", "gigabyte", "gigabytes")),
    (Multiplier.TERABYTE, ("t", "tb", "terabyte", "terabytes")),
):
    for _name in _names:
        _UNITS[_name] = _multiplier


def _parse_value(s: str) -> float:
    # float() also accepts digit separators, surrounding whitespace and non-ascii digits
    if not s.isascii() or "_" in s or any(c.isspace() for c in s):
        raise InvalidSize(f"invalid float literal: {s!r}")

    try:
        value = float(s)
    except ValueError as e:
        raise InvalidSize(str(e)) from e

    if value < 0 or not math.isfinite(value):
        raise InvalidSize(f"size must be a non-negative finite number: {s!r}")

    return value


@dataclass(frozen=True)
class Size:
    value: float
    multiplier: Multiplier

    @classmethod
    def from_str(cls, s: str) -> Self:
        """Parses `s` into a `Size`.

        Raises `MissingValue` for empty input, `DoublePeriod` if the compact form has
        two decimal points, `InvalidSize` if the number can't be parsed and
        `InvalidMultiplier` for unknown (or missing) units.
        """

        if not s:
            raise MissingValue()

        if " " in s:
            number, unit = s.split(" ", 1)
            value = _parse_value(number)
            return cls(value, Multiplier.from_str(unit))

        has_period = False
        boundary = len(s)
        for i, c in enumerate(s):
            if c in DIGITS:
                continue
            if c == ".":
                if has_period:
                    raise DoublePeriod()
                has_period = True
                continue
            boundary = i
            break

        value = _parse_value(s[:boundary])
        return cls(value, Multiplier.from_str(s[boundary:]))

    def to_bytes(self) -> int:
        # int() truncates toward zero
        return int(self.value * self.multiplier.to_bytes())


def parse_size(s: str) -> Size:
    return Size.from_str(s)


def size_arg(s: str) -> int:
    """argparse type which converts a size string to a number of bytes."""

    try:
        return parse_size(s).to_bytes()
    except SizeError as e:
        raise ArgumentTypeError(str(e)) from e
