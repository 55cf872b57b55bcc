"""Unit tests for size string parsing."""

from argparse import ArgumentTypeError

import pytest

from filesize import (
    DoublePeriod,
    InvalidMultiplier,
    InvalidSize,
    MissingValue,
    Multiplier,
    Size,
    SizeError,
    parse_size,
    size_arg,
)

UNIT_TOKENS = [
    (("b", "byte", "bytes"), 0),
    (("k", "kb", "kilobyte", "kilobytes"), 1),
    (("m", "mb", "megabyte", "megabytes"), 2),
    (("g", "gb", "gigabyte", "gigabytes"), 3),
    (("t", "tb", "terabyte", "terabytes"), 4),
]


def _all_tokens():
    for tokens, exponent in UNIT_TOKENS:
        for token in tokens:
            for variant in (token, token.upper(), token.capitalize()):
                yield variant, 1024**exponent


@pytest.mark.unit
class TestMultiplier:
    """Tests for unit lookup."""

    @pytest.mark.parametrize("token,factor", list(_all_tokens()))
    def test_from_str(self, token: str, factor: int) -> None:
        """All unit names map to their power of 1024 regardless of case."""
        assert Multiplier.from_str(token).to_bytes() == factor

    def test_each_unit_is_1024_times_the_previous(self) -> None:
        """Consecutive units differ by a factor of 1024."""
        units = list(Multiplier)
        assert units[0].to_bytes() == 1
        for smaller, larger in zip(units, units[1:]):
            assert larger.to_bytes() == smaller.to_bytes() * 1024

    @pytest.mark.parametrize("token", ["", "xb", "kib", "p", "gigs"])
    def test_unknown_token(self, token: str) -> None:
        """Unknown tokens raise InvalidMultiplier."""
        with pytest.raises(InvalidMultiplier):
            Multiplier.from_str(token)


@pytest.mark.unit
class TestParseSize:
    """Tests for both accepted size forms."""

    def test_empty(self) -> None:
        """Empty input is a missing value."""
        with pytest.raises(MissingValue):
            parse_size("")

    def test_double_period(self) -> None:
        """Two periods in the compact form are rejected."""
        with pytest.raises(DoublePeriod):
            parse_size("1.2.3kb")

    def test_double_period_with_space_is_invalid_size(self) -> None:
        """The spaced form leaves number validation to float parsing."""
        with pytest.raises(InvalidSize):
            parse_size("1.2.3 kb")

    def test_unknown_unit(self) -> None:
        """An unknown unit after a valid number is an invalid multiplier."""
        with pytest.raises(InvalidMultiplier):
            parse_size("5xy")

    def test_unknown_unit_with_space(self) -> None:
        """The spaced form checks the unit as well."""
        with pytest.raises(InvalidMultiplier):
            parse_size("5 xy")

    def test_number_without_unit(self) -> None:
        """A bare number has an empty unit which is not valid."""
        with pytest.raises(InvalidMultiplier):
            parse_size("512")

    @pytest.mark.parametrize(
        "s",
        [
            "kb",
            ".kb",
            "abc mb",
            "-5kb",
            "-5 kb",
            "nan mb",
            "inf gb",
            "1_000 kb",
            "5\t kb",
            "5\n kb",
            "\t5 kb",
            "٥ kb",
            "５ mb",
        ],
    )
    def test_invalid_number(self, s: str) -> None:
        """Missing, malformed, negative, non-finite, separated, padded or non-ascii numbers are rejected."""
        with pytest.raises(InvalidSize):
            parse_size(s)

    def test_invalid_size_chains_cause(self) -> None:
        """InvalidSize keeps the underlying float error."""
        with pytest.raises(InvalidSize) as excinfo:
            parse_size("abc mb")
        assert isinstance(excinfo.value.__cause__, ValueError)
        assert excinfo.value.reason

    def test_errors_are_value_errors(self) -> None:
        """All parse errors share a common base class."""
        for cls in (MissingValue, DoublePeriod, InvalidMultiplier, InvalidSize):
            assert issubclass(cls, SizeError)
            assert issubclass(cls, ValueError)

    @pytest.mark.parametrize(
        "s,expected",
        [
            ("2048b", 2048),
            ("10kb", 10 * 1024),
            ("10 KB", 10 * 1024),
            ("1.5 GB", int(1.5 * 1024**3)),
            ("1.5gb", int(1.5 * 1024**3)),
            ("0.5k", 512),
            ("3 Megabytes", 3 * 1024**2),
            ("2t", 2 * 1024**4),
            ("0b", 0),
            ("1.b", 1),
        ],
    )
    def test_to_bytes(self, s: str, expected: int) -> None:
        """Sizes convert to byte counts."""
        assert parse_size(s).to_bytes() == expected

    def test_to_bytes_truncates(self) -> None:
        """Fractional bytes are truncated toward zero."""
        assert parse_size("1.9b").to_bytes() == 1
        assert parse_size("0.3 kb").to_bytes() == 307

    def test_value_and_multiplier(self) -> None:
        """The parsed value and unit are kept."""
        size = parse_size("1.5 MB")
        assert size.value == 1.5
        assert size.multiplier is Multiplier.MEGABYTE

    def test_idempotent(self) -> None:
        """Parsing the same string twice yields equal sizes."""
        assert parse_size("10gb") == parse_size("10gb")
        assert Size.from_str("1.5 MB") == parse_size("1.5 MB")

    def test_frozen(self) -> None:
        """Sizes are immutable."""
        size = parse_size("1kb")
        with pytest.raises(AttributeError):
            size.value = 2.0  # type: ignore[misc]


@pytest.mark.unit
class TestSizeArg:
    """Tests for the argparse type."""

    def test_returns_bytes(self) -> None:
        """Valid sizes are converted to bytes."""
        assert size_arg("4kb") == 4096

    def test_raises_argument_type_error(self) -> None:
        """Parse errors are reported to argparse."""
        with pytest.raises(ArgumentTypeError, match="Invalid multiplier"):
            size_arg("5xy")
