"""Tests for input casting helpers."""

from datetime import date

from ordertrack.core.quantities import (
    as_non_negative_int,
    as_non_negative_int_fr_strict,
    clamp_limit,
    clamp_offset,
    normalize_label,
    parse_iso_date,
)


class TestAsNonNegativeInt:
    """Tests for as_non_negative_int."""

    def test_accepts_integers(self) -> None:
        """Plain, integral float and digit-string values are accepted."""
        assert as_non_negative_int(0) == 0
        assert as_non_negative_int(7) == 7
        assert as_non_negative_int(4.0) == 4
        assert as_non_negative_int(" 12 ") == 12

    def test_rejects_invalid(self) -> None:
        """Negatives, fractions, booleans and garbage are refused."""
        for value in (-1, 2.5, True, False, "3,5", "-2", "abc", None, [1]):
            assert as_non_negative_int(value) is None


class TestFrenchQuantity:
    """Tests for as_non_negative_int_fr_strict."""

    def test_accepts_french_notation(self) -> None:
        """3, 3,00 and 3.00 are all three."""
        assert as_non_negative_int_fr_strict("3") == 3
        assert as_non_negative_int_fr_strict("3,00") == 3
        assert as_non_negative_int_fr_strict("3.00") == 3
        assert as_non_negative_int_fr_strict(3) == 3
        assert as_non_negative_int_fr_strict(3.0) == 3

    def test_rejects_fractions(self) -> None:
        """Non-integral and negative quantities are refused."""
        for value in ("3,49", "3.5", "-1", "", None, True, 2.5, -4):
            assert as_non_negative_int_fr_strict(value) is None


class TestParseIsoDate:
    """Tests for parse_iso_date."""

    def test_valid(self) -> None:
        """Strict YYYY-MM-DD strings and date objects."""
        assert parse_iso_date("2024-03-05") == date(2024, 3, 5)
        assert parse_iso_date(date(2024, 1, 1)) == date(2024, 1, 1)

    def test_invalid(self) -> None:
        """Other formats and impossible dates give None."""
        for value in ("05/03/2024", "2024-02-30", "2024-3-5", "", None, 20240305):
            assert parse_iso_date(value) is None


class TestPagination:
    """Tests for limit and offset clamping."""

    def test_clamp_limit(self) -> None:
        """Limits are clamped to [1, maximum] with a default fallback."""
        assert clamp_limit(None, default=50, maximum=200) == 50
        assert clamp_limit("abc", default=50, maximum=200) == 50
        assert clamp_limit(0, default=50, maximum=200) == 1
        assert clamp_limit(1000, default=50, maximum=200) == 200
        assert clamp_limit("20", default=50, maximum=200) == 20

    def test_clamp_offset(self) -> None:
        """Offsets are non-negative integers."""
        assert clamp_offset(-5) == 0
        assert clamp_offset("10") == 10
        assert clamp_offset(None) == 0


class TestNormalizeLabel:
    """Tests for normalize_label."""

    def test_whitespace(self) -> None:
        """Non-breaking spaces and runs of whitespace collapse to one space."""
        assert normalize_label("  BIG BAG \t 0/31.5  ") == "BIG BAG 0/31.5"

    def test_none(self) -> None:
        """None normalizes to an empty string."""
        assert normalize_label(None) == ""
