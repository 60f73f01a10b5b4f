"""Tests for locale-aware number, header and date parsing."""

import pytest

from folio.normalize import clean, normalize_header, parse_flexible_date, parse_locale_number


@pytest.mark.parametrize("text, expected", [
    ("1.234,56", 1234.56),
    ("1,234.56", 1234.56),
    ("(99.50)", -99.50),
    ("", 0.0),
    (None, 0.0),
    ("12,5", 12.5),
    ("₹ 1,00,000.00", 100000.0),
    ('"-3.25"', -3.25),
    ("EUR 1 234,50", 1234.5),
    ("abc", 0.0),
])
def test_parse_locale_number(text, expected) -> None:
    assert parse_locale_number(text) == pytest.approx(expected)


def test_repeated_commas_without_a_dot_read_as_decimal() -> None:
    assert parse_locale_number("1,234,567") == pytest.approx(1.234567)


def test_parse_locale_number_never_raises_on_garbage() -> None:
    for junk in ("--", ".", ",", "1-2", "()"):
        assert isinstance(parse_locale_number(junk), float)


def test_clean_strips_quotes_and_whitespace() -> None:
    assert clean('  "INFY" ') == "INFY"
    assert clean(None) == ""


def test_normalize_header_strips_accents() -> None:
    assert normalize_header("Clôture") == "cloture"
    assert normalize_header(" Quantité ") == "quantite"


@pytest.mark.parametrize("text, expected", [
    ("13-01-2024", "2024-01-13"),     # 13 can only be a day
    ("05-06-2024", "2024-06-05"),     # ambiguous: day-first
    ("05/25/2024", "2024-05-25"),     # 25 can only be a day
    ("2024-03-15", "2024-03-15"),
    ("2024/03/15", "2024-03-15"),
    ("15/03/24", "2024-03-15"),
    ("05 Jan 2024", "2024-01-05"),
    ("Jan 05 2024", "2024-01-05"),
    ("5-Sep-2023", "2023-09-05"),
])
def test_parse_flexible_date(text, expected) -> None:
    assert parse_flexible_date(text) == expected


@pytest.mark.parametrize("text", ["", "not a date", "31/02/2024", "2024-13-01", "12/2024", "Total"])
def test_parse_flexible_date_rejects_invalid(text) -> None:
    assert parse_flexible_date(text) == ""
