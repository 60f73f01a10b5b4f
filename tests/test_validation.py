"""Tests for input validation rules."""

from conftest import make_trade
from folio.validation import (validate_cash_amount, validate_ticker, validate_trade_list,
                              validate_watchlist_item)


def test_validate_ticker() -> None:
    assert validate_ticker("INFY") == []
    assert validate_ticker("APPLE INC.") == []
    assert validate_ticker("M&M") == []
    assert validate_ticker("") == ["Ticker symbol cannot be empty."]
    assert validate_ticker("BAD$") != []
    assert validate_ticker("X" * 41) != []


def test_validate_watchlist_item() -> None:
    assert validate_watchlist_item("INFY", 1400, 1800, "https://example.com/infy", [1350, 1300]) == []
    errors = validate_watchlist_item("INFY", -1, 0, "ftp://x", [1, 2, 3, 4])
    assert len(errors) == 3
    assert any("negative" in e for e in errors)
    assert any("http" in e for e in errors)
    assert any("support levels" in e for e in errors)
    assert validate_watchlist_item("INFY", support_levels=[0]) == \
        ["Support levels must be greater than zero."]


def test_validate_cash_amount() -> None:
    assert validate_cash_amount("Savings", 1000) == []
    assert validate_cash_amount("", 0) == ["Please enter an account name.", "Amount cannot be zero."]


def test_validate_trade_list_reports_oversell() -> None:
    trades = [make_trade("2024-01-01", "X", "BUY", 10, 10.0),
              make_trade("2024-01-02", "x", "SELL", 12, 11.0)]
    (warning,) = validate_trade_list(trades)
    assert "exceeds" in warning and "X" in warning


def test_validate_trade_list_clean(fifo_trades) -> None:
    assert validate_trade_list(fifo_trades) == []
