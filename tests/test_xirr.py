"""Tests for the Newton-Raphson XIRR solver."""

import math
from datetime import date, datetime

import pytest

from conftest import make_trade
from folio.xirr import flows_from_trades, xirr


def test_one_year_ten_percent() -> None:
    flows = [("2023-01-01", -1000.0), ("2024-01-01", 1100.0)]
    assert xirr(flows) == pytest.approx(0.10, abs=1e-4)


def test_terminal_value_dated_as_of() -> None:
    flows = [(date(2023, 1, 1), -1000.0)]
    assert xirr(flows, terminal_value=1100.0, as_of=datetime(2024, 1, 1)) == pytest.approx(0.10, abs=1e-4)


def test_loss_is_negative() -> None:
    flows = [("2023-01-01", -1000.0), ("2024-01-01", 900.0)]
    assert xirr(flows) == pytest.approx(-0.10, abs=1e-4)


def test_flows_of_one_sign_return_zero() -> None:
    assert xirr([("2023-01-01", -1000.0), ("2023-06-01", -50.0)]) == 0.0
    assert xirr([("2023-01-01", 1000.0)]) == 0.0
    assert xirr([]) == 0.0


def test_unparseable_dates_are_ignored() -> None:
    flows = [("garbage", -5.0), ("2023-01-01", -1000.0), ("2024-01-01", 1100.0)]
    assert xirr(flows) == pytest.approx(0.10, abs=1e-4)


def test_result_is_finite_for_extreme_flows() -> None:
    flows = [("2024-01-01", -1.0), ("2024-01-02", 1_000_000.0)]
    assert math.isfinite(xirr(flows))


def test_flows_from_trades(fifo_trades) -> None:
    flows = flows_from_trades(fifo_trades)
    assert flows == [("2024-01-01", -1000.0), ("2024-02-01", -600.0), ("2024-03-01", 1800.0)]


def test_intraday_timestamps_are_accepted() -> None:
    trades = [make_trade("2023-01-01T09:30", "X", "BUY", 10, 100.0),
              make_trade("2024-01-01T09:30", "X", "SELL", 10, 110.0)]
    assert xirr(flows_from_trades(trades)) == pytest.approx(0.10, abs=1e-4)


def test_flat_slope_returns_current_estimate() -> None:
    # Every flow on one date: the derivative is zero, so the guess stands
    assert xirr([("2024-01-01", -1.0), ("2024-01-01", 2.0)]) == pytest.approx(0.1)


def test_divergent_iteration_returns_zero() -> None:
    # One day from -1 to 1e6: the second Newton step jumps past |r| = 1000
    assert xirr([("2024-01-01", -1.0), ("2024-01-02", 1_000_000.0)]) == 0.0
