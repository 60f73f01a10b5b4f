"""Tests for price lookup, per-asset-class reports and net worth consolidation."""

from datetime import date, datetime

import pytest

from conftest import make_trade
from folio.metrics import (CASH_ROW, consolidate, days_held, effective_target, evaluate,
                           lookup_price, shares_prefix, watchlist_signals)
from folio.models import (AssetClass, AssetState, CashHolding, DividendRecord,
                          GoldHolding, LedgerRecord, MutualFundHolding, PnLRecord,
                          PortfolioReport, SignalStatus, WatchlistItem)


def test_shares_prefix() -> None:
    assert shares_prefix("APPLE INC", "APPLE INC.")
    assert shares_prefix("ALPHABET INC CLASS A", "ALPHABET INC CLASS C")   # first 15 chars
    assert not shares_prefix("ABC", "ABCD")                                 # key too short
    assert not shares_prefix("APPLE INC", "MICROSOFT")


def test_lookup_price_exact_then_fuzzy() -> None:
    prices = {"APPLE INC.": 150.0, "INFY": 1600.0}
    assert lookup_price("infy", prices) == 1600.0
    assert lookup_price("apple inc", prices) is None
    assert lookup_price("apple inc", prices, fuzzy=True) == 150.0


def test_days_held() -> None:
    assert days_held("2024-02-01", date(2024, 3, 1)) == 29
    assert days_held("2024-02-01T10:00", date(2024, 3, 1)) == 29
    assert days_held("2025-01-01", date(2024, 3, 1)) == 0
    assert days_held(None, date(2024, 3, 1)) == 0


def test_equity_report_with_live_prices(fifo_trades) -> None:
    state = AssetState(trades=fifo_trades, prices={"ABC": 20.0},
                       summary={"charges": 10.0},
                       dividends=[DividendRecord("2024-02-10", "ABC", 5.0)])
    report = evaluate(AssetClass.INDIAN_EQUITY, state, reference_date="2024-03-01",
                      as_of=datetime(2024, 3, 1))

    assert report.total_invested == pytest.approx(360.0)
    assert report.realized_pnl == pytest.approx(560.0)
    assert report.unrealized_pnl == pytest.approx(240.0)
    assert report.current_value == pytest.approx(600.0)
    assert report.net_realized_pnl == pytest.approx(550.0)
    assert report.dividends == 5.0
    assert report.win_rate == 100.0
    assert report.has_live_data

    (row,) = report.holdings
    assert row.ticker == "ABC"
    assert row.is_live
    assert row.days_held == 29
    assert row.portfolio_pct == pytest.approx(100.0)
    assert row.net_return_pct == pytest.approx(240 / 360 * 100)
    assert report.xirr > 0


def test_equity_report_falls_back_to_pnl_unrealized(fifo_trades) -> None:
    state = AssetState(trades=fifo_trades,
                       pnl=[PnLRecord(scrip_name="abc", unrealized_pnl=-60.0)])
    report = evaluate(AssetClass.INDIAN_EQUITY, state, reference_date=date(2024, 3, 1))
    (row,) = report.holdings
    assert not row.is_live
    assert row.unrealized == -60.0
    assert row.market_value == pytest.approx(300.0)
    assert not report.has_live_data


def test_equity_report_cash_row_from_ledger(fifo_trades) -> None:
    state = AssetState(trades=fifo_trades, ledger=[
        LedgerRecord(date="2024-01-01", balance=100.0),
        LedgerRecord(date="2024-02-01", balance=240.0),
    ])
    report = evaluate(AssetClass.INDIAN_EQUITY, state, reference_date=date(2024, 3, 1))
    assert report.cash_balance == 240.0
    assert report.current_value == pytest.approx(600.0)
    assert [r.ticker for r in report.holdings] == ["ABC", CASH_ROW]
    assert report.market_value_ex_cash == pytest.approx(360.0)


def test_summary_dividends_win_when_larger() -> None:
    state = AssetState(summary={"dividends": 50.0},
                       dividends=[DividendRecord("2024-01-01", "X", 20.0)])
    assert evaluate(AssetClass.INDIAN_EQUITY, state).dividends == 50.0


def test_empty_equity_state() -> None:
    report = evaluate(AssetClass.INTERNATIONAL_EQUITY, AssetState())
    assert report.holdings == []
    assert report.xirr == 0.0
    assert report.win_rate == 0.0


def test_international_uses_fuzzy_prices() -> None:
    trades = [make_trade("2024-01-01", "APPLE INC", "BUY", 2, 100.0)]
    state = AssetState(trades=trades, prices={"APPLE INC.": 120.0})
    report = evaluate(AssetClass.INTERNATIONAL_EQUITY, state, reference_date=date(2024, 2, 1))
    assert report.holdings[0].is_live
    assert report.unrealized_pnl == pytest.approx(40.0)

    domestic = evaluate(AssetClass.INDIAN_EQUITY, state, reference_date=date(2024, 2, 1))
    assert not domestic.holdings[0].is_live


def test_fund_report() -> None:
    state = AssetState(funds=[
        MutualFundHolding("Small", invested=100.0, market_value=150.0),
        MutualFundHolding("Large", invested=1000.0, market_value=900.0, latest_buy_date="2024-01-01"),
    ])
    report = evaluate(AssetClass.MUTUAL_FUNDS, state, reference_date=date(2024, 1, 11))
    assert report.total_invested == 1100.0
    assert report.current_value == 1050.0
    assert report.unrealized_pnl == -50.0
    assert [r.ticker for r in report.holdings] == ["Large", "Small"]
    assert report.holdings[0].days_held == 10
    assert report.holdings[1].net_return_pct == pytest.approx(50.0)


def test_cash_report() -> None:
    state = AssetState(cash_holdings=[CashHolding("1", "Savings", 300.0),
                                      CashHolding("2", "FD", 700.0)])
    report = evaluate(AssetClass.CASH_EQUIVALENTS, state)
    assert report.current_value == 1000.0
    assert report.holdings[0].ticker == "FD"
    assert report.holdings[0].portfolio_pct == pytest.approx(70.0)


def test_consolidate() -> None:
    reports = {
        AssetClass.INDIAN_EQUITY: PortfolioReport(
            AssetClass.INDIAN_EQUITY, total_invested=1000.0, current_value=1250.0,
            realized_pnl=100.0, unrealized_pnl=50.0, charges=5.0, dividends=10.0,
            cash_balance=200.0),
        AssetClass.INTERNATIONAL_EQUITY: PortfolioReport(
            AssetClass.INTERNATIONAL_EQUITY, total_invested=100.0, current_value=120.0,
            unrealized_pnl=20.0),
        AssetClass.GOLD_ETF: PortfolioReport(
            AssetClass.GOLD_ETF, total_invested=500.0, current_value=550.0, unrealized_pnl=50.0),
        AssetClass.CASH_EQUIVALENTS: PortfolioReport(
            AssetClass.CASH_EQUIVALENTS, total_invested=300.0, current_value=300.0),
    }
    net = consolidate(reports, conversion_rate=90.0)

    assert net.net_return_abs == pytest.approx(155.0 + 20 * 90 + 50.0)
    assert net.net_asset_value == pytest.approx(1250 + 120 * 90 + 550 + 300)
    assert net.net_cash == pytest.approx(500.0)
    assert net.net_return_pct == pytest.approx(2005.0 / (1200 + 9000 + 500 + 300) * 100)
    assert net.allocations == {
        "Indian Equity & MF":   pytest.approx(1050.0),
        "International Equity": pytest.approx(10800.0),
        "Gold":                 pytest.approx(550.0),
        "Net Cash":             pytest.approx(500.0),
    }


def test_gold_holding_is_tagged() -> None:
    assert GoldHolding("SGB", 1.0, 2.0).asset_class == AssetClass.GOLD_ETF


# ── Watchlist signals ─────────────────────────────────────────────────────────

def _item(ticker, entry=0.0, intrinsic=0.0, supports=()):
    return WatchlistItem(id=ticker.lower(), ticker=ticker, desired_entry_price=entry,
                         intrinsic_value=intrinsic, support_levels=list(supports))


def test_effective_target() -> None:
    item = _item("X", entry=80.0, supports=[90.0, 100.0, 120.0])
    assert effective_target(item, 105.0) == 100.0
    assert effective_target(item, 0.0) == 90.0
    assert effective_target(_item("Y", entry=80.0), 105.0) == 80.0
    assert effective_target(None, 105.0) == 0.0


def test_signal_status_ladder(fifo_trades) -> None:
    prices = {"ABC": 20.0, "OVR": 110.0, "ACC": 100.0, "MON": 100.0, "HLD": 100.0}
    report = evaluate(AssetClass.INDIAN_EQUITY, AssetState(trades=fifo_trades, prices=prices),
                      reference_date="2024-03-01", as_of=datetime(2024, 3, 1))
    watchlist = [
        _item("OVR", entry=105.0, intrinsic=100.0),
        _item("ACC", entry=97.0),
        _item("MON", entry=88.0),
        _item("HLD", entry=50.0),
        _item("NOP", entry=40.0, supports=[45.0]),
    ]
    signals = {s.ticker: s for s in watchlist_signals(report, watchlist, prices,
                                                      deployable_cash=240.0)}

    assert list(signals) == ["ABC", "ACC", "HLD", "MON", "NOP", "OVR"]
    assert signals["OVR"].status == SignalStatus.TRIM
    assert signals["OVR"].margin_of_safety == pytest.approx(-10.0)
    assert signals["ACC"].status == SignalStatus.ACCUMULATE
    assert signals["ACC"].call_ratio == pytest.approx(0.97)
    assert signals["MON"].status == SignalStatus.MONITOR
    assert signals["HLD"].status == SignalStatus.HOLD

    unpriced = signals["NOP"]
    assert unpriced.price == 0.0 and unpriced.target == 45.0
    assert unpriced.call_ratio == 0.0 and unpriced.status == SignalStatus.HOLD
    assert unpriced.has_supports

    held = signals["ABC"]
    assert held.item is None
    assert held.weight == pytest.approx(600 / (360 + 240) * 100)
    assert held.latest_buy_price == 12.0
    assert held.latest_buy_date == "2024-02-01"
    assert held.days_held == 29
    assert signals["ACC"].weight == 0.0 and signals["ACC"].days_held is None
