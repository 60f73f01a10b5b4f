"""
folio/metrics.py  —  Per-asset-class report, watchlist signals, net worth

Pure functions over an AssetState; nothing is cached between calls.
"""

import math
from datetime import date, datetime
from typing import Dict, List, Mapping, Optional, Sequence, Union

from folio.config import (ACCUMULATE_RATIO, MONITOR_RATIO, PRICE_KEY_MIN_LEN,
                          PRICE_PREFIX_LEN)
from folio.fifo import run_fifo
from folio.models import (AssetClass, AssetState, HoldingRow, NetWorth,
                          PortfolioReport, SignalStatus, WatchlistItem,
                          WatchlistSignal)
from folio.xirr import flows_from_trades, xirr

CASH_ROW = "CASH BALANCE"


# ── Price lookup ──────────────────────────────────────────────────────────────

def _common_prefix_len(a: str, b: str) -> int:
    n = 0
    for x, y in zip(a, b):
        if x != y:
            break
        n += 1
    return n


def shares_prefix(ticker: str, key: str) -> bool:
    """
    True when a price-feed key plausibly names the same instrument:
    one is a prefix of the other, or both share the first 15 characters.
    Keys shorter than five characters never match.
    """
    if len(key) < PRICE_KEY_MIN_LEN:
        return False
    needed = min(len(ticker), len(key), PRICE_PREFIX_LEN)
    return needed > 0 and _common_prefix_len(ticker, key) >= needed


def lookup_price(ticker: str, prices: Mapping[str, float],
                 fuzzy: bool = False) -> Optional[float]:
    """Exact uppercase match first; with fuzzy=True, the first key that shares a prefix."""
    key = ticker.upper()
    if key in prices:
        return prices[key]
    if fuzzy:
        for candidate, price in prices.items():
            if shares_prefix(key, candidate.upper()):
                return price
    return None


# ── Helpers ───────────────────────────────────────────────────────────────────

def _as_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def days_held(buy_date: Optional[str], reference: date) -> int:
    bought = _as_date(buy_date)
    if bought is None:
        return 0
    return max(0, (reference - bought).days)


def _pct(part: float, whole: float) -> float:
    return part / whole * 100 if whole > 0 else 0.0


def _finalise(report: PortfolioReport) -> PortfolioReport:
    for row in report.holdings:
        row.portfolio_pct = _pct(row.market_value, report.current_value)
    report.holdings.sort(key=lambda r: -r.portfolio_pct)
    return report


# ── Per asset class ───────────────────────────────────────────────────────────

def evaluate(asset_class: AssetClass, state: AssetState,
             reference_date: Union[date, datetime, str, None] = None,
             as_of: Optional[datetime] = None) -> PortfolioReport:
    """
    Build the dashboard report for one asset class.

    reference_date drives days-held (default today); as_of dates the
    terminal value in the XIRR (default now).
    """
    reference = _as_date(reference_date) or date.today()
    if asset_class == AssetClass.CASH_EQUIVALENTS:
        return _cash_report(state)
    if asset_class in (AssetClass.MUTUAL_FUNDS, AssetClass.GOLD_ETF):
        return _fund_report(asset_class, state, reference)
    return _equity_report(asset_class, state, reference, as_of)


def _cash_report(state: AssetState) -> PortfolioReport:
    total = sum(c.value or 0.0 for c in state.cash_holdings)
    rows = [HoldingRow(ticker=c.account, quantity=1, invested=c.value,
                       market_value=c.value, is_live=True)
            for c in state.cash_holdings]
    report = PortfolioReport(asset_class=AssetClass.CASH_EQUIVALENTS,
                             total_invested=total, current_value=total,
                             cash_balance=total, holdings=rows, has_live_data=True)
    return _finalise(report)


def _fund_report(asset_class: AssetClass, state: AssetState, reference: date) -> PortfolioReport:
    invested = sum(h.invested for h in state.funds)
    value    = sum(h.market_value for h in state.funds)
    rows = [
        HoldingRow(ticker=h.name, quantity=h.units, invested=h.invested,
                   market_value=h.market_value, unrealized=h.unrealized,
                   net_return_pct=_pct(h.unrealized, h.invested),
                   days_held=days_held(h.latest_buy_date, reference), is_live=True,
                   latest_buy_date=h.latest_buy_date)
        for h in state.funds
    ]
    report = PortfolioReport(asset_class=asset_class, total_invested=invested,
                             current_value=value, unrealized_pnl=value - invested,
                             holdings=rows, has_live_data=bool(state.funds))
    return _finalise(report)


def _equity_report(asset_class: AssetClass, state: AssetState, reference: date,
                   as_of: Optional[datetime]) -> PortfolioReport:
    fifo    = run_fifo(state.trades)
    summary = state.summary
    fuzzy   = asset_class == AssetClass.INTERNATIONAL_EQUITY

    charges   = summary.get("charges", 0.0) or 0.0
    dividends = max(sum(d.amount for d in state.dividends), summary.get("dividends", 0.0) or 0.0)

    # Footer closing balance wins; otherwise the newest ledger row's balance
    cash = summary.get("cash", 0.0) or 0.0
    if cash == 0 and state.ledger:
        cash = max(state.ledger, key=lambda r: r.date).balance

    pnl_by_name = {r.scrip_name.lower(): r for r in state.pnl}
    rows = []
    total_unrealized = 0.0
    for ticker, pos in fifo.open_positions().items():
        price = lookup_price(ticker, state.prices, fuzzy=fuzzy)
        record = pnl_by_name.get(ticker.lower())
        market_value, unrealized, live = pos.invested, 0.0, False
        if price is not None:
            market_value = pos.open_quantity * price
            unrealized   = market_value - pos.invested
            live         = True
        elif record is not None:
            unrealized   = record.unrealized_pnl
            market_value = pos.invested + unrealized

        total_unrealized += unrealized
        rows.append(HoldingRow(
            ticker=ticker, quantity=pos.open_quantity, invested=pos.invested,
            market_value=market_value, unrealized=unrealized,
            realized=pos.realized_pnl,
            net_return_pct=_pct(unrealized, pos.invested),
            days_held=days_held(pos.latest_buy_date, reference),
            is_live=live,
            latest_buy_price=pos.latest_buy_price,
            latest_buy_date=pos.latest_buy_date,
        ))

    if cash > 0:
        rows.append(HoldingRow(ticker=CASH_ROW, quantity=1, invested=cash,
                               market_value=cash, is_live=True))

    rate = 0.0
    if state.trades:
        rate = xirr(flows_from_trades(state.trades), fifo.invested + total_unrealized, as_of=as_of)
        rate = rate * 100 if math.isfinite(rate) else 0.0

    winners = sum(1 for p in fifo.performance.values() if p.realized_pnl > 0)
    report = PortfolioReport(
        asset_class=asset_class,
        total_invested=fifo.invested,
        current_value=fifo.invested + total_unrealized + cash,
        realized_pnl=fifo.realized_pnl,
        unrealized_pnl=total_unrealized,
        charges=charges,
        net_realized_pnl=fifo.realized_pnl - abs(charges),
        dividends=dividends,
        cash_balance=cash,
        xirr=rate,
        win_rate=_pct(winners, len(fifo.performance)),
        holdings=rows,
        has_live_data=bool(state.prices),
        trade_performance=fifo.performance,
    )
    return _finalise(report)


# ── Watchlist signals ─────────────────────────────────────────────────────────

def effective_target(item: Optional[WatchlistItem], price: float) -> float:
    """
    Entry price a ticker is judged against: the support level nearest the
    current price, else the desired entry price. With no price the first
    support level stands in.
    """
    if item is None:
        return 0.0
    supports = [s for s in item.support_levels if s and s > 0]
    if not supports:
        return item.desired_entry_price or 0.0
    if price > 0:
        return min(supports, key=lambda s: abs(s - price))
    return supports[0]


def signal_status(price: float, intrinsic: float, call_ratio: float) -> SignalStatus:
    if intrinsic > 0 and price > intrinsic:
        return SignalStatus.TRIM
    if call_ratio > ACCUMULATE_RATIO:
        return SignalStatus.ACCUMULATE
    if call_ratio >= MONITOR_RATIO:
        return SignalStatus.MONITOR
    return SignalStatus.HOLD


def watchlist_signals(report: PortfolioReport, watchlist: Sequence[WatchlistItem],
                      prices: Mapping[str, float], deployable_cash: Optional[float] = None,
                      fuzzy: bool = False) -> List[WatchlistSignal]:
    """
    One signal per open holding and per watchlist ticker, sorted by ticker.

    Weight is the holding's market value against invested capital plus
    deployable cash, which defaults to the report's own cash balance.
    """
    cash    = report.cash_balance if deployable_cash is None else deployable_cash
    capital = report.total_invested + cash
    held    = {h.ticker.upper(): h for h in report.holdings if h.ticker != CASH_ROW}
    watched = {w.ticker.upper(): w for w in watchlist}

    signals = []
    for ticker in sorted(set(held) | set(watched)):
        holding, item = held.get(ticker), watched.get(ticker)
        price     = lookup_price(ticker, prices, fuzzy=fuzzy) or 0.0
        target    = effective_target(item, price)
        intrinsic = item.intrinsic_value if item else 0.0

        mos   = (intrinsic - price) / intrinsic * 100 if intrinsic > 0 and price > 0 else 0.0
        ratio = target / price if target > 0 and price > 0 else 0.0

        signals.append(WatchlistSignal(
            ticker=ticker, price=price, target=target,
            margin_of_safety=mos, call_ratio=ratio,
            status=signal_status(price, intrinsic, ratio),
            weight=_pct(holding.market_value, capital) if holding else 0.0,
            has_supports=bool(item and any(s > 0 for s in item.support_levels)),
            days_held=holding.days_held if holding else None,
            latest_buy_price=holding.latest_buy_price if holding else 0.0,
            latest_buy_date=holding.latest_buy_date if holding else None,
            item=item,
        ))
    return signals


# ── Consolidated ──────────────────────────────────────────────────────────────

def _profit(report: PortfolioReport) -> float:
    if report.asset_class.is_equity:
        return (report.realized_pnl + report.unrealized_pnl
                + report.dividends - abs(report.charges))
    if report.asset_class == AssetClass.CASH_EQUIVALENTS:
        return 0.0
    return report.unrealized_pnl


def _capital(report: PortfolioReport) -> float:
    if report.asset_class.is_equity:
        return report.total_invested + report.cash_balance
    if report.asset_class == AssetClass.CASH_EQUIVALENTS:
        return report.current_value
    return report.total_invested


def consolidate(reports: Mapping[AssetClass, PortfolioReport],
                conversion_rate: float) -> NetWorth:
    """
    Net worth across every asset class in the home currency. The
    international book is converted with `conversion_rate` (EUR → INR).
    """
    def get(ac: AssetClass) -> PortfolioReport:
        return reports.get(ac) or PortfolioReport(asset_class=ac)

    def fx(ac: AssetClass) -> float:
        return conversion_rate if ac == AssetClass.INTERNATIONAL_EQUITY else 1.0

    profit = capital = nav = 0.0
    for ac in AssetClass:
        r = get(ac)
        profit  += _profit(r) * fx(ac)
        capital += _capital(r) * fx(ac)
        nav     += r.current_value * fx(ac)

    ind, intl = get(AssetClass.INDIAN_EQUITY), get(AssetClass.INTERNATIONAL_EQUITY)
    net_cash = (ind.cash_balance + intl.cash_balance * conversion_rate
                + get(AssetClass.CASH_EQUIVALENTS).current_value)

    allocations: Dict[str, float] = {
        "Indian Equity & MF":   ind.market_value_ex_cash + get(AssetClass.MUTUAL_FUNDS).current_value,
        "International Equity": intl.market_value_ex_cash * conversion_rate,
        "Gold":                 get(AssetClass.GOLD_ETF).current_value,
        "Net Cash":             net_cash,
    }
    return NetWorth(net_asset_value=nav, net_cash=net_cash, net_return_abs=profit,
                    net_return_pct=_pct(profit, capital), allocations=allocations,
                    conversion_rate=conversion_rate)
