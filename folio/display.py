"""
folio/display.py
================
Renders reports in the terminal using the `rich` library.

Display logic lives here; every number shown was computed in
folio.metrics. The international book is shown in euros, everything
else in rupees.
"""

from typing import List

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from folio.models import (AssetClass, NetWorth, ParseResult, PortfolioReport,
                          SignalStatus, WatchlistSignal)

console = Console()

# ── Palette ─────────────────────────────────────────────────────────────────
GAIN   = "green"
LOSS   = "red"
MUTED  = "grey62"
ACCENT = "steel_blue1"
HEAD   = "bold white"

BAR_WIDTH = 28


# ── Formatters ───────────────────────────────────────────────────────────────

def _colour(value: float, text: str) -> str:
    if value > 0:  return f"[{GAIN}]{text}[/{GAIN}]"
    if value < 0:  return f"[{LOSS}]{text}[/{LOSS}]"
    return f"[{MUTED}]{text}[/{MUTED}]"

def _symbol(asset_class: AssetClass) -> str:
    return "€" if asset_class == AssetClass.INTERNATIONAL_EQUITY else "₹"

def _cur(value: float, symbol: str = "₹") -> str:
    return f"{symbol}{value:,.2f}"

def _pct(value: float) -> str:
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.2f}%"

def _table() -> Table:
    return Table(box=box.SIMPLE, show_header=True, header_style=f"bold {ACCENT}",
                 show_edge=False, pad_edge=True)


# ── Import feedback ───────────────────────────────────────────────────────────

def print_parse_result(result: ParseResult) -> None:
    style = GAIN if result.success else LOSS
    console.print(f"\n  [{style}]{result.message}[/{style}]")
    if result.preview:
        preview = _table()
        width = max(len(r) for r in result.preview)
        for n in range(width):
            preview.add_column(f"{n + 1}", style=MUTED, overflow="ellipsis", max_width=18)
        for row in result.preview:
            preview.add_row(*(row + [""] * (width - len(row))))
        console.print(preview)


# ── Asset-class report ────────────────────────────────────────────────────────

def print_report(report: PortfolioReport) -> None:
    sym = _symbol(report.asset_class)
    if not report.holdings:
        console.print(f"\n  [{MUTED}]Nothing imported for {report.asset_class.value} yet.[/{MUTED}]\n")
        return

    table = _table()
    table.row_styles = ["", "on grey7"]
    table.add_column("",          width=2)
    table.add_column("Holding",   style=HEAD, min_width=12)
    table.add_column("Qty",       justify="right", min_width=10)
    table.add_column("Invested",  justify="right", min_width=12, style=MUTED)
    table.add_column("Value",     justify="right", min_width=12, style=HEAD)
    table.add_column("Unrealised", justify="right", min_width=12)
    table.add_column("Return",    justify="right", min_width=8)
    table.add_column("Days",      justify="right", style=MUTED)
    table.add_column("Weight",    justify="right", min_width=7)

    for row in report.holdings:
        live = f"[{GAIN}]●[/{GAIN}]" if row.is_live else f"[{MUTED}]○[/{MUTED}]"
        table.add_row(
            live, row.ticker,
            f"{row.quantity:,.4f}",
            _cur(row.invested, sym),
            _cur(row.market_value, sym),
            _colour(row.unrealized, _cur(row.unrealized, sym)),
            _colour(row.net_return_pct, _pct(row.net_return_pct)),
            str(row.days_held),
            f"{row.portfolio_pct:.1f}%",
        )

    console.print()
    console.print(table)

    parts = [
        f"[{MUTED}]Invested[/{MUTED}]  [white]{_cur(report.total_invested, sym)}[/white]",
        f"[{MUTED}]Value[/{MUTED}]  [bold white]{_cur(report.current_value, sym)}[/bold white]",
        f"[{MUTED}]Unrealised[/{MUTED}]  {_colour(report.unrealized_pnl, _cur(report.unrealized_pnl, sym))}",
    ]
    console.print("  " + "     ".join(parts))

    if report.asset_class.is_equity:
        parts = [
            f"[{MUTED}]Realised[/{MUTED}]  {_colour(report.realized_pnl, _cur(report.realized_pnl, sym))}",
            f"[{MUTED}]Charges[/{MUTED}]  [white]{_cur(report.charges, sym)}[/white]",
            f"[{MUTED}]Net realised[/{MUTED}]  {_colour(report.net_realized_pnl, _cur(report.net_realized_pnl, sym))}",
            f"[{MUTED}]Dividends[/{MUTED}]  [white]{_cur(report.dividends, sym)}[/white]",
        ]
        console.print("  " + "     ".join(parts))
        console.print(f"  [{MUTED}]XIRR[/{MUTED}]  {_colour(report.xirr, _pct(report.xirr))}"
                      f"     [{MUTED}]Win rate[/{MUTED}]  [white]{report.win_rate:.1f}%[/white]")
    if not report.has_live_data:
        console.print(f"  [{MUTED}]No market prices imported; values are at cost.[/{MUTED}]")
    console.print()


# ── Consolidated net worth ────────────────────────────────────────────────────

def print_networth(net: NetWorth) -> None:
    lines = [
        f"[{MUTED}]Net asset value[/{MUTED}]  [bold white]{_cur(net.net_asset_value)}[/bold white]",
        f"[{MUTED}]Net cash[/{MUTED}]         [white]{_cur(net.net_cash)}[/white]",
        f"[{MUTED}]Net return[/{MUTED}]       {_colour(net.net_return_abs, _cur(net.net_return_abs))}"
        f"  {_colour(net.net_return_pct, _pct(net.net_return_pct))}",
        f"[{MUTED}]EUR/INR[/{MUTED}]          [white]{net.conversion_rate:,.2f}[/white]",
    ]
    console.print(Panel("\n".join(lines), title="[bold white]Net worth[/bold white]",
                        border_style=ACCENT, padding=(1, 2)))

    total = sum(v for v in net.allocations.values() if v > 0)
    if total <= 0:
        return
    table = _table()
    table.add_column("Bucket", min_width=20)
    table.add_column("Value",  justify="right", min_width=13)
    table.add_column("",       min_width=36)
    for bucket, value in sorted(net.allocations.items(), key=lambda x: -x[1]):
        pct  = max(value, 0) / total * 100
        fill = round(pct / 100 * BAR_WIDTH)
        bar  = (
            f"[{ACCENT}]{'█' * fill}[/{ACCENT}]"
            f"[{MUTED}]{'░' * (BAR_WIDTH - fill)}[/{MUTED}]"
            f"  [{MUTED}]{pct:.1f}%[/{MUTED}]"
        )
        table.add_row(bucket, _cur(value), bar)
    console.print(table)


# ── Watchlist ─────────────────────────────────────────────────────────────────

_STATUS_STYLE = {
    SignalStatus.TRIM:       LOSS,
    SignalStatus.ACCUMULATE: f"bold {GAIN}",
    SignalStatus.MONITOR:    "orange1",
    SignalStatus.HOLD:       MUTED,
}


def print_watchlist(signals: List[WatchlistSignal]) -> None:
    if not signals:
        console.print(f"\n  [{MUTED}]No holdings or watchlist entries.[/{MUTED}]\n")
        return
    table = _table()
    table.add_column("Id",        style=MUTED)
    table.add_column("Ticker",    style=HEAD)
    table.add_column("Price",     justify="right")
    table.add_column("Target",    justify="right")
    table.add_column("MoS",       justify="right")
    table.add_column("Ratio",     justify="right")
    table.add_column("Weight",    justify="right")
    table.add_column("Last buy",  justify="right", style=MUTED)
    table.add_column("Days",      justify="right", style=MUTED)
    table.add_column("Status")
    for s in signals:
        style = _STATUS_STYLE[s.status]
        table.add_row(
            s.item.id if s.item else "",
            s.ticker,
            f"{s.price:,.2f}" if s.price else "-",
            f"{s.target:,.2f}" + ("*" if s.has_supports else "") if s.target else "-",
            _colour(s.margin_of_safety, _pct(s.margin_of_safety)) if s.item and s.item.intrinsic_value else "-",
            f"{s.call_ratio:.2f}" if s.call_ratio else "-",
            f"{s.weight:.1f}%",
            f"{s.latest_buy_price:,.2f}" if s.latest_buy_price else "-",
            str(s.days_held) if s.days_held is not None else "-",
            f"[{style}]{s.status.value}[/{style}]",
        )
    console.print()
    console.print(table)
    console.print(f"  [{MUTED}]* target taken from the nearest support level[/{MUTED}]")
