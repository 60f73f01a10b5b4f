"""
folio/cli.py
============
The interactive command-line interface.

One asset class is active at a time; statements are imported into it
from a local file or a published sheet, and its report is rendered with
folio.display. Logging goes through rich so warnings from the parsers
and the store line up with the rest of the output.
"""

import logging
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from folio import display, exporter
from folio.analyst import TextGenerator, ask_analyst
from folio.config import (EUR_INR_SHEET_URL, GOLD_ETF_SHEET_URL,
                          MUTUAL_FUND_SHEET_URL)
from folio.db import Database
from folio.models import AssetClass, DocumentType
from folio.portfolio import Portfolio, net_worth
from folio.prices import QuoteFetcher, fetch_conversion_rate

console = Console()

# Document types that make sense per asset class
DOC_TYPES = {
    AssetClass.INDIAN_EQUITY:        [DocumentType.TRADE_HISTORY, DocumentType.PNL,
                                      DocumentType.LEDGER, DocumentType.DIVIDEND,
                                      DocumentType.MARKET_DATA],
    AssetClass.INTERNATIONAL_EQUITY: [DocumentType.TRADE_HISTORY, DocumentType.LEDGER,
                                      DocumentType.PORTFOLIO_SNAPSHOT, DocumentType.MARKET_DATA],
    AssetClass.MUTUAL_FUNDS:         [DocumentType.HOLDINGS],
    AssetClass.GOLD_ETF:             [DocumentType.HOLDINGS],
    AssetClass.CASH_EQUIVALENTS:     [],
}

DEFAULT_SHEETS = {
    AssetClass.MUTUAL_FUNDS: MUTUAL_FUND_SHEET_URL,
    AssetClass.GOLD_ETF:     GOLD_ETF_SHEET_URL,
}


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]",
                        handlers=[RichHandler(console=console, rich_tracebacks=True)])


class CLI:
    """Main command-line interface class."""

    def __init__(self, db: Database = None, generator: Optional[TextGenerator] = None):
        self.db          = db or Database()
        self.generator   = generator
        self.asset_class = AssetClass.INDIAN_EQUITY

    @property
    def portfolio(self) -> Portfolio:
        return Portfolio(self.db, self.asset_class)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _choose(self, title: str, options: List[str]) -> int:
        for n, label in enumerate(options, 1):
            console.print(f"  {n}. {label}")
        choice = Prompt.ask(title, choices=[str(n) for n in range(1, len(options) + 1)])
        return int(choice) - 1

    def _prompt_float(self, prompt: str, default: float = 0.0) -> float:
        """Keep asking until the user enters a number."""
        while True:
            raw = Prompt.ask(prompt, default=str(default))
            try:
                return float(raw)
            except ValueError:
                console.print("[red]That doesn't look like a number. Try again.[/red]")

    def _choose_doc_type(self):
        types = DOC_TYPES[self.asset_class]
        if not types:
            console.print("[yellow]Cash accounts are entered manually (menu 6).[/yellow]")
            return None
        if len(types) == 1:
            return types[0]
        return types[self._choose("Document type", [t.value.replace("_", " ").title() for t in types])]

    # -----------------------------------------------------------------------
    # Menu actions
    # -----------------------------------------------------------------------

    def switch_asset_class(self):
        classes = list(AssetClass)
        self.asset_class = classes[self._choose("Asset class",
                                                [c.value.replace("_", " ").title() for c in classes])]
        console.print(f"[green]✓ Active: {self.asset_class.value}[/green]")

    def import_file(self):
        doc_type = self._choose_doc_type()
        if doc_type is None:
            return
        path = Path(Prompt.ask("CSV file path").strip().strip('"'))
        try:
            text = path.read_text(encoding="utf-8-sig")
        except OSError as e:
            console.print(f"[red]Could not read {path}: {e}[/red]")
            return
        display.print_parse_result(self.portfolio.import_statement(text, doc_type))

    def import_url(self):
        doc_type = self._choose_doc_type()
        if doc_type is None:
            return
        stored = self.db.get(self.asset_class.prefix, "sheet_id") or DEFAULT_SHEETS.get(self.asset_class, "")
        url = Prompt.ask("Published sheet URL", default=stored or None)
        if not url:
            return
        display.print_parse_result(self.portfolio.import_from_url(url, doc_type))

    def view_report(self):
        display.print_report(self.portfolio.metrics())

    def view_networth(self):
        rate = fetch_conversion_rate(EUR_INR_SHEET_URL)
        display.print_networth(net_worth(self.db, rate))

    def manage_watchlist(self):
        p = self.portfolio
        display.print_watchlist(p.watchlist_signals())
        action = self._choose("Action", ["Add", "Remove", "Back"])
        if action == 0:
            ticker    = Prompt.ask("Ticker").upper()
            entry     = self._prompt_float("Desired entry price")
            intrinsic = self._prompt_float("Intrinsic value")
            link      = Prompt.ask("Research link", default="")
            raw       = Prompt.ask("Support levels (space separated, up to 3)", default="")
            try:
                levels = [float(x) for x in raw.split()]
                p.add_watchlist_item(ticker, entry, intrinsic, link, levels)
                console.print(f"[green]✓ {ticker} added.[/green]")
            except ValueError as e:
                console.print(f"[red]{e}[/red]")
        elif action == 1:
            item_id = Prompt.ask("Id to remove")
            if p.remove_watchlist_item(item_id):
                console.print("[green]✓ Removed.[/green]")
            else:
                console.print(f"[red]'{item_id}' not found.[/red]")

    def manage_cash(self):
        p = Portfolio(self.db, AssetClass.CASH_EQUIVALENTS)
        display.print_report(p.metrics())
        action = self._choose("Action", ["Add salary / deposit", "Set balance", "Delete account", "Back"])
        if action == 0:
            account = Prompt.ask("Account")
            amount  = self._prompt_float("Amount")
            try:
                h = p.add_salary(account, amount)
                console.print(f"[green]✓ {h.account}: {h.value:,.2f}[/green]")
            except ValueError as e:
                console.print(f"[red]{e}[/red]")
        elif action in (1, 2):
            state = p.load_state()
            for h in state.cash_holdings:
                console.print(f"  [cyan]{h.id}[/cyan]  {h.account}  {h.value:,.2f}")
            holding_id = Prompt.ask("Account id")
            ok = (p.update_cash_holding(holding_id, self._prompt_float("New balance"))
                  if action == 1 else p.delete_cash_holding(holding_id))
            console.print("[green]✓ Saved.[/green]" if ok else f"[red]'{holding_id}' not found.[/red]")

    def refresh_quotes(self):
        # International holdings are statement product names, not exchange symbols
        if self.asset_class != AssetClass.INDIAN_EQUITY:
            console.print("[yellow]Live quotes are only available for Indian equity.[/yellow]")
            return
        tickers = [h.ticker for h in self.portfolio.metrics().holdings if h.ticker != "CASH BALANCE"]
        if not tickers:
            console.print("[yellow]No open positions.[/yellow]")
            return
        console.print("[dim]Fetching live prices...[/dim]")
        quotes = QuoteFetcher(self.db, self.asset_class).get_prices(tickers)
        found  = sum(1 for q in quotes.values() if q is not None)
        console.print(f"[green]✓ {found}/{len(tickers)} prices updated.[/green]")

    def ask_question(self) -> str:
        question = Prompt.ask("Ask the analyst about your trades")
        answer   = ask_analyst(self.portfolio.load_state().trades, question, self.generator)
        console.print(Panel(answer, title="Analyst", border_style="grey39", padding=(0, 1)))
        return answer

    def set_market_date(self):
        value = Prompt.ask("Market date (YYYY-MM-DD)")
        self.portfolio.set_market_date(value)
        console.print(f"[green]✓ Market date set to {value}[/green]")

    def export_data(self):
        report = self.portfolio.metrics()
        if not report.holdings:
            console.print("[yellow]Nothing to export.[/yellow]")
            return
        choice = self._choose("Format", ["Excel (.xlsx)", "CSV", "Both"])
        if choice in (0, 2):
            console.print(f"[green]✓ Excel saved: {exporter.export_to_excel(report)}[/green]")
        if choice in (1, 2):
            console.print(f"[green]✓ CSV saved:   {exporter.export_to_csv(report)}[/green]")

    def clear_asset_class(self):
        if Confirm.ask(f"[red]Delete ALL data for {self.asset_class.value}? This cannot be undone.[/red]"):
            self.portfolio.clear_all()
            console.print("[green]✓ Cleared.[/green]")

    # -----------------------------------------------------------------------
    # Main loop
    # -----------------------------------------------------------------------

    MENU = """
[grey39]┌─────────────────────────────────┐[/grey39]
[grey39]│[/grey39]  [steel_blue1]Folio[/steel_blue1]  [grey62]{active:<24}[/grey62][grey39]│[/grey39]
[grey39]├─────────────────────────────────┤[/grey39]
[grey39]│[/grey39]  [white]1[/white]  [grey62]View report[/grey62]                 [grey39]│[/grey39]
[grey39]│[/grey39]  [white]2[/white]  [grey62]Import CSV file[/grey62]             [grey39]│[/grey39]
[grey39]│[/grey39]  [white]3[/white]  [grey62]Import published sheet[/grey62]      [grey39]│[/grey39]
[grey39]│[/grey39]  [white]4[/white]  [grey62]Consolidated net worth[/grey62]      [grey39]│[/grey39]
[grey39]│[/grey39]  [white]5[/white]  [grey62]Watchlist[/grey62]                   [grey39]│[/grey39]
[grey39]│[/grey39]  [white]6[/white]  [grey62]Cash accounts[/grey62]               [grey39]│[/grey39]
[grey39]│[/grey39]  [white]7[/white]  [grey62]Refresh live quotes[/grey62]         [grey39]│[/grey39]
[grey39]│[/grey39]  [white]8[/white]  [grey62]Export  (Excel / CSV)[/grey62]       [grey39]│[/grey39]
[grey39]│[/grey39]  [white]9[/white]  [grey62]Set market date[/grey62]             [grey39]│[/grey39]
[grey39]│[/grey39]  [white]i[/white]  [grey62]Ask the analyst[/grey62]             [grey39]│[/grey39]
[grey39]│[/grey39]  [white]a[/white]  [grey62]Switch asset class[/grey62]          [grey39]│[/grey39]
[grey39]│[/grey39]  [white]c[/white]  [grey62]Clear asset class[/grey62]           [grey39]│[/grey39]
[grey39]│[/grey39]  [white]q[/white]  [grey62]Quit[/grey62]                        [grey39]│[/grey39]
[grey39]└─────────────────────────────────┘[/grey39]"""

    def run(self):
        console.print(Panel(
            "[bold white]Folio[/bold white]  [grey62]statement reconciler · FIFO · XIRR[/grey62]",
            border_style="grey39",
            padding=(0, 2),
        ))

        actions = {
            "1": self.view_report,
            "2": self.import_file,
            "3": self.import_url,
            "4": self.view_networth,
            "5": self.manage_watchlist,
            "6": self.manage_cash,
            "7": self.refresh_quotes,
            "8": self.export_data,
            "9": self.set_market_date,
            "i": self.ask_question,
            "a": self.switch_asset_class,
            "c": self.clear_asset_class,
        }
        while True:
            console.print(self.MENU.format(active=self.asset_class.value[:24]))
            choice = Prompt.ask("Choice", default="1").strip().lower()

            if choice == "q":
                console.print("[cyan]Goodbye! 👋[/cyan]")
                break
            action = actions.get(choice)
            if action is None:
                console.print("[red]Invalid choice. Please try again.[/red]")
            else:
                action()
