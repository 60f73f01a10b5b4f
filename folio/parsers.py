"""
folio/parsers.py  —  Statement parsers

One parser per document type and market convention. Each takes the grid
produced by tabular.split_delimited and returns a ParseResult:

  - success=True  → `data` holds the complete replacement record set
  - success=False → nothing was found; the caller keeps its prior state

Malformed rows are skipped silently. Nothing in here raises for bad data;
the record count in the message is the only hint that rows were dropped.

Conventions handled:
  - Indian broker exports (trade book, P&L report, ledger, dividend report)
  - Degiro-style French exports (Transactions, Compte, Portefeuille)
  - Generic ticker/price sheets (market data, published spreadsheets)
  - Fund holdings sheets for mutual funds and gold ETFs
"""

import logging
import uuid
from datetime import date
from typing import Dict, List, Optional

from folio.fx import RateLookup, fixed_rate
from folio.models import (AssetClass, DividendRecord, DocumentType, FundHolding,
                          GoldHolding, LedgerRecord, MutualFundHolding,
                          ParseResult, PnLRecord, SummaryPatch, Trade, TradeSide)
from folio.normalize import clean, normalize_header, parse_flexible_date, parse_locale_number
from folio.tabular import (Grid, cell, find_footer_value, find_header_row,
                           resolve_column, split_delimited)

logger = logging.getLogger(__name__)

UNKNOWN_TYPE = "Unknown upload type."

# ── Column synonyms ───────────────────────────────────────────────────────────
TICKER_KEYWORDS = ["Ticker", "Symbol", "Stock", "Name", "Scrip", "Product"]
PRICE_KEYWORDS  = ["Price", "Close", "LTP", "Rate", "Value"]

_LEDGER_TYPES = [
    ("CHARGE",     ["charge", "brokerage", "gst", "stamp", "stt", "fee", "dp "]),
    ("DEPOSIT",    ["deposit", "funds added", "pay in", "payin", "received"]),
    ("WITHDRAWAL", ["withdraw", "payout", "pay out", "funds withdrawn"]),
    ("TRADE",      ["trade", "bill", "settlement", "bought", "sold"]),
]


def _new_id() -> str:
    return uuid.uuid4().hex[:9]


def _result(grid: Grid, **kwargs) -> ParseResult:
    return ParseResult(preview=[[clean(c) for c in row] for row in grid[:5]], **kwargs)


def _fail(message: str) -> ParseResult:
    return ParseResult(success=False, message=message)


def _make_trade(date_str: str, ticker: str, qty: float, price: float,
                side: TradeSide, net_amount: Optional[float] = None) -> Trade:
    if net_amount is None:
        net_amount = -(qty * price) if side == TradeSide.BUY else qty * price
    return Trade(id=_new_id(), date=date_str, ticker=ticker, side=side,
                 quantity=qty, price=price, net_amount=net_amount)


def classify_ledger_entry(description: str) -> str:
    text = normalize_header(description)
    for kind, keywords in _LEDGER_TYPES:
        if any(k in text for k in keywords):
            return kind
    return "OTHER"


# ── Market prices ─────────────────────────────────────────────────────────────

def parse_market_prices(grid: Grid) -> ParseResult:
    """Ticker → positive price map from any sheet with ticker and price columns."""
    header_idx = -1
    tickers = [normalize_header(k) for k in TICKER_KEYWORDS]
    prices  = [normalize_header(k) for k in PRICE_KEYWORDS]
    for i, row in enumerate(grid[:50]):
        row_text = " ".join(normalize_header(clean(c)) for c in row)
        if any(k in row_text for k in tickers) and any(k in row_text for k in prices):
            header_idx = i
            break
    if header_idx == -1:
        return _fail("Headers not found. Expecting Ticker and Price.")

    headers   = grid[header_idx]
    idx_tick  = resolve_column(headers, TICKER_KEYWORDS)
    idx_price = resolve_column(headers, PRICE_KEYWORDS)
    if idx_tick == -1 or idx_price == -1:
        return _fail("Ticker or Price columns not identified.")

    quotes: Dict[str, float] = {}
    for row in grid[header_idx + 1:]:
        ticker = cell(row, idx_tick).upper()
        price  = abs(parse_locale_number(cell(row, idx_price)))
        if ticker and price > 0:
            quotes[ticker] = price

    if not quotes:
        return _fail("No valid price data extracted.")
    return _result(grid, success=True, data=quotes, headers=[clean(h) for h in headers],
                   message=f"Updated prices for {len(quotes)} stocks.")


# ── Indian broker exports ─────────────────────────────────────────────────────

def parse_domestic_trades(grid: Grid) -> ParseResult:
    header_idx = find_header_row(grid, ["Date", "Price"])
    if header_idx == -1:
        return _fail("Header not found. Expecting 'Date' and 'Price'.")

    headers    = grid[header_idx]
    idx_date   = resolve_column(headers, ["Date", "Time"])
    idx_ticker = resolve_column(headers, ["Symbol", "Scrip", "Name", "Ticker"])
    idx_type   = resolve_column(headers, ["Type", "Buy/Sell", "Side"])
    idx_qty    = resolve_column(headers, ["Qty", "Quantity"])
    idx_price  = resolve_column(headers, ["Price", "Rate", "Trade Price"])
    idx_net    = resolve_column(headers, ["Net Amount", "Net Value"])
    logger.debug("domestic trades: header row %d, date=%d ticker=%d qty=%d price=%d",
                 header_idx, idx_date, idx_ticker, idx_qty, idx_price)

    trades: List[Trade] = []
    for row in grid[header_idx + 1:]:
        date_str = parse_flexible_date(cell(row, idx_date))
        if not date_str:
            continue
        ticker = cell(row, idx_ticker)
        qty    = abs(parse_locale_number(cell(row, idx_qty)))
        price  = abs(parse_locale_number(cell(row, idx_price)))
        if not ticker or qty <= 0 or price <= 0:
            continue

        # "B", "BUY", "P"(urchase) → BUY; anything else is a sell
        type_str = cell(row, idx_type).upper() if idx_type != -1 else "BUY"
        side = TradeSide.BUY if ("B" in type_str or "P" in type_str) else TradeSide.SELL

        net_text = cell(row, idx_net)
        net = parse_locale_number(net_text) if net_text else None
        if net is not None:
            net = -abs(net) if side == TradeSide.BUY else abs(net)
        trades.append(_make_trade(date_str, ticker, qty, price, side, net))

    if not trades:
        return _fail("No valid trades found.")
    return _result(grid, success=True, data=trades, headers=[clean(h) for h in headers],
                   message=f"Imported {len(trades)} trades.")


# Summary block under the table. Whole-label match: "TOTALENERGIES" is a scrip.
_PNL_FOOTER_LABELS = {"total", "total charges", "charges", "net p&l",
                      "net realised p&l", "net realized p&l"}


def parse_pnl_report(grid: Grid) -> ParseResult:
    total_charges = find_footer_value(grid, ["Total Charges", "Charges"])
    reported_net  = find_footer_value(grid, ["Net P&L", "Net Realised P&L"])

    header_idx = find_header_row(grid, ["Scrip", "Qty"])
    if header_idx == -1:
        return _fail("P&L headers not found.")

    headers   = grid[header_idx]
    idx_scrip = resolve_column(headers, ["Scrip", "Symbol", "Stock"])
    idx_bq    = resolve_column(headers, ["Buy Qty"])
    idx_bp    = resolve_column(headers, ["Buy Avg", "Buy Price"])
    idx_sq    = resolve_column(headers, ["Sell Qty"])
    idx_sp    = resolve_column(headers, ["Sell Avg", "Sell Price"])
    idx_unrl  = resolve_column(headers, ["Unrealized", "Unrealised"])
    idx_real  = resolve_column(headers, ["Realized", "Realised"], exclude=[idx_unrl])

    def num(row, idx):
        return parse_locale_number(cell(row, idx)) if idx != -1 else 0.0

    records: List[PnLRecord] = []
    for row in grid[header_idx + 1:]:
        scrip = cell(row, idx_scrip)
        if not scrip or normalize_header(scrip) in _PNL_FOOTER_LABELS:
            continue
        buy_qty, buy_avg   = num(row, idx_bq), num(row, idx_bp)
        sell_qty, sell_avg = num(row, idx_sq), num(row, idx_sp)
        records.append(PnLRecord(
            scrip_name=scrip,
            buy_qty=buy_qty, avg_buy_price=buy_avg,
            buy_value=buy_qty * buy_avg if idx_bq != -1 and idx_bp != -1 else 0.0,
            sell_qty=sell_qty, avg_sell_price=sell_avg,
            sell_value=sell_qty * sell_avg if idx_sq != -1 and idx_sp != -1 else 0.0,
            realized_pnl=num(row, idx_real),
            unrealized_pnl=num(row, idx_unrl),
        ))

    if not records:
        return _fail("P&L headers not found.")
    return _result(grid, success=True, data=records, headers=[clean(h) for h in headers],
                   message=f"Imported {len(records)} P&L records.",
                   summary=SummaryPatch(charges=total_charges or 0.0,
                                        net_pnl=reported_net or 0.0))


def parse_ledger(grid: Grid) -> ParseResult:
    closing = find_footer_value(grid, ["Closing Balance", "Balance"])

    header_idx = find_header_row(grid, ["Date", "Debit"])
    if header_idx == -1:
        return _fail("Ledger headers not found.")

    headers    = grid[header_idx]
    idx_date   = resolve_column(headers, ["Date", "Posting"])
    idx_desc   = resolve_column(headers, ["Description", "Narration"])
    idx_debit  = resolve_column(headers, ["Debit"])
    idx_credit = resolve_column(headers, ["Credit"])
    idx_bal    = resolve_column(headers, ["Balance", "Net"])

    records: List[LedgerRecord] = []
    for row in grid[header_idx + 1:]:
        date_str = parse_flexible_date(cell(row, idx_date))
        if not date_str:
            continue
        description = cell(row, idx_desc)
        records.append(LedgerRecord(
            date=date_str,
            description=description,
            credit=parse_locale_number(cell(row, idx_credit)),
            debit=parse_locale_number(cell(row, idx_debit)),
            balance=parse_locale_number(cell(row, idx_bal)),
            type=classify_ledger_entry(description),
        ))

    return _result(grid, success=True, data=records, headers=[clean(h) for h in headers],
                   message=f"Ledger imported ({len(records)} rows).",
                   summary=SummaryPatch(cash=closing or 0.0))


_DIVIDEND_HEADERS = [["Date", "Amount"], ["Date", "Net"], ["Payout", "Amount"], ["Date", "Dividend"]]


def parse_dividends(grid: Grid, today: Optional[date] = None) -> ParseResult:
    """
    Per-payment dividend rows. When there is no usable table but the footer
    reports a total, a single aggregate record dated today stands in for it.
    """
    total = find_footer_value(grid, ["Total Dividend Earned", "Total Dividend", "Total"])

    header_idx = -1
    for keywords in _DIVIDEND_HEADERS:
        header_idx = find_header_row(grid, keywords)
        if header_idx != -1:
            break
    if header_idx == -1:
        header_idx = find_header_row(grid, ["Date"])

    records: List[DividendRecord] = []
    headers: List[str] = []
    if header_idx != -1:
        headers   = grid[header_idx]
        idx_date  = resolve_column(headers, ["Date", "Payout Date"])
        idx_scrip = resolve_column(headers, ["Symbol", "Scrip", "Security Name"])
        idx_amt   = resolve_column(headers, ["Amount", "Net", "Net Amount", "Dividend Amount", "Credit"])
        if idx_date != -1 and idx_amt != -1:
            for row in grid[header_idx + 1:]:
                date_str = parse_flexible_date(cell(row, idx_date))
                if not date_str:
                    continue
                amount = abs(parse_locale_number(cell(row, idx_amt)))
                if amount <= 0:
                    continue
                scrip = cell(row, idx_scrip) if idx_scrip != -1 else "Unknown"
                records.append(DividendRecord(date=date_str, scrip_name=scrip, amount=amount))

    if records:
        return _result(grid, success=True, data=records, headers=[clean(h) for h in headers],
                       message=f"Imported {len(records)} dividend records.",
                       summary=SummaryPatch(dividends=total or 0.0))

    if total is not None and total > 0:
        stamp = (today or date.today()).isoformat()
        synthetic = [DividendRecord(date=stamp, scrip_name="Total (Imported)", amount=total)]
        return _result(grid, success=True, data=synthetic,
                       message=f"Imported Total Dividend of {total:,.2f}",
                       summary=SummaryPatch(dividends=total))
    return _fail("No dividend rows or total found.")


def parse_indian_equity(doc_type: DocumentType, grid: Grid) -> ParseResult:
    if doc_type == DocumentType.TRADE_HISTORY:
        return parse_domestic_trades(grid)
    if doc_type == DocumentType.PNL:
        return parse_pnl_report(grid)
    if doc_type == DocumentType.LEDGER:
        return parse_ledger(grid)
    if doc_type == DocumentType.DIVIDEND:
        return parse_dividends(grid)
    return _fail(UNKNOWN_TYPE)


# ── International (Degiro-style, French locale) ──────────────────────────────

def parse_international_trades(grid: Grid) -> ParseResult:
    """
    Transactions export: separate Date / Heure columns, the product name as
    the ticker, and a signed quantity (negative = sell). Rows come
    newest-first; they are emitted oldest-first. Fee columns are summed
    into the charges figure.
    """
    header_idx = find_header_row(grid, ["Date", "Produit", "Quantité"])
    if header_idx == -1:
        return _fail("Header not found (Degiro).")

    headers    = grid[header_idx]
    idx_date   = resolve_column(headers, ["Date"])
    idx_time   = resolve_column(headers, ["Heure", "Time"])
    idx_ticker = resolve_column(headers, ["Produit", "Product"])
    idx_qty    = resolve_column(headers, ["Quantité", "Quantity", "Quantite"])
    idx_price  = resolve_column(headers, ["Cours", "Price"])
    idx_net    = resolve_column(headers, ["Montant négocié EUR", "Montant negocie EUR",
                                          "Montant EUR", "Net Amount", "Total"])
    idx_autofx = resolve_column(headers, ["Frais conversion AutoFX", "AutoFX"])
    idx_broker = resolve_column(headers, ["Frais de courtage et/ou de parties",
                                          "Courtage", "Brokerage", "Commission"])

    trades: List[Trade] = []
    fees = 0.0
    for row in reversed(grid[header_idx + 1:]):
        date_str = parse_flexible_date(cell(row, idx_date))
        if not date_str:
            continue
        time_str = cell(row, idx_time)
        if ":" in time_str:
            date_str = f"{date_str}T{time_str}"

        fees += abs(parse_locale_number(cell(row, idx_autofx)))
        fees += abs(parse_locale_number(cell(row, idx_broker)))

        ticker  = cell(row, idx_ticker)
        signed  = parse_locale_number(cell(row, idx_qty))
        qty     = abs(signed)
        price   = abs(parse_locale_number(cell(row, idx_price)))
        side    = TradeSide.BUY if signed > 0 else TradeSide.SELL
        if not ticker or qty <= 0 or price <= 0:
            continue

        net_text = cell(row, idx_net)
        net = parse_locale_number(net_text) if net_text else None
        trades.append(_make_trade(date_str, ticker, qty, price, side, net))

    if not trades:
        return _fail("No trades parsed.")
    return _result(grid, success=True, data=trades, headers=[clean(h) for h in headers],
                   message=f"Imported {len(trades)} trades.",
                   summary=SummaryPatch(charges=fees))


def parse_international_dividends(grid: Grid, rate: RateLookup = fixed_rate) -> ParseResult:
    """
    Account ledger ("Compte") → dividend records. Only rows whose
    description is exactly "Dividende" count. The currency sits in the
    "Mouvements" column with the amount in the cell right after it; older
    exports have separate Montant / Devise columns instead.
    """
    header_idx = find_header_row(grid, ["Date", "Description"])
    if header_idx == -1:
        return _fail("Ledger/Dividend parsing failed.")

    headers      = grid[header_idx]
    idx_date     = resolve_column(headers, ["Date", "Value Date"])
    idx_desc     = resolve_column(headers, ["Description"])
    idx_product  = resolve_column(headers, ["Produit", "Product"])
    idx_movement = resolve_column(headers, ["Mouvements", "Movement", "Change"])
    idx_amount   = resolve_column(headers, ["Montant", "Amount"])
    idx_currency = resolve_column(headers, ["Devise", "Currency"])

    records: List[DividendRecord] = []
    for row in grid[header_idx + 1:]:
        if cell(row, idx_desc) != "Dividende":
            continue
        date_str = parse_flexible_date(cell(row, idx_date))
        if not date_str:
            continue
        scrip = cell(row, idx_product) if idx_product != -1 else "Unknown"

        if idx_movement != -1:
            currency = (cell(row, idx_movement) or "EUR").upper()
            amount   = parse_locale_number(cell(row, idx_movement + 1))
        else:
            currency = (cell(row, idx_currency) or "EUR").upper() if idx_currency != -1 else "EUR"
            amount   = parse_locale_number(cell(row, idx_amount))

        if amount != 0:
            records.append(DividendRecord(date=date_str, scrip_name=scrip,
                                          amount=abs(amount) * rate(currency)))

    if not records:
        return _fail("Ledger/Dividend parsing failed.")
    return _result(grid, success=True, data=records, headers=[clean(h) for h in headers],
                   message=f"Imported {len(records)} Dividend records.",
                   summary=SummaryPatch(dividends=0.0))


def parse_portfolio_snapshot(grid: Grid) -> ParseResult:
    """Portefeuille export: cash in a fixed cell (row 2, column 7), then closing prices."""
    cash = 0.0
    if len(grid) > 1 and len(grid[1]) > 6:
        cash = parse_locale_number(cell(grid[1], 6))

    header_idx = find_header_row(grid, ["Produit", "Clôture"])
    if header_idx == -1:
        return _fail("Portfolio headers not found.")

    headers     = grid[header_idx]
    idx_product = resolve_column(headers, ["Produit", "Product"])
    idx_price   = resolve_column(headers, ["Clôture", "Close", "Price"])

    quotes: Dict[str, float] = {}
    for row in grid[header_idx + 1:]:
        ticker = cell(row, idx_product).upper()
        price  = abs(parse_locale_number(cell(row, idx_price)))
        if ticker and price > 0:
            quotes[ticker] = price

    if not quotes:
        return _fail("No portfolio prices found.")
    return _result(grid, success=True, data=quotes, headers=[clean(h) for h in headers],
                   message=f"Updated prices for {len(quotes)} stocks.",
                   summary=SummaryPatch(cash=cash))


def parse_international_equity(doc_type: DocumentType, grid: Grid,
                               rate: RateLookup = fixed_rate) -> ParseResult:
    if doc_type == DocumentType.TRADE_HISTORY:
        return parse_international_trades(grid)
    if doc_type == DocumentType.LEDGER:
        return parse_international_dividends(grid, rate)
    if doc_type == DocumentType.PORTFOLIO_SNAPSHOT:
        return parse_portfolio_snapshot(grid)
    return _fail(UNKNOWN_TYPE)


# ── Fund holdings sheets (mutual funds, gold ETFs) ───────────────────────────

_FUND_NAME     = ["Scheme Name", "Scheme", "Fund", "Name", "Product", "Ticker", "Symbol"]
_FUND_INVESTED = ["Invested", "Investment", "Cost"]
_FUND_VALUE    = ["Current Value", "Market Value", "Present Value", "Value"]
_FUND_UNITS    = ["Units", "Quantity", "Qty"]
_FUND_DATE     = ["Last Purchase", "Latest Buy", "Purchase Date", "Date"]


def parse_fund_holdings(asset_class: AssetClass, grid: Grid) -> ParseResult:
    invested_keys = [normalize_header(k) for k in _FUND_INVESTED]
    value_keys    = [normalize_header(k) for k in _FUND_VALUE]

    header_idx = -1
    for i, row in enumerate(grid[:50]):
        row_text = " ".join(normalize_header(clean(c)) for c in row)
        if any(k in row_text for k in invested_keys) and any(k in row_text for k in value_keys):
            header_idx = i
            break
    if header_idx == -1:
        return _fail("Holdings headers not found. Expecting Invested and Value.")

    headers      = grid[header_idx]
    idx_name     = resolve_column(headers, _FUND_NAME)
    idx_invested = resolve_column(headers, _FUND_INVESTED)
    # "Value" must not land on the invested column ("Investment Value")
    idx_value    = resolve_column(headers, _FUND_VALUE, exclude=[idx_invested])
    idx_units    = resolve_column(headers, _FUND_UNITS)
    idx_date     = resolve_column(headers, _FUND_DATE)

    cls = GoldHolding if asset_class == AssetClass.GOLD_ETF else MutualFundHolding
    holdings: List[FundHolding] = []
    for row in grid[header_idx + 1:]:
        name = cell(row, idx_name)
        if not name or normalize_header(name) == "total":
            continue
        invested = parse_locale_number(cell(row, idx_invested))
        value    = parse_locale_number(cell(row, idx_value))
        if invested == 0 and value == 0:
            continue
        holdings.append(cls(
            name=name,
            invested=invested,
            market_value=value,
            units=parse_locale_number(cell(row, idx_units)),
            latest_buy_date=parse_flexible_date(cell(row, idx_date)) or None,
        ))

    if not holdings:
        return _fail("No fund holdings found.")
    return _result(grid, success=True, data=holdings, headers=[clean(h) for h in headers],
                   message=f"Imported {len(holdings)} holdings.")


# ── Dispatcher ────────────────────────────────────────────────────────────────

def parse_statement(asset_class: AssetClass, doc_type: DocumentType, text: str,
                    rate: RateLookup = fixed_rate) -> ParseResult:
    """Route raw statement text to the parser for this asset class and document type."""
    grid = split_delimited(text)
    if not grid:
        return _fail("The file is empty.")

    if asset_class in (AssetClass.MUTUAL_FUNDS, AssetClass.GOLD_ETF):
        result = parse_fund_holdings(asset_class, grid)
    elif asset_class == AssetClass.CASH_EQUIVALENTS:
        return _fail("Cash equivalents are entered manually, not imported.")
    elif doc_type == DocumentType.MARKET_DATA:
        result = parse_market_prices(grid)
    elif asset_class == AssetClass.INDIAN_EQUITY:
        result = parse_indian_equity(doc_type, grid)
    elif asset_class == AssetClass.INTERNATIONAL_EQUITY:
        result = parse_international_equity(doc_type, grid, rate)
    else:
        return _fail(UNKNOWN_TYPE)

    if result.success:
        logger.info("Parsed %s %s: %d records", asset_class.value, doc_type.value, result.count)
    return result
