"""
folio/validation.py  —  Input validation rules

All validators return a list of error strings (empty = valid).
Keeping rules here means the portfolio facade and the CLI just call
validate_*() and show the results.
"""

import re
from typing import List, Optional, Sequence

from folio.config import SELL_EPSILON
from folio.models import Trade, TradeSide

# Statement tickers can be product names ("APPLE INC."), so spaces and
# a few punctuation marks are allowed on top of the usual symbol set.
_BAD_TICKER_CHARS = re.compile(r"[^A-Z0-9.\-&' ]")
_MAX_TICKER_LEN   = 40
_MAX_SUPPORT_LVLS = 3
_URL              = re.compile(r"^https?://\S+$", re.IGNORECASE)

# Sanity bounds: values past these are almost certainly typos
_MAX_PRICE  = 10_000_000.0
_MAX_AMOUNT = 1_000_000_000.0


def validate_ticker(ticker: str) -> List[str]:
    errors = []
    t = (ticker or "").strip().upper()
    if not t:
        errors.append("Ticker symbol cannot be empty.")
        return errors
    if len(t) > _MAX_TICKER_LEN:
        errors.append(f"Ticker '{t}' is too long (max {_MAX_TICKER_LEN} characters).")
    if _BAD_TICKER_CHARS.search(t):
        errors.append(f"Ticker '{t}' contains invalid characters.")
    if t[0] in ".-":
        errors.append(f"Ticker '{t}' cannot start with '.' or '-'.")
    return errors


def validate_watchlist_item(
        ticker: str,
        desired_entry_price: float = 0.0,
        intrinsic_value: float = 0.0,
        research_link: str = "",
        support_levels: Optional[Sequence[float]] = None,
) -> List[str]:
    errors = validate_ticker(ticker)

    for label, value in (("Desired entry price", desired_entry_price),
                         ("Intrinsic value", intrinsic_value)):
        if value < 0:
            errors.append(f"{label} cannot be negative.")
        elif value > _MAX_PRICE:
            errors.append(f"{label} {value:,.2f} seems unusually high. Please double-check.")

    if research_link and not _URL.match(research_link.strip()):
        errors.append("Research link must start with http:// or https://.")

    levels = list(support_levels or [])
    if len(levels) > _MAX_SUPPORT_LVLS:
        errors.append(f"At most {_MAX_SUPPORT_LVLS} support levels are allowed, got {len(levels)}.")
    if any(level <= 0 for level in levels):
        errors.append("Support levels must be greater than zero.")

    return errors


def validate_cash_amount(account: str, amount: float) -> List[str]:
    errors = []
    if not (account or "").strip():
        errors.append("Please enter an account name.")
    if amount == 0:
        errors.append("Amount cannot be zero.")
    elif abs(amount) > _MAX_AMOUNT:
        errors.append(f"Amount {amount:,.2f} seems extremely large. Please double-check.")
    return errors


def validate_trade_list(trades: List[Trade]) -> List[str]:
    """
    Check an imported trade set in date order. Selling more than was
    bought is reported per ticker; the FIFO engine itself ignores the
    excess, so these are warnings for the import message.
    """
    errors = []
    running = {}

    for i, t in enumerate(sorted(trades, key=lambda x: x.date), 1):
        ticker = t.ticker.upper()
        if t.quantity <= 0:
            errors.append(f"Row {i} ({t.date}, {ticker}): quantity must be > 0.")
            continue
        if t.price <= 0:
            errors.append(f"Row {i} ({t.date}, {ticker}): price must be > 0.")

        held = running.get(ticker, 0.0)
        if t.side == TradeSide.BUY:
            running[ticker] = held + t.quantity
        else:
            if t.quantity > held + SELL_EPSILON:
                errors.append(
                    f"Row {i} ({t.date}): sell of {t.quantity:,.4f} {ticker} exceeds the "
                    f"{held:,.4f} units held at that point; the excess is ignored."
                )
            running[ticker] = max(0.0, held - t.quantity)

    return errors
