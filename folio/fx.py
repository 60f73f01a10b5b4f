"""
folio/fx.py  —  Currency conversion for foreign dividends

Parsers take a `RateLookup` (currency code → multiplier into EUR) so the
fixed table can be swapped for live rates without touching them.
"""

from typing import Callable, Dict, Optional

from folio.config import DIVIDEND_FX_TO_EUR

RateLookup = Callable[[str], float]


def fixed_rate(currency: str) -> float:
    """Default lookup: the fixed table in config, unknown currencies at 1:1."""
    return DIVIDEND_FX_TO_EUR.get((currency or "").strip().upper(), 1.0)


def table_lookup(rates: Dict[str, float], fallback: Optional[RateLookup] = None) -> RateLookup:
    """Build a lookup from an explicit table, falling back to `fallback` (or 1:1)."""
    table = {k.upper(): v for k, v in rates.items()}

    def lookup(currency: str) -> float:
        code = (currency or "").strip().upper()
        if code in table:
            return table[code]
        return fallback(code) if fallback else 1.0

    return lookup
