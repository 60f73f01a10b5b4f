"""
folio/xirr.py  —  Money-weighted annualised return (XIRR)

Newton–Raphson on

    NPV(r) = Σ amount_i / (1 + r) ^ (days_i / 365)

with days measured from the earliest flow. Returns a fraction (0.1 = 10%).
There is no bisection fallback: when the iteration cannot progress the
last estimate is returned, and 0 when it diverges or the flows are all
one sign. Callers must still guard against non-finite results.
"""

from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from folio.config import (DAYS_PER_YEAR, XIRR_DIVERGENCE, XIRR_GUESS, XIRR_MAX_ITER,
                          XIRR_MIN_SLOPE, XIRR_TOLERANCE)
from folio.models import Trade

DateLike = Union[date, datetime, str]
CashFlow = Tuple[DateLike, float]


def _to_datetime(value: DateLike) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        return None


def flows_from_trades(trades: Iterable[Trade]) -> List[CashFlow]:
    """Each trade's signed net amount on its trade date."""
    return [(t.date, t.net_amount) for t in trades]


def xirr(flows: Sequence[CashFlow], terminal_value: float = 0.0,
         as_of: Optional[DateLike] = None, guess: float = XIRR_GUESS) -> float:
    """
    Annualised internal rate of return of irregular cash flows.

    A positive terminal_value is added as a final inflow dated `as_of`
    (default: now), which is how open positions are valued.
    """
    dated = []
    for when, amount in flows:
        when = _to_datetime(when)
        if when is not None:
            dated.append((when, float(amount)))
    if terminal_value > 0:
        end = _to_datetime(as_of) if as_of is not None else datetime.now()
        if end is not None:
            dated.append((end, float(terminal_value)))

    if not any(a > 0 for _, a in dated) or not any(a < 0 for _, a in dated):
        return 0.0

    start   = min(d for d, _ in dated)
    years   = np.array([(d - start).total_seconds() / 86400.0 / DAYS_PER_YEAR for d, _ in dated])
    amounts = np.array([a for _, a in dated])

    rate = guess
    with np.errstate(all="ignore"):
        for _ in range(XIRR_MAX_ITER):
            growth = np.power(1.0 + rate, years)
            value  = float(np.sum(amounts / growth))
            slope  = float(np.sum(-years * amounts / (growth * (1.0 + rate))))
            if not np.isfinite(value) or not np.isfinite(slope) or abs(slope) < XIRR_MIN_SLOPE:
                break
            new_rate = rate - value / slope
            if abs(new_rate - rate) < XIRR_TOLERANCE:
                return new_rate
            rate = new_rate
            if abs(rate) > XIRR_DIVERGENCE:
                return 0.0
    return rate
