"""
folio/fifo.py  —  FIFO lot matching

Rules implemented:
  - Trades are processed in date order (stable for equal dates)
  - Each BUY opens a lot; each SELL consumes lots oldest-first
  - Realised P&L per matched slice = qty × (sell price − lot cost)
  - A lot at or below LOT_EPSILON counts as drained (float drift)
  - Selling more than is held drains the queue and drops the excess.
    The excess is reported in `oversold` and logged, never raised.
  - Invested capital is recomputed from the final lot queues, so it always
    equals the cost basis of what is still open.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable

from folio.config import LOT_EPSILON, SELL_EPSILON
from folio.models import Lot, Position, Trade, TradePerformance, TradeSide

logger = logging.getLogger(__name__)


@dataclass
class FifoResult:
    realized_pnl: float = 0.0
    invested:     float = 0.0
    positions:    Dict[str, Position]         = field(default_factory=dict)
    performance:  Dict[str, TradePerformance] = field(default_factory=dict)
    oversold:     Dict[str, float]            = field(default_factory=dict)

    def open_positions(self) -> Dict[str, Position]:
        return {t: p for t, p in self.positions.items() if p.open_quantity > 0}


def run_fifo(trades: Iterable[Trade]) -> FifoResult:
    """Match every SELL against earlier BUY lots of the same (uppercased) ticker."""
    result = FifoResult()

    for t in sorted(trades, key=lambda x: x.date):
        ticker = t.ticker.upper()
        position = result.positions.setdefault(ticker, Position())

        if t.side == TradeSide.BUY:
            position.lots.append(Lot(quantity=t.quantity, unit_cost=t.price))
            position.open_quantity += t.quantity
            if position.latest_buy_date is None or t.date >= position.latest_buy_date:
                position.latest_buy_date  = t.date
                position.latest_buy_price = t.price
            continue

        remaining  = t.quantity
        trade_pnl  = 0.0
        cost_basis = 0.0

        # Consume lots oldest-first
        while remaining > SELL_EPSILON and position.lots:
            lot     = position.lots[0]
            matched = min(remaining, lot.quantity)
            pnl     = matched * (t.price - lot.unit_cost)

            result.realized_pnl   += pnl
            position.realized_pnl += pnl
            trade_pnl             += pnl
            cost_basis            += matched * lot.unit_cost

            lot.quantity           -= matched
            remaining              -= matched
            position.open_quantity -= matched
            if lot.quantity <= LOT_EPSILON:
                position.lots.pop(0)

        if remaining > SELL_EPSILON:
            result.oversold[ticker] = result.oversold.get(ticker, 0.0) + remaining
            logger.warning("SELL %s of %s on %s exceeds open lots by %.4f units; excess ignored",
                           t.id, ticker, t.date, remaining)

        if cost_basis > 0:
            result.performance[t.id] = TradePerformance(realized_pnl=trade_pnl,
                                                        cost_basis=cost_basis)

    for position in result.positions.values():
        position.invested      = sum(l.quantity * l.unit_cost for l in position.lots)
        position.open_quantity = sum(l.quantity for l in position.lots)
        result.invested       += position.invested

    return result
