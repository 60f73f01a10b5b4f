"""Shared fixtures: a throwaway database and a small trade history."""

import pytest

from folio.db import Database
from folio.models import Trade, TradeSide


def make_trade(date, ticker, side, qty, price, trade_id=None):
    side = TradeSide(side)
    net = -qty * price if side == TradeSide.BUY else qty * price
    return Trade(id=trade_id or f"{ticker}-{date}-{side.value}", date=date, ticker=ticker,
                 side=side, quantity=qty, price=price, net_amount=net)


@pytest.fixture
def db(tmp_path):
    database = Database(str(tmp_path / "folio.db"), str(tmp_path / "backup.json"))
    yield database
    database.close()


@pytest.fixture
def fifo_trades():
    """BUY 100@10, BUY 50@12, SELL 120@15 for one ticker."""
    return [
        make_trade("2024-01-01", "ABC", "BUY", 100, 10.0, "b1"),
        make_trade("2024-02-01", "ABC", "BUY", 50, 12.0, "b2"),
        make_trade("2024-03-01", "ABC", "SELL", 120, 15.0, "s1"),
    ]
