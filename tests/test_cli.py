"""Tests for CLI actions that do not need a terminal: the analyst and live quotes."""

import io

import pytest
from rich.console import Console

from folio import cli as cli_module
from folio.analyst import DEMO_ANSWER
from folio.cli import CLI
from folio.models import AssetClass, DocumentType

TRADES = """Date,Symbol,Type,Qty,Price
01-01-2024,INFY,BUY,10,1500
"""


@pytest.fixture
def quiet(monkeypatch):
    monkeypatch.setattr(cli_module, "console", Console(file=io.StringIO()))


def test_analyst_without_generator_gives_demo_answer(db, quiet, monkeypatch) -> None:
    monkeypatch.setattr(cli_module.Prompt, "ask", lambda *a, **k: "What did I buy?")
    assert CLI(db).ask_question() == DEMO_ANSWER


def test_analyst_sees_active_trades(db, quiet, monkeypatch) -> None:
    class Recorder:
        prompt = ""

        def generate(self, prompt: str) -> str:
            Recorder.prompt = prompt
            return "One INFY purchase."

    CLI(db).portfolio.import_statement(TRADES, DocumentType.TRADE_HISTORY)
    monkeypatch.setattr(cli_module.Prompt, "ask", lambda *a, **k: "What did I buy?")
    assert CLI(db, generator=Recorder()).ask_question() == "One INFY purchase."
    assert '"ticker": "INFY"' in Recorder.prompt


def test_quotes_skip_international_product_names(db, quiet, monkeypatch) -> None:
    class NoFetch:
        def __init__(self, *a, **k):
            raise AssertionError("quotes requested")

    monkeypatch.setattr(cli_module, "QuoteFetcher", NoFetch)
    app = CLI(db)
    app.asset_class = AssetClass.INTERNATIONAL_EQUITY
    app.refresh_quotes()


def test_quotes_fetched_for_indian_holdings(db, quiet, monkeypatch) -> None:
    requested = []

    class FakeFetcher:
        def __init__(self, db, asset_class):
            assert asset_class == AssetClass.INDIAN_EQUITY

        def get_prices(self, tickers):
            requested.extend(tickers)
            return {t: 1600.0 for t in tickers}

    monkeypatch.setattr(cli_module, "QuoteFetcher", FakeFetcher)
    app = CLI(db)
    app.portfolio.import_statement(TRADES, DocumentType.TRADE_HISTORY)
    app.refresh_quotes()
    assert requested == ["INFY"]
