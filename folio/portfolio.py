"""
folio/portfolio.py  —  Per-asset-class facade over the store

A Portfolio is one asset class's slice of the database: it loads the
stored records into an AssetState, applies parse results, manages the
watchlist and cash accounts, and runs the metrics.

Imports replace a record set wholesale and only when the parse
succeeded, so a failed upload never disturbs what is already stored.
Prices are the exception: they merge into the existing map.
"""

import logging
import uuid
from dataclasses import asdict, replace
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from folio.config import DEFAULT_EUR_INR
from folio.db import Database
from folio.fx import RateLookup, fixed_rate
from folio.metrics import consolidate, evaluate, watchlist_signals
from folio.models import (AssetClass, AssetState, CashHolding, DividendRecord,
                          DocumentType, FundHolding, LedgerRecord, NetWorth,
                          ParseResult, PnLRecord, PortfolioReport, Trade,
                          WatchlistItem, WatchlistSignal, fund_holding_from_dict)
from folio.parsers import parse_statement
from folio.prices import RemoteFetchError, fetch_published_sheet
from folio.validation import (validate_cash_amount, validate_trade_list,
                              validate_watchlist_item)

logger = logging.getLogger(__name__)

MARKET_DATE = "market_date"

# Record type of a parse result → storage key
_RECORD_KEYS = [
    (Trade,          "trades"),
    (PnLRecord,      "pnl"),
    (LedgerRecord,   "ledger"),
    (DividendRecord, "dividends"),
    (FundHolding,    "holdings"),
]


def _new_id() -> str:
    return uuid.uuid4().hex[:9]


def _storage_key(data: Any) -> Optional[str]:
    if isinstance(data, dict):
        return "prices"
    if not data:
        return None
    for record_type, key in _RECORD_KEYS:
        if isinstance(data[0], record_type):
            return key
    return None


def _rows(records: List[Any]) -> List[Dict[str, Any]]:
    return [asdict(r) for r in records]


class Portfolio:
    def __init__(self, db: Database, asset_class: AssetClass):
        self._db         = db
        self.asset_class = asset_class
        self.prefix      = asset_class.prefix

    # ── Loading ───────────────────────────────────────────────────────────────

    def _get(self, key: str, default: Any) -> Any:
        return self._db.get(self.prefix, key, default)

    def load_state(self) -> AssetState:
        state = AssetState(
            trades=[Trade.from_dict(d) for d in self._get("trades", [])],
            pnl=[PnLRecord(**d) for d in self._get("pnl", [])],
            ledger=[LedgerRecord(**d) for d in self._get("ledger", [])],
            dividends=[DividendRecord(**d) for d in self._get("dividends", [])],
            prices={k: float(v) for k, v in self._get("prices", {}).items()},
            summary=self._get("summary", {}),
            watchlist=[WatchlistItem(**d) for d in self._get("watchlist", [])],
        )
        if self.asset_class == AssetClass.CASH_EQUIVALENTS:
            state.cash_holdings = [CashHolding(**d) for d in self._get("holdings", [])]
        elif self.asset_class in (AssetClass.MUTUAL_FUNDS, AssetClass.GOLD_ETF):
            state.funds = [fund_holding_from_dict(self.asset_class, d)
                           for d in self._get("holdings", [])]
        return state

    def meta(self) -> Dict[str, Any]:
        return self._get("meta", {})

    # ── Imports ───────────────────────────────────────────────────────────────

    def import_statement(self, text: str, doc_type: DocumentType,
                         rate: RateLookup = fixed_rate) -> ParseResult:
        """Parse a statement and store its records. Prior state survives a failed parse."""
        result = parse_statement(self.asset_class, doc_type, text, rate)
        if not result.success:
            logger.info("Import of %s %s rejected: %s",
                        self.asset_class.value, doc_type.value, result.message)
            return result

        key = _storage_key(result.data)
        if key is None:
            return replace(result, success=False, message="Nothing to store.")

        writes: Dict[str, Any] = {}
        if key == "prices":
            prices = self._get("prices", {})
            prices.update(result.data)
            writes["prices"] = prices
        else:
            writes[key] = _rows(result.data)

        if result.summary is not None:
            summary = self._get("summary", {})
            summary.update(result.summary.as_dict())
            writes["summary"] = summary

        meta = self.meta()
        meta.setdefault("uploads", {})[doc_type.value] = datetime.now().isoformat()
        writes["meta"] = meta

        self._db.put_many(self.prefix, writes)

        if key == "trades":
            warnings = validate_trade_list(result.data)
            if warnings:
                result = replace(result, message=result.message + " Warning: " + " ".join(warnings))
        return result

    def import_from_url(self, url: str, doc_type: DocumentType,
                        rate: RateLookup = fixed_rate) -> ParseResult:
        """Fetch a published sheet and import it; a network failure leaves state untouched."""
        try:
            text = fetch_published_sheet(url)
        except RemoteFetchError as e:
            logger.warning("Import from %s failed: %s", url, e)
            return ParseResult(success=False, message=f"Could not fetch the sheet: {e}")

        result = self.import_statement(text, doc_type, rate)
        if result.success:
            self._db.put(self.prefix, "sheet_id", url)
        return result

    # ── Watchlist ─────────────────────────────────────────────────────────────

    def _save_watchlist(self, items: List[WatchlistItem]) -> None:
        self._db.put(self.prefix, "watchlist", _rows(items))

    def add_watchlist_item(self, ticker: str, desired_entry_price: float = 0.0,
                           intrinsic_value: float = 0.0, research_link: str = "",
                           support_levels: Optional[List[float]] = None) -> WatchlistItem:
        errors = validate_watchlist_item(ticker, desired_entry_price, intrinsic_value,
                                         research_link, support_levels)
        if errors:
            raise ValueError(" ".join(errors))

        items  = self.load_state().watchlist
        ticker = ticker.strip().upper()
        if any(i.ticker == ticker for i in items):
            raise ValueError(f"{ticker} is already on the watchlist.")

        item = WatchlistItem(id=_new_id(), ticker=ticker,
                             desired_entry_price=desired_entry_price,
                             intrinsic_value=intrinsic_value,
                             research_link=research_link.strip(),
                             support_levels=list(support_levels or []))
        self._save_watchlist(items + [item])
        return item

    def update_watchlist_item(self, item_id: str, **changes) -> WatchlistItem:
        items = self.load_state().watchlist
        for n, item in enumerate(items):
            if item.id != item_id:
                continue
            updated = replace(item, **changes)
            updated.ticker = updated.ticker.strip().upper()
            errors = validate_watchlist_item(updated.ticker, updated.desired_entry_price,
                                             updated.intrinsic_value, updated.research_link,
                                             updated.support_levels)
            if any(i.ticker == updated.ticker and i.id != item_id for i in items):
                errors.append(f"{updated.ticker} is already on the watchlist.")
            if errors:
                raise ValueError(" ".join(errors))
            items[n] = updated
            self._save_watchlist(items)
            return updated
        raise KeyError(item_id)

    def remove_watchlist_item(self, item_id: str) -> bool:
        items = self.load_state().watchlist
        kept  = [i for i in items if i.id != item_id]
        if len(kept) == len(items):
            return False
        self._save_watchlist(kept)
        return True

    # ── Cash accounts ─────────────────────────────────────────────────────────

    def _cash(self) -> List[CashHolding]:
        return [CashHolding(**d) for d in self._get("holdings", [])]

    def _save_cash(self, holdings: List[CashHolding]) -> None:
        self._db.put(self.prefix, "holdings", _rows(holdings))

    def add_salary(self, account: str, amount: float) -> CashHolding:
        """Credit an account, creating it on first use. Names match case-insensitively."""
        errors = validate_cash_amount(account, amount)
        if errors:
            raise ValueError(" ".join(errors))

        holdings = self._cash()
        name = account.strip()
        for h in holdings:
            if h.account.lower() == name.lower():
                h.value += amount
                self._save_cash(holdings)
                return h

        holding = CashHolding(id=_new_id(), account=name, value=amount)
        self._save_cash(holdings + [holding])
        return holding

    def update_cash_holding(self, holding_id: str, value: float) -> bool:
        holdings = self._cash()
        for h in holdings:
            if h.id == holding_id:
                h.value = value
                self._save_cash(holdings)
                return True
        return False

    def delete_cash_holding(self, holding_id: str) -> bool:
        holdings = self._cash()
        kept = [h for h in holdings if h.id != holding_id]
        if len(kept) == len(holdings):
            return False
        self._save_cash(kept)
        return True

    # ── Housekeeping and metrics ──────────────────────────────────────────────

    def clear_all(self) -> None:
        self._db.clear(self.prefix)

    def set_market_date(self, value: str) -> None:
        self._db.set_setting(MARKET_DATE, value)

    def metrics(self, reference_date: Optional[date] = None) -> PortfolioReport:
        """Report for this asset class; days held count up to the market date when set."""
        reference = reference_date or self._db.get_setting(MARKET_DATE)
        return evaluate(self.asset_class, self.load_state(), reference_date=reference)

    def watchlist_signals(self, reference_date: Optional[date] = None) -> List[WatchlistSignal]:
        """
        Entry signals for holdings and watchlist tickers. Domestic equity
        counts the cash accounts as deployable on top of trading cash.
        """
        state  = self.load_state()
        report = evaluate(self.asset_class, state,
                          reference_date=reference_date or self._db.get_setting(MARKET_DATE))
        deployable = report.cash_balance
        if self.asset_class == AssetClass.INDIAN_EQUITY:
            deployable += sum(h.value for h in Portfolio(self._db, AssetClass.CASH_EQUIVALENTS)._cash())
        return watchlist_signals(report, state.watchlist, state.prices, deployable,
                                 fuzzy=self.asset_class == AssetClass.INTERNATIONAL_EQUITY)


def net_worth(db: Database, conversion_rate: float = DEFAULT_EUR_INR,
              reference_date: Optional[date] = None) -> NetWorth:
    """Consolidate every asset class stored in `db`."""
    reports: Mapping[AssetClass, PortfolioReport] = {
        ac: Portfolio(db, ac).metrics(reference_date) for ac in AssetClass
    }
    return consolidate(reports, conversion_rate)
