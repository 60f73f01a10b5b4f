"""
folio/prices.py  —  Remote sheets, conversion rate and live quotes

Everything here does network I/O; the parsers never do. A published
spreadsheet is fetched as CSV text and handed to parse_statement exactly
like a local file would be.
"""

import logging
import time
from typing import Dict, List, Optional

import pandas as pd
import requests
import yfinance as yf

from folio.config import DEFAULT_EUR_INR, HTTP_RETRIES, HTTP_TIMEOUT
from folio.models import AssetClass
from folio.normalize import clean, parse_locale_number
from folio.tabular import split_delimited

logger = logging.getLogger(__name__)


class RemoteFetchError(RuntimeError):
    """A published sheet could not be downloaded after every retry."""


# ── Published sheets ──────────────────────────────────────────────────────────

def fetch_published_sheet(url: str, timeout: int = HTTP_TIMEOUT,
                          retries: int = HTTP_RETRIES, backoff_base: float = 1.0) -> str:
    """
    GET a published CSV and return its text. Waits backoff_base * 2^n
    seconds between attempts and raises RemoteFetchError when all fail.
    """
    if not url:
        raise RemoteFetchError("No URL configured.")

    last_exc: Optional[Exception] = None
    for attempt in range(1, retries + 1):
        try:
            resp = requests.get(url, timeout=timeout,
                                headers={"Accept": "text/csv,text/plain,*/*"})
            resp.raise_for_status()
            return resp.text
        except requests.RequestException as exc:
            last_exc = exc
            logger.warning("Fetch %s failed (attempt %d/%d): %s", url, attempt, retries, exc)
            if attempt == retries:
                break
            time.sleep(backoff_base * (2 ** (attempt - 1)))
    raise RemoteFetchError(f"Failed to fetch URL after {retries} attempts: {url}") from last_exc


def fetch_conversion_rate(url: str, default: float = DEFAULT_EUR_INR) -> float:
    """EUR→INR rate from the first cell of a published sheet; `default` when unavailable."""
    if not url:
        return default
    try:
        grid = split_delimited(fetch_published_sheet(url))
    except RemoteFetchError as e:
        logger.warning("Using default conversion rate %.2f: %s", default, e)
        return default
    for row in grid:
        for value in row:
            rate = parse_locale_number(clean(value))
            if rate > 0:
                return rate
    return default


# ── Live quotes ───────────────────────────────────────────────────────────────

def _close_from_download(raw: pd.DataFrame, tickers: List[str]) -> pd.DataFrame:
    """
    (date × ticker) Close prices from yf.download() output.

    Multi-ticker downloads come back with MultiIndex columns, either
    (field, ticker) or (ticker, field) depending on the yfinance version;
    a single ticker may come back flat.
    """
    cols = raw.columns
    if isinstance(cols, pd.MultiIndex):
        if "Close" in set(cols.get_level_values(0)):
            close = raw["Close"]
        elif "Close" in set(cols.get_level_values(1)):
            close = raw.xs("Close", axis=1, level=1)
        else:
            raise KeyError("Could not find 'Close' in downloaded columns.")
        if isinstance(close, pd.Series):
            close = close.to_frame(name=tickers[0].upper())
    else:
        close = raw[["Close"]].copy()
        close.columns = [tickers[0].upper()]

    close.columns = [str(c).upper() for c in close.columns]
    return close


class QuoteFetcher:
    """
    Last-close quotes from Yahoo Finance for one asset class. Fetched
    prices are merged into that class's stored price map, so a metrics
    run picks them up the same way it picks up an imported market sheet.
    """

    def __init__(self, db=None, asset_class: AssetClass = AssetClass.INDIAN_EQUITY):
        self._db     = db
        self._prefix = asset_class.prefix
        self._cache: Dict[str, float] = {}
        if self._db is not None:
            self._cache.update(self._db.get(self._prefix, "prices", {}))

    def get_prices(self, tickers: List[str]) -> Dict[str, Optional[float]]:
        tickers  = [t.upper() for t in tickers]
        to_fetch = [t for t in tickers if t not in self._cache]

        if to_fetch:
            fresh: Dict[str, float] = {}
            try:
                raw = yf.download(to_fetch, period="5d", progress=False, auto_adjust=True)
                if not raw.empty:
                    close = _close_from_download(raw, to_fetch)
                    for ticker in to_fetch:
                        if ticker in close.columns:
                            series = close[ticker].dropna()
                            if not series.empty:
                                fresh[ticker] = float(series.iloc[-1])
            except Exception as e:   # yfinance raises a wide variety of errors
                logger.warning("Quote download failed for %s: %s", ", ".join(to_fetch), e)

            if fresh:
                self._cache.update(fresh)
                if self._db is not None:
                    stored = self._db.get(self._prefix, "prices", {})
                    stored.update(fresh)
                    self._db.put(self._prefix, "prices", stored)

        return {t: self._cache.get(t) for t in tickers}

    def clear_cache(self) -> None:
        """Forget in-memory quotes; the stored price map is kept."""
        self._cache.clear()
        if self._db is not None:
            self._cache.update(self._db.get(self._prefix, "prices", {}))
