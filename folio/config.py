"""
folio/config.py  —  Constants shared by every folio module

Edit here, not in the modules. A handful of paths and URLs can be
overridden from the environment so a second book can live side by side.
"""

import os

# ── Storage ───────────────────────────────────────────────────────────────────
DB_FILE          = os.environ.get("FOLIO_DB_FILE", "folio.db")
JSON_BACKUP_FILE = os.environ.get("FOLIO_BACKUP_FILE", "folio_backup.json")

STORAGE_PREFIXES = {
    "INDIAN_EQUITY":        "dhan",
    "INTERNATIONAL_EQUITY": "intl",
    "GOLD_ETF":             "gold",
    "CASH_EQUIVALENTS":     "cash",
    "MUTUAL_FUNDS":         "mf",
}

# ── Tabular scanning ──────────────────────────────────────────────────────────
HEADER_SCAN_ROWS = 50    # header must appear within the first N rows
FOOTER_SCAN_ROWS = 50    # footer totals are searched in the last N rows
FOOTER_LOOKAHEAD = 3     # cells to the right of a footer label

# ── FIFO ──────────────────────────────────────────────────────────────────────
LOT_EPSILON  = 1e-4      # a lot at or below this is considered drained
SELL_EPSILON = 1e-9      # sell quantity still to match

# ── XIRR (Newton–Raphson) ─────────────────────────────────────────────────────
XIRR_GUESS      = 0.1
XIRR_MAX_ITER   = 50
XIRR_TOLERANCE  = 1e-6
XIRR_MIN_SLOPE  = 1e-8
XIRR_DIVERGENCE = 1000.0
DAYS_PER_YEAR   = 365.0

# ── Currency ──────────────────────────────────────────────────────────────────
# Fixed conversion for foreign dividends into EUR. Not live rates.
DIVIDEND_FX_TO_EUR = {
    "USD": 0.92,
    "NOK": 0.088,
    "NO":  0.088,    # some exports truncate the ISO code
    "SEK": 0.087,
    "GBP": 1.17,
}
DEFAULT_EUR_INR = 90.0

# ── Cross-feed price matching ────────────────────────────────────────────────
PRICE_KEY_MIN_LEN = 5    # shorter feed keys never fuzzy-match
PRICE_PREFIX_LEN  = 15   # shared prefix that counts as the same instrument

# ── Watchlist signals (call ratio = entry target / price) ────────────────────
ACCUMULATE_RATIO = 0.95   # strictly above → Accumulate
MONITOR_RATIO    = 0.88   # at or above → Monitor

# ── Remote sheets ─────────────────────────────────────────────────────────────
MUTUAL_FUND_SHEET_URL = os.environ.get("FOLIO_MF_SHEET_URL", "")
GOLD_ETF_SHEET_URL    = os.environ.get("FOLIO_GOLD_SHEET_URL", "")
EUR_INR_SHEET_URL     = os.environ.get("FOLIO_EUR_INR_SHEET_URL", "")
HTTP_TIMEOUT = 30
HTTP_RETRIES = 3
