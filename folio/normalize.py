"""
folio/normalize.py  —  Locale-tolerant number, header and date parsing

Broker exports mix Indian, US and European conventions. Everything here
degrades to a safe default (0 / "") instead of raising, so a single bad
cell never aborts an import.
"""

import re
import unicodedata
from datetime import date

_NUMERIC_NOISE = re.compile(r"[^0-9.,\-]")
_ISO_DATE      = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATE_SPLIT    = re.compile(r"[-/ ]")

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4,  "may": 5,  "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def clean(value) -> str:
    """Strip surrounding whitespace and every double quote."""
    if not value:
        return ""
    return str(value).replace('"', "").strip()


def parse_locale_number(text) -> float:
    """
    "1.234,56" → 1234.56, "1,234.56" → 1234.56, "(99.50)" → -99.5, "" → 0.

    A comma is the decimal point when there is no dot, or when it comes
    after the last dot; otherwise commas are thousands separators.
    """
    if not text:
        return 0.0
    cleaned = re.sub(r'[\s"]', "", str(text))

    if "(" in cleaned and ")" in cleaned:
        cleaned = "-" + cleaned.replace("(", "").replace(")", "")

    cleaned = _NUMERIC_NOISE.sub("", cleaned)
    if not cleaned:
        return 0.0

    # With no dot the first comma is always decimal: "1,234,567" reads as 1.234567
    comma, dot = cleaned.find(","), cleaned.rfind(".")
    if comma > -1 and (dot == -1 or cleaned.rfind(",") > dot):
        cleaned = cleaned.replace(".", "").replace(",", ".", 1).replace(",", "")
    else:
        cleaned = cleaned.replace(",", "")

    try:
        return float(cleaned)
    except ValueError:
        # "1-2", "--5", "." and friends
        match = re.match(r"-?\d+(?:\.\d+)?", cleaned)
        return float(match.group(0)) if match else 0.0


def normalize_header(text) -> str:
    """Lowercase and strip accents so "Clôture" matches "cloture"."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", str(text).lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c)).strip()


def _month_number(token: str):
    if token.isdigit():
        return int(token)
    return _MONTHS.get(token[:3].lower())


def parse_flexible_date(text) -> str:
    """
    Return an ISO "YYYY-MM-DD" string, or "" when the text is not a date.

    Accepts ISO, DD-MM-YYYY, DD/MM/YY, "05 Jan 2024", "Jan 05 2024".
    Two numeric parts that could both be a month are read day-first;
    a part above 12 is always the day.
    """
    s = clean(text)
    if not s:
        return ""
    if _ISO_DATE.match(s):
        return s if _valid(int(s[:4]), int(s[5:7]), int(s[8:10])) else ""

    parts = [p for p in _DATE_SPLIT.split(s) if p]
    if len(parts) != 3:
        return ""
    p0, p1, p2 = parts

    if len(p0) == 4 and p0.isdigit():                    # YYYY/MM/DD
        year, month, day = p0, _month_number(p1), p2
    else:
        year = p2
        if not p1.isdigit():                             # 05 Jan 2024
            month, day = _month_number(p1), p0
        elif not p0.isdigit():                           # Jan 05 2024
            month, day = _month_number(p0), p1
        else:
            n0, n1 = int(p0), int(p1)
            if n1 > 12 and n0 <= 12:                     # 05/25/2024
                month, day = n0, p1
            else:                                        # day-first default
                month, day = n1, p0

    if not (year.isdigit() and str(day).isdigit()) or month is None:
        return ""
    y = int(year)
    if len(year) == 2:
        y += 2000
    elif len(year) != 4:
        return ""
    d = int(day)
    if not _valid(y, month, d):
        return ""
    return f"{y:04d}-{month:02d}-{d:02d}"


def _valid(y: int, m: int, d: int) -> bool:
    try:
        date(y, m, d)
    except ValueError:
        return False
    return True
