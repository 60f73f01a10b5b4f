"""
folio/tabular.py  —  Turn delimited statement text into a grid and find
things in it.

Broker exports are not clean CSV: a title block precedes the table, a
summary block follows it, and column names drift between versions and
languages. The helpers here locate the header by keywords, read footer
totals by label, and resolve columns through synonym lists.
"""

import re
from typing import List, Optional, Sequence

from folio.config import FOOTER_LOOKAHEAD, FOOTER_SCAN_ROWS, HEADER_SCAN_ROWS
from folio.normalize import clean, normalize_header, parse_locale_number

Grid = List[List[str]]

# Split on the delimiter only when an even number of quotes follows it,
# i.e. when we are not inside a quoted field.
_SPLITTERS = {
    ",": re.compile(r',(?=(?:(?:[^"]*"){2})*[^"]*$)'),
    ";": re.compile(r';(?=(?:(?:[^"]*"){2})*[^"]*$)'),
}


def detect_delimiter(first_line: str) -> str:
    return ";" if first_line.count(";") > first_line.count(",") else ","


def split_delimited(text: str) -> Grid:
    """Split raw text into rows of raw (still quoted) cells. Blank lines are dropped."""
    lines = [line.rstrip("\r") for line in (text or "").split("\n") if line.strip()]
    if not lines:
        return []
    splitter = _SPLITTERS[detect_delimiter(lines[0])]
    return [splitter.split(line) for line in lines]


def cell(row: Sequence[str], index: int) -> str:
    """Cleaned cell text, or "" for a missing column (index -1 or short row)."""
    if index < 0 or index >= len(row):
        return ""
    return clean(row[index])


def find_header_row(grid: Grid, required: Sequence[str],
                    max_rows: int = HEADER_SCAN_ROWS) -> int:
    """First row (within max_rows) whose joined text contains every keyword, else -1."""
    keywords = [normalize_header(k) for k in required]
    for i, row in enumerate(grid[:max_rows]):
        row_text = " ".join(normalize_header(clean(c)) for c in row)
        if all(k in row_text for k in keywords):
            return i
    return -1


def find_footer_value(grid: Grid, labels: Sequence[str],
                      max_rows: int = FOOTER_SCAN_ROWS) -> Optional[float]:
    """
    Scan the last max_rows rows bottom-up for a cell equal to one of the
    labels and return the first positive number found in the next few
    non-blank cells to its right. The last physical occurrence wins.
    """
    targets = {normalize_header(label) for label in labels}
    start = max(0, len(grid) - max_rows)
    for i in range(len(grid) - 1, start - 1, -1):
        row = grid[i]
        for j, raw in enumerate(row):
            if normalize_header(clean(raw)) not in targets:
                continue
            value = _value_right_of(row, j)
            if value is not None:
                return value
    return None


def _value_right_of(row: Sequence[str], j: int) -> Optional[float]:
    for k in range(j + 1, min(len(row), j + 1 + FOOTER_LOOKAHEAD)):
        text = clean(row[k])
        if not text:
            continue
        value = parse_locale_number(text)
        return value if value > 0 else None
    return None


def resolve_column(headers: Sequence[str], candidates: Sequence[str],
                   exclude: Sequence[int] = ()) -> int:
    """
    Index of the first candidate found in headers: exact normalized match
    first, then a header that contains the candidate. -1 if none match.
    Columns in `exclude` are never returned.
    """
    if not headers:
        return -1
    normalized = ["" if i in exclude else normalize_header(clean(h))
                  for i, h in enumerate(headers)]
    for name in candidates:
        target = normalize_header(name)
        if target in normalized:
            return normalized.index(target)
        for i, h in enumerate(normalized):
            if target in h:
                return i
    return -1
