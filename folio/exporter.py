"""
folio/exporter.py  —  Excel and CSV export of an asset-class report
"""

from datetime import datetime
from typing import Optional

import openpyxl
import pandas as pd
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from folio.models import PortfolioReport

# ── Colour constants ──────────────────────────────────────────────────────────
HEADER_BG  = "1A237E"
HEADER_FG  = "FFFFFF"
SUBHEAD_BG = "283593"
POS_FG     = "1B5E20"
NEG_FG     = "B71C1C"
ALT_ROW    = "E8EAF6"

COLUMNS = ["ticker", "quantity", "invested", "market_value", "unrealized",
           "realized", "net_return_pct", "days_held", "portfolio_pct", "is_live"]

def _border():
    s = Side(style="thin", color="BDBDBD")
    return Border(left=s, right=s, top=s, bottom=s)

def _header_font(bold=True, size=10):
    return Font(name="Arial", size=size, bold=bold, color=HEADER_FG)

def _header_fill(bg=HEADER_BG):
    return PatternFill("solid", fgColor=bg)

def _style(cell, value=None, font=None, fill=None, fmt=None, align="left"):
    if value is not None: cell.value = value
    if font:  cell.font = font
    if fill:  cell.fill = fill
    if fmt:   cell.number_format = fmt
    cell.border    = _border()
    cell.alignment = Alignment(horizontal=align)
    return cell

def _default_name(report: PortfolioReport, ext: str) -> str:
    return f"{report.asset_class.prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.{ext}"


# ── Public API ────────────────────────────────────────────────────────────────

def report_frame(report: PortfolioReport) -> pd.DataFrame:
    """One row per holding, in report order."""
    rows = [{c: getattr(h, c) for c in COLUMNS} for h in report.holdings]
    return pd.DataFrame(rows, columns=COLUMNS)

def export_to_csv(report: PortfolioReport, filename: Optional[str] = None) -> str:
    filename = filename or _default_name(report, "csv")
    report_frame(report).round(4).to_csv(filename, index=False)
    return filename

def export_to_excel(report: PortfolioReport, filename: Optional[str] = None) -> str:
    filename = filename or _default_name(report, "xlsx")
    wb = openpyxl.Workbook()
    _holdings_sheet(wb, report)
    _summary_sheet(wb, report)
    if "Sheet" in wb.sheetnames:
        del wb["Sheet"]
    wb.save(filename)
    return filename


# ── Holdings sheet ────────────────────────────────────────────────────────────

def _holdings_sheet(wb, report: PortfolioReport):
    ws = wb.create_sheet("Holdings")

    for row, text, size in [(1, f"{report.asset_class.value.replace('_', ' ').title()} Holdings", 16),
                            (2, f"Generated: {datetime.now().strftime('%d %b %Y  %H:%M')}", 10)]:
        ws.merge_cells(f"A{row}:I{row}")
        c = ws[f"A{row}"]
        c.value = text
        c.font  = Font(name="Arial", size=size, bold=(row == 1), italic=(row == 2), color=HEADER_FG)
        c.fill  = _header_fill(HEADER_BG if row == 1 else SUBHEAD_BG)
        c.alignment = Alignment(horizontal="center", vertical="center")
    ws.row_dimensions[1].height = 30

    headers = ["Holding", "Quantity", "Invested", "Market Value", "Unrealised",
               "Realised", "Return %", "Days Held", "Weight %"]
    for col, h in enumerate(headers, 1):
        _style(ws.cell(4, col, h), font=_header_font(), fill=_header_fill(), align="center")

    fmts = [None, "#,##0.0000", "#,##0.00", "#,##0.00", "#,##0.00;[Red](#,##0.00)",
            "#,##0.00;[Red](#,##0.00)", "0.00%;[Red]-0.00%", "0", "0.00%"]
    for i, h in enumerate(report.holdings):
        row  = 5 + i
        fill = PatternFill("solid", fgColor=ALT_ROW if i % 2 == 0 else "FFFFFF")
        vals = [h.ticker, h.quantity, h.invested, h.market_value, h.unrealized,
                h.realized, h.net_return_pct / 100, h.days_held, h.portfolio_pct / 100]
        for col, (val, fmt) in enumerate(zip(vals, fmts), 1):
            cell = ws.cell(row, col, val)
            cell.font   = Font(name="Arial", size=10)
            cell.fill   = fill
            cell.border = _border()
            cell.alignment = Alignment(horizontal="right" if col > 1 else "left")
            if fmt: cell.number_format = fmt
            if col in (5, 7):
                cell.font = Font(name="Arial", size=10, color=POS_FG if h.unrealized >= 0 else NEG_FG)

    tr = 5 + len(report.holdings)
    for col in range(1, 10):
        ws.cell(tr, col).fill   = _header_fill(SUBHEAD_BG)
        ws.cell(tr, col).border = _border()
    _style(ws.cell(tr, 1, "TOTAL"), font=Font(name="Arial", bold=True, color=HEADER_FG))
    _style(ws.cell(tr, 3, report.total_invested), font=Font(name="Arial", bold=True, color=HEADER_FG),
           fmt="#,##0.00", align="right")
    _style(ws.cell(tr, 4, report.current_value), font=Font(name="Arial", bold=True, color=HEADER_FG),
           fmt="#,##0.00", align="right")

    for i, w in enumerate([28, 12, 14, 14, 14, 14, 10, 10, 10], 1):
        ws.column_dimensions[get_column_letter(i)].width = w
    ws.freeze_panes = "A5"


# ── Summary sheet ─────────────────────────────────────────────────────────────

def _summary_sheet(wb, report: PortfolioReport):
    ws = wb.create_sheet("Summary")
    ws.merge_cells("A1:B1")
    _style(ws["A1"], "Summary", font=Font(name="Arial", size=14, bold=True, color=HEADER_FG),
           fill=_header_fill(), align="center")

    figures = [
        ("Total invested",       report.total_invested,   "#,##0.00"),
        ("Current value",        report.current_value,    "#,##0.00"),
        ("Realised P&L",         report.realized_pnl,     "#,##0.00;[Red](#,##0.00)"),
        ("Unrealised P&L",       report.unrealized_pnl,   "#,##0.00;[Red](#,##0.00)"),
        ("Charges",              report.charges,          "#,##0.00"),
        ("Net realised P&L",     report.net_realized_pnl, "#,##0.00;[Red](#,##0.00)"),
        ("Dividends",            report.dividends,        "#,##0.00"),
        ("Cash balance",         report.cash_balance,     "#,##0.00"),
        ("XIRR",                 report.xirr / 100,       "0.00%;[Red]-0.00%"),
        ("Win rate",             report.win_rate / 100,   "0.00%"),
    ]
    for n, (label, value, fmt) in enumerate(figures, 3):
        _style(ws.cell(n, 1, label), font=Font(name="Arial", size=10, bold=True))
        _style(ws.cell(n, 2, value), font=Font(name="Arial", size=10), fmt=fmt, align="right")

    ws.column_dimensions["A"].width = 22
    ws.column_dimensions["B"].width = 16
