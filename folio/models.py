"""
folio/models.py  —  Pure dataclasses, no dependencies on other folio modules
except config.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from folio.config import STORAGE_PREFIXES


class AssetClass(str, Enum):
    INDIAN_EQUITY        = "INDIAN_EQUITY"
    INTERNATIONAL_EQUITY = "INTERNATIONAL_EQUITY"
    GOLD_ETF             = "GOLD_ETF"
    CASH_EQUIVALENTS     = "CASH_EQUIVALENTS"
    MUTUAL_FUNDS         = "MUTUAL_FUNDS"

    @property
    def prefix(self) -> str:
        """Storage key prefix, one namespace per asset class."""
        return STORAGE_PREFIXES[self.value]

    @property
    def is_equity(self) -> bool:
        return self in (AssetClass.INDIAN_EQUITY, AssetClass.INTERNATIONAL_EQUITY)


class DocumentType(str, Enum):
    TRADE_HISTORY      = "TRADE_HISTORY"
    PNL                = "PNL"
    LEDGER             = "LEDGER"
    DIVIDEND           = "DIVIDEND"
    MARKET_DATA        = "MARKET_DATA"
    PORTFOLIO_SNAPSHOT = "PORTFOLIO_SNAPSHOT"
    HOLDINGS           = "HOLDINGS"


class TradeSide(str, Enum):
    BUY  = "BUY"
    SELL = "SELL"


# ── Statement records ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Trade:
    id:         str
    date:       str        # "YYYY-MM-DD" or "YYYY-MM-DDTHH:MM"
    ticker:     str
    side:       TradeSide
    quantity:   float      # always > 0
    price:      float
    net_amount: float      # negative for BUY, positive for SELL
    status:     str = "TRADED"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Trade":
        return cls(id=d["id"], date=d["date"], ticker=d["ticker"],
                   side=TradeSide(d["side"]), quantity=float(d["quantity"]),
                   price=float(d["price"]), net_amount=float(d["net_amount"]),
                   status=d.get("status", "TRADED"))


@dataclass(frozen=True)
class PnLRecord:
    scrip_name:      str
    buy_qty:         float = 0.0
    avg_buy_price:   float = 0.0
    buy_value:       float = 0.0
    sell_qty:        float = 0.0
    avg_sell_price:  float = 0.0
    sell_value:      float = 0.0
    realized_pnl:    float = 0.0
    unrealized_pnl:  float = 0.0


@dataclass(frozen=True)
class LedgerRecord:
    date:        str
    description: str   = ""
    credit:      float = 0.0
    debit:       float = 0.0
    balance:     float = 0.0
    type:        str   = "OTHER"   # CHARGE | DEPOSIT | WITHDRAWAL | TRADE | OTHER


@dataclass(frozen=True)
class DividendRecord:
    date:       str
    scrip_name: str
    amount:     float


# ── Per-asset-class holdings entered outside the trade stream ────────────────

@dataclass(frozen=True)
class FundHolding:
    """A row from a fund holdings sheet. Subclasses tag the asset class."""
    name:            str
    invested:        float
    market_value:    float
    units:           float = 0.0
    latest_buy_date: Optional[str] = None

    asset_class = AssetClass.MUTUAL_FUNDS

    @property
    def unrealized(self) -> float:
        return self.market_value - self.invested


@dataclass(frozen=True)
class MutualFundHolding(FundHolding):
    asset_class = AssetClass.MUTUAL_FUNDS


@dataclass(frozen=True)
class GoldHolding(FundHolding):
    asset_class = AssetClass.GOLD_ETF


def fund_holding_from_dict(asset_class: "AssetClass", d: Dict[str, Any]) -> FundHolding:
    cls = GoldHolding if asset_class == AssetClass.GOLD_ETF else MutualFundHolding
    return cls(name=d["name"], invested=float(d["invested"]),
               market_value=float(d["market_value"]),
               units=float(d.get("units", 0.0)),
               latest_buy_date=d.get("latest_buy_date"))


@dataclass
class CashHolding:
    id:      str
    account: str
    value:   float


@dataclass
class WatchlistItem:
    id:                  str
    ticker:              str
    desired_entry_price: float = 0.0
    intrinsic_value:     float = 0.0
    research_link:       str   = ""
    support_levels:      List[float] = field(default_factory=list)   # 0–3 levels


@dataclass
class AssetState:
    """Everything stored for one asset class; the input to a metrics run."""
    trades:        List[Trade]          = field(default_factory=list)
    pnl:           List[PnLRecord]      = field(default_factory=list)
    ledger:        List[LedgerRecord]   = field(default_factory=list)
    dividends:     List[DividendRecord] = field(default_factory=list)
    prices:        Dict[str, float]     = field(default_factory=dict)
    summary:       Dict[str, float]     = field(default_factory=dict)
    funds:         List[FundHolding]    = field(default_factory=list)
    cash_holdings: List[CashHolding]    = field(default_factory=list)
    watchlist:     List[WatchlistItem]  = field(default_factory=list)


# ── FIFO engine state ─────────────────────────────────────────────────────────

@dataclass
class Lot:
    quantity:  float    # remaining
    unit_cost: float


@dataclass
class Position:
    open_quantity:    float = 0.0
    invested:         float = 0.0
    realized_pnl:     float = 0.0
    lots:             List[Lot] = field(default_factory=list)   # oldest first
    latest_buy_date:  Optional[str] = None
    latest_buy_price: float = 0.0


@dataclass(frozen=True)
class TradePerformance:
    realized_pnl: float
    cost_basis:   float


# ── Parse results ─────────────────────────────────────────────────────────────

@dataclass
class SummaryPatch:
    """Footer figures extracted from a statement. None = not reported."""
    charges:   Optional[float] = None
    net_pnl:   Optional[float] = None
    cash:      Optional[float] = None
    dividends: Optional[float] = None

    def as_dict(self) -> Dict[str, float]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class ParseResult:
    success: bool
    message: str
    data:    Any = None
    headers: List[str] = field(default_factory=list)
    summary: Optional[SummaryPatch] = None
    preview: List[List[str]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.data) if self.data is not None else 0


# ── Reports ───────────────────────────────────────────────────────────────────

@dataclass
class HoldingRow:
    """Shared reporting projection for every asset class."""
    ticker:           str
    quantity:         float
    invested:         float
    market_value:     float
    unrealized:       float = 0.0
    realized:         float = 0.0
    net_return_pct:   float = 0.0
    days_held:        int   = 0
    is_live:          bool  = False
    portfolio_pct:    float = 0.0
    latest_buy_price: float = 0.0
    latest_buy_date:  Optional[str] = None


class SignalStatus(str, Enum):
    TRIM       = "Trim / Overvalued"
    ACCUMULATE = "Accumulate"
    MONITOR    = "Monitor"
    HOLD       = "Hold"


@dataclass
class WatchlistSignal:
    """Entry analytics for one held or watched ticker."""
    ticker:           str
    price:            float          # 0 when no quote is known
    target:           float          # effective entry target
    margin_of_safety: float          # percent below intrinsic value
    call_ratio:       float          # target / price
    status:           SignalStatus
    weight:           float          # percent of equity plus deployable cash
    has_supports:     bool = False
    days_held:        Optional[int] = None
    latest_buy_price: float = 0.0
    latest_buy_date:  Optional[str] = None
    item:             Optional[WatchlistItem] = None


@dataclass
class PortfolioReport:
    asset_class:      AssetClass
    total_invested:   float = 0.0
    current_value:    float = 0.0
    realized_pnl:     float = 0.0
    unrealized_pnl:   float = 0.0
    charges:          float = 0.0
    net_realized_pnl: float = 0.0
    dividends:        float = 0.0
    cash_balance:     float = 0.0
    xirr:             float = 0.0      # percent
    win_rate:         float = 0.0      # percent
    holdings:         List[HoldingRow] = field(default_factory=list)
    has_live_data:    bool  = False
    trade_performance: Dict[str, TradePerformance] = field(default_factory=dict)

    @property
    def market_value_ex_cash(self) -> float:
        return self.current_value - self.cash_balance


@dataclass
class NetWorth:
    net_asset_value: float
    net_cash:        float
    net_return_abs:  float
    net_return_pct:  float
    allocations:     Dict[str, float]
    conversion_rate: float
