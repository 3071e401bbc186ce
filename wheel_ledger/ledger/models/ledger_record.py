"""
Typed ledger records and transition payloads

LedgerRecord is the strict in-memory shape of a position event; nothing
loosely typed from the store gets past the normalizer. CalculatedRecord
carries the derived financial fields next to the raw inputs.
"""

from dataclasses import dataclass
from datetime import datetime, date
from typing import Optional

from wheel_ledger.core.constants import CONTRACT_MULTIPLIER


@dataclass(frozen=True)
class LedgerRecord:
    """Normalized position event"""
    id: Optional[int]
    chain_id: str
    ticker: str
    strategy: str
    contracts: int
    strike: float
    opening_price: Optional[float]
    current_price: Optional[float]
    premium_received: float
    commission: float
    closing_cost: float
    start_date: Optional[date]
    expiration_date: Optional[date]
    close_date: Optional[date]
    event_date: Optional[datetime]
    status: str
    movement_type: str
    is_current_position: bool
    note: Optional[str] = None

    @property
    def shares(self) -> int:
        return self.contracts * CONTRACT_MULTIPLIER


@dataclass(frozen=True)
class CalculatedRecord(LedgerRecord):
    """Position event annotated with derived P/L figures"""
    net: float = 0.0
    roi: float = 0.0
    capital: float = 0.0
    break_even: float = 0.0
    assignment_pl: float = 0.0


@dataclass
class OpenPayload:
    """Fields supplied when opening (or editing) a position"""
    ticker: str
    strategy: str
    contracts: int
    strike: float
    premium_received: float
    start_date: date
    commission: float = 0.0
    expiration_date: Optional[date] = None
    opening_price: Optional[float] = None
    note: Optional[str] = None


@dataclass
class RollPayload:
    """
    Roll of the current leg into a new one on the same chain

    closing_cost and closing_commission are charged to the leg being
    closed; new_commission is charged to the new leg.
    """
    id: int
    new_start_date: date
    new_strike: float
    new_premium: float
    new_commission: float = 0.0
    closing_cost: float = 0.0
    closing_commission: float = 0.0
    new_expiration_date: Optional[date] = None
    current_price: Optional[float] = None
    note: Optional[str] = None


@dataclass
class ClosePayload:
    id: int
    close_date: date
    closing_cost: float = 0.0
    commission: float = 0.0
    current_price: Optional[float] = None
    note: Optional[str] = None


@dataclass
class AssignmentPayload:
    id: int
    close_date: date
    current_price: float
    commission: Optional[float] = None
    note: Optional[str] = None


@dataclass
class TickerSummary:
    """Per-ticker rollup used for the ROI ranking"""
    ticker: str
    premium: float
    costs: float
    net: float
    current_capital: float
    max_capital: float
    capital: float
    shares: int
    break_even: float
    roi: float


@dataclass
class PortfolioTotals:
    total_premium: float
    total_commission: float
    total_closing_cost: float
    net_total: float
    collateral_total: float
    portfolio_roi: float
    open_positions: int = 0
    events: int = 0
