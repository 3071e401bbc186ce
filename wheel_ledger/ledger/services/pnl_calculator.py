"""
P/L Calculator - derived financial figures for a single position event

Pure functions over a normalized LedgerRecord:
- assignment_pl: share P/L booked when the option is assigned
- net: premium less costs, plus assignment P/L or covered-call share P/L
- capital / roi: collateral basis and return on it
- break_even: per-share underlying price where net is zero
"""

from dataclasses import asdict

from wheel_ledger.core.constants import (
    STRATEGY_CSP, STRATEGY_CC, STATUS_ASSIGNED, STATUS_CLOSED, CONTRACT_MULTIPLIER
)
from wheel_ledger.ledger.models.ledger_record import LedgerRecord, CalculatedRecord


def _strategy(record: LedgerRecord) -> str:
    return (record.strategy or "").upper()


def assignment_pl(record: LedgerRecord) -> float:
    """
    P/L on the shares at assignment

    - CSP: shares bought at strike, so (current_price - strike) per share
    - CC: shares sold at strike, so (strike - current_price) per share
    - Unknown strategy uses the CC formula

    Returns 0.0 unless the event is Assigned with a known current_price.
    """
    if record.status != STATUS_ASSIGNED or record.current_price is None:
        return 0.0

    shares = record.contracts * CONTRACT_MULTIPLIER
    if _strategy(record) == STRATEGY_CSP:
        return (record.current_price - record.strike) * shares
    return (record.strike - record.current_price) * shares


def extra_close(record: LedgerRecord) -> float:
    """Strategy/status dependent amount added on top of the premium net"""
    if record.status == STATUS_ASSIGNED:
        return assignment_pl(record)

    if (record.status == STATUS_CLOSED
            and _strategy(record) == STRATEGY_CC
            and record.opening_price is not None
            and record.current_price is not None):
        # Gain/loss on the shares held under the covered call
        return (record.current_price - record.opening_price) * record.contracts * CONTRACT_MULTIPLIER

    return 0.0


def net(record: LedgerRecord) -> float:
    base = record.premium_received - (record.commission + record.closing_cost)
    return base + extra_close(record)


def capital(record: LedgerRecord) -> float:
    return record.contracts * CONTRACT_MULTIPLIER * record.strike


def roi(record: LedgerRecord) -> float:
    collateral = capital(record)
    return net(record) / collateral if collateral > 0 else 0.0


def net_premium_per_share(record: LedgerRecord) -> float:
    shares = record.contracts * CONTRACT_MULTIPLIER or 1
    return (record.premium_received - record.commission - record.closing_cost) / shares


def break_even(record: LedgerRecord) -> float:
    """
    Per-share break-even

    - CSP: strike less net premium per share
    - CC (and anything else): cost basis of the shares less net premium
      per share, cost basis being opening_price, else current_price,
      else strike
    """
    per_share = net_premium_per_share(record)
    if _strategy(record) == STRATEGY_CSP:
        return record.strike - per_share

    if record.opening_price is not None:
        cost_basis = record.opening_price
    elif record.current_price is not None:
        cost_basis = record.current_price
    else:
        cost_basis = record.strike or 0.0
    return cost_basis - per_share


def annotate(record: LedgerRecord) -> CalculatedRecord:
    """Attach net, roi, capital, break_even and assignment_pl to a record"""
    if record is None:
        raise ValueError("record is REQUIRED")

    values = {name: value for name, value in asdict(record).items()
              if name in LedgerRecord.__dataclass_fields__}
    return CalculatedRecord(
        **values,
        net=net(record),
        roi=roi(record),
        capital=capital(record),
        break_even=break_even(record),
        assignment_pl=assignment_pl(record),
    )
