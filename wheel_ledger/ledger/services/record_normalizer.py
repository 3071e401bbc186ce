"""
Record normalizer - turns loosely typed store rows into LedgerRecords

The store (and CSV files) hand back strings, numbers, None and ORM rows
mixed together. Everything downstream only ever sees LedgerRecord.
Numeric coercion fails closed to a fallback value and never raises.
"""

import math
from datetime import datetime, date
from typing import Any, Dict, Optional

from dateutil import parser as date_parser

from wheel_ledger.core.constants import STATUS_OPEN, MOVEMENT_OPEN
from wheel_ledger.ledger.models.ledger_record import LedgerRecord

RECORD_FIELDS = [
    "id", "chain_id", "ticker", "strategy", "contracts", "strike",
    "opening_price", "current_price", "premium_received", "commission",
    "closing_cost", "start_date", "expiration_date", "close_date",
    "event_date", "status", "movement_type", "is_current_position", "note",
]

TRUE_STRINGS = {"true", "t", "1", "yes", "y"}


def to_number(value: Any, fallback: float = 0.0) -> float:
    """Coerce to float; None, blanks, garbage, NaN and inf become fallback"""
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def to_optional_number(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    number = to_number(value, fallback=math.nan)
    return None if math.isnan(number) else number


def to_int(value: Any, fallback: int = 0) -> int:
    number = to_number(value, fallback=math.nan)
    return fallback if math.isnan(number) else int(number)


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def to_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text:
        return None
    try:
        return date_parser.isoparse(text)
    except (ValueError, OverflowError):
        try:
            return date_parser.parse(text)
        except (ValueError, OverflowError):
            return None


def to_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = to_datetime(value)
    return parsed.date() if parsed is not None else None


def to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def row_to_dict(row: Any) -> Dict[str, Any]:
    """Read a dict, an ORM row or any attribute bag into a plain dict"""
    if row is None:
        raise ValueError("row is REQUIRED")
    if isinstance(row, dict):
        return row
    if hasattr(row, "__table__"):
        return {column.name: getattr(row, column.name) for column in row.__table__.columns}
    return {name: getattr(row, name, None) for name in RECORD_FIELDS}


def normalize_row(raw: Any) -> LedgerRecord:
    """
    Canonicalize a raw store row into a LedgerRecord

    Args:
        raw: dict or ORM row with the position event columns (required)

    Returns:
        LedgerRecord with numeric, boolean and nullable fields coerced

    Raises:
        ValueError: If raw is None
    """
    data = row_to_dict(raw)

    raw_id = data.get("id")
    record_id = to_int(raw_id) if raw_id not in (None, "") else None

    return LedgerRecord(
        id=record_id,
        chain_id=str(data.get("chain_id") or ""),
        ticker=str(data.get("ticker") or "").strip().upper(),
        strategy=str(data.get("strategy") or "").strip(),
        contracts=to_int(data.get("contracts"), fallback=0),
        strike=to_number(data.get("strike")),
        opening_price=to_optional_number(data.get("opening_price")),
        current_price=to_optional_number(data.get("current_price")),
        premium_received=to_number(data.get("premium_received")),
        commission=to_number(data.get("commission")),
        closing_cost=to_number(data.get("closing_cost")),
        start_date=to_date(data.get("start_date")),
        expiration_date=to_date(data.get("expiration_date")),
        close_date=to_date(data.get("close_date")),
        event_date=to_datetime(data.get("event_date")),
        status=str(data.get("status") or STATUS_OPEN).strip(),
        movement_type=str(data.get("movement_type") or MOVEMENT_OPEN).strip(),
        is_current_position=to_bool(data.get("is_current_position")),
        note=to_text(data.get("note")),
    )


def record_to_row(record: LedgerRecord, include_id: bool = False) -> Dict[str, Any]:
    """Store-ready dict for a record; derived fields are never persisted"""
    row = {name: getattr(record, name) for name in RECORD_FIELDS}
    if not include_id:
        row.pop("id")
    return row
