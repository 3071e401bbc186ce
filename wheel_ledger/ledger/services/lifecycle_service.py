"""
LifecycleService - Open, roll, close, assign and revert position chains

Every transition on a live event is a conditional update guarded by
id = target AND is_current_position = true, so two callers racing on the
same chain cannot both apply a transition: the loser sees zero affected
rows and gets InvalidStateTransitionError. Each operation returns the
resulting CalculatedRecord; callers decide when to refresh their views.
"""

from dataclasses import replace
from typing import List, Iterable, Optional

from wheel_ledger import logger
from wheel_ledger.core.constants import *
from wheel_ledger.core.exceptions import (
    LedgerValidationError, EventNotFoundError, InvalidStateTransitionError
)
from wheel_ledger.core.utility_functions import now_local, new_chain_id
from wheel_ledger.ledger.models.ledger_record import (
    LedgerRecord, CalculatedRecord, OpenPayload, RollPayload, ClosePayload, AssignmentPayload
)
from wheel_ledger.ledger.services.record_normalizer import normalize_row, record_to_row
from wheel_ledger.ledger.services import pnl_calculator


class LifecycleService:
    """Command/query service over the position event store"""

    def __init__(self, application_context):
        if application_context is None:
            raise ValueError("application_context is REQUIRED")

        self.application_context = application_context
        self.state_manager = application_context.state_manager
        self.db_manager = application_context.ledger_db_manager
        if self.db_manager is None:
            raise ValueError("ledger_db_manager is REQUIRED")

    def _now(self):
        timezone = self.state_manager.get_optional_config_value(CONFIG_TIMEZONE, DEFAULT_TIMEZONE)
        return now_local(timezone)

    @staticmethod
    def _calculate(row) -> CalculatedRecord:
        return pnl_calculator.annotate(normalize_row(row))

    # ==================== Validation ====================

    @staticmethod
    def _require_non_negative(**amounts):
        for name, value in amounts.items():
            if value is None:
                raise LedgerValidationError(f"{name} is REQUIRED")
            if value < 0:
                raise LedgerValidationError(f"{name} must be >= 0, got {value}")

    def _validate_open_payload(self, payload: OpenPayload):
        if payload is None:
            raise LedgerValidationError("payload is REQUIRED")
        if not payload.ticker or not payload.ticker.strip():
            raise LedgerValidationError("ticker is REQUIRED")
        if not payload.strategy or not payload.strategy.strip():
            raise LedgerValidationError("strategy is REQUIRED")
        if payload.contracts is None or payload.contracts < 1:
            raise LedgerValidationError("contracts is REQUIRED and must be >= 1")
        if payload.strike is None or payload.strike <= 0:
            raise LedgerValidationError("strike is REQUIRED and must be > 0")
        if not payload.start_date:
            raise LedgerValidationError("start_date is REQUIRED")
        self._require_non_negative(premium_received=payload.premium_received,
                                   commission=payload.commission)
        if payload.opening_price is not None and payload.opening_price < 0:
            raise LedgerValidationError("opening_price must be >= 0")

    def _open_fields(self, payload: OpenPayload) -> dict:
        return {
            "ticker": payload.ticker.strip().upper(),
            "strategy": payload.strategy.strip().upper(),
            "contracts": int(payload.contracts),
            "strike": float(payload.strike),
            "premium_received": float(payload.premium_received),
            "commission": float(payload.commission),
            "start_date": payload.start_date,
            "expiration_date": payload.expiration_date or None,
            "opening_price": payload.opening_price,
            "note": payload.note or None,
        }

    # ==================== Lookups ====================

    def _load(self, event_id: int) -> LedgerRecord:
        if not event_id:
            raise LedgerValidationError("event_id is REQUIRED")

        row = self.db_manager.get_event(event_id)
        if row is None:
            raise EventNotFoundError(f"Position event {event_id} not found")
        return normalize_row(row)

    def _load_current(self, event_id: int, operation: str) -> LedgerRecord:
        record = self._load(event_id)
        if not record.is_current_position:
            raise InvalidStateTransitionError(
                f"Cannot {operation} event {event_id}: expected the current event of its chain "
                f"(status: {record.status})"
            )
        return record

    def _current_update(self, event_id: int, patch: dict, operation: str,
                        status: Optional[str] = None) -> CalculatedRecord:
        filters = {"id": event_id, "is_current_position": True}
        if status is not None:
            filters["status"] = status
        row = self.db_manager.update_events(filters, patch)
        if row is None:
            raise InvalidStateTransitionError(
                f"Cannot {operation} event {event_id}: it is no longer the current event of its chain"
            )
        return self._calculate(row)

    # ==================== Queries ====================

    def get_current_positions(self) -> List[CalculatedRecord]:
        """Live events of every open chain, newest start first"""
        rows = self.db_manager.select_events(
            {"is_current_position": True},
            order_by=[("start_date", True), ("id", True)]
        )
        return [self._calculate(row) for row in rows]

    def get_history(self) -> List[CalculatedRecord]:
        """Every event, newest first"""
        rows = self.db_manager.select_events(order_by=[("event_date", True), ("id", True)])
        return [self._calculate(row) for row in rows]

    def get_chain(self, chain_id: str) -> List[CalculatedRecord]:
        """
        Events of one chain in chain order (event_date, then id)

        Raises:
            LedgerValidationError: If chain_id is missing
            EventNotFoundError: If the chain has no events
        """
        if not chain_id:
            raise LedgerValidationError("chain_id is REQUIRED")

        rows = self.db_manager.select_events(
            {"chain_id": chain_id},
            order_by=[("event_date", False), ("id", False)]
        )
        if not rows:
            raise EventNotFoundError(f"Chain {chain_id} not found")
        return [self._calculate(row) for row in rows]

    # ==================== Transitions ====================

    def create_position(self, payload: OpenPayload) -> CalculatedRecord:
        """
        Open a new chain

        Raises:
            LedgerValidationError: If the payload is malformed
        """
        self._validate_open_payload(payload)

        row = self._open_fields(payload)
        row.update({
            "chain_id": new_chain_id(),
            "current_price": None,
            "closing_cost": 0.0,
            "close_date": None,
            "event_date": self._now(),
            "status": STATUS_OPEN,
            "movement_type": MOVEMENT_OPEN,
            "is_current_position": True,
        })

        inserted = self.db_manager.insert_events([row])[0]
        record = self._calculate(inserted)
        logger.info(f"Position opened: {record.id} {record.ticker} {record.strategy} "
                    f"{record.contracts}x{record.strike} chain {record.chain_id}")
        return record

    def update_position(self, event_id: int, payload: OpenPayload) -> CalculatedRecord:
        """
        Edit the input fields of an open current event in place

        Raises:
            LedgerValidationError: If the payload is malformed
            EventNotFoundError: If the event does not exist
            InvalidStateTransitionError: If the event is not current and Open
        """
        self._validate_open_payload(payload)
        current = self._load_current(event_id, "update")
        if current.status != STATUS_OPEN:
            raise InvalidStateTransitionError(
                f"Cannot update event {event_id}: expected status {STATUS_OPEN}, got {current.status}"
            )

        record = self._current_update(event_id, self._open_fields(payload), "update", status=STATUS_OPEN)
        logger.info(f"Position {event_id} updated")
        return record

    def roll_position(self, payload: RollPayload) -> CalculatedRecord:
        """
        Supersede the current event with a new leg on the same chain

        The superseded event becomes Rolled/non-current and accumulates the
        cost of closing it; the new event is Open/current with the new
        strike, expiry and premium. Both writes commit together.

        Returns:
            The new current event

        Raises:
            LedgerValidationError: If the payload is malformed
            EventNotFoundError: If the event does not exist
            InvalidStateTransitionError: If the event is not current
        """
        if payload is None:
            raise LedgerValidationError("payload is REQUIRED")
        if not payload.new_start_date:
            raise LedgerValidationError("new_start_date is REQUIRED")
        if payload.new_strike is None or payload.new_strike <= 0:
            raise LedgerValidationError("new_strike is REQUIRED and must be > 0")
        self._require_non_negative(new_premium=payload.new_premium,
                                   new_commission=payload.new_commission,
                                   closing_cost=payload.closing_cost,
                                   closing_commission=payload.closing_commission)
        if payload.current_price is not None and payload.current_price < 0:
            raise LedgerValidationError("current_price must be >= 0")

        current = self._load_current(payload.id, "roll")

        current_price = payload.current_price if payload.current_price is not None else current.current_price
        patch = {
            "is_current_position": False,
            "status": STATUS_ROLLED,
            "movement_type": MOVEMENT_ROLL,
            "close_date": payload.new_start_date,
            "closing_cost": current.closing_cost + payload.closing_cost,
            "commission": current.commission + payload.closing_commission,
            "current_price": current_price,
            "note": payload.note or current.note,
        }
        new_row = {
            "chain_id": current.chain_id,
            "ticker": current.ticker,
            "strategy": current.strategy,
            "contracts": current.contracts,
            "strike": float(payload.new_strike),
            "opening_price": payload.current_price if payload.current_price is not None else current.opening_price,
            "current_price": None,
            "premium_received": float(payload.new_premium),
            "commission": float(payload.new_commission),
            "closing_cost": 0.0,
            "start_date": payload.new_start_date,
            "expiration_date": payload.new_expiration_date or None,
            "close_date": None,
            "event_date": self._now(),
            "status": STATUS_OPEN,
            "movement_type": MOVEMENT_ROLL,
            "is_current_position": True,
            "note": payload.note or None,
        }

        updated, inserted = self.db_manager.update_and_insert(
            {"id": payload.id, "is_current_position": True}, patch, new_row
        )
        if updated is None:
            raise InvalidStateTransitionError(
                f"Cannot roll event {payload.id}: it is no longer the current event of its chain"
            )

        record = self._calculate(inserted)
        logger.info(f"Position {payload.id} rolled into {record.id} "
                    f"({current.strike} -> {record.strike}) chain {record.chain_id}")
        return record

    def close_position(self, payload: ClosePayload) -> CalculatedRecord:
        """
        Close the current event of a chain

        Raises:
            LedgerValidationError: If the payload is malformed
            EventNotFoundError: If the event does not exist
            InvalidStateTransitionError: If the event is not current
        """
        if payload is None:
            raise LedgerValidationError("payload is REQUIRED")
        if not payload.close_date:
            raise LedgerValidationError("close_date is REQUIRED")
        self._require_non_negative(closing_cost=payload.closing_cost, commission=payload.commission)
        if payload.current_price is not None and payload.current_price < 0:
            raise LedgerValidationError("current_price must be >= 0")

        current = self._load_current(payload.id, "close")

        patch = {
            "is_current_position": False,
            "status": STATUS_CLOSED,
            "movement_type": MOVEMENT_CLOSE,
            "close_date": payload.close_date,
            "closing_cost": float(payload.closing_cost),
            "commission": float(payload.commission),
            "current_price": payload.current_price,
            "note": payload.note or current.note,
        }
        record = self._current_update(payload.id, patch, "close")
        logger.info(f"Position {payload.id} closed: net {record.net:.2f}")
        return record

    def assign_position(self, payload: AssignmentPayload) -> CalculatedRecord:
        """
        Record assignment of the current event

        An assignment loss is booked as an extra closing cost on top of
        whatever closing cost the event already carried.

        Raises:
            LedgerValidationError: If the payload is malformed
            EventNotFoundError: If the event does not exist
            InvalidStateTransitionError: If the event is not current
        """
        if payload is None:
            raise LedgerValidationError("payload is REQUIRED")
        if not payload.close_date:
            raise LedgerValidationError("close_date is REQUIRED")
        if payload.current_price is None or payload.current_price <= 0:
            raise LedgerValidationError("current_price is REQUIRED and must be > 0")
        if payload.commission is not None and payload.commission < 0:
            raise LedgerValidationError("commission must be >= 0")

        current = self._load_current(payload.id, "assign")

        pl = pnl_calculator.assignment_pl(
            replace(current, status=STATUS_ASSIGNED, current_price=payload.current_price)
        )
        assignment_cost = -pl if pl < 0 else 0.0
        commission = payload.commission if payload.commission is not None else current.commission

        patch = {
            "is_current_position": False,
            "status": STATUS_ASSIGNED,
            "movement_type": MOVEMENT_ASSIGNMENT,
            "close_date": payload.close_date,
            "current_price": float(payload.current_price),
            "commission": float(commission),
            "closing_cost": current.closing_cost + assignment_cost,
            "note": payload.note or current.note,
        }
        record = self._current_update(payload.id, patch, "assign")
        logger.info(f"Position {payload.id} assigned at {payload.current_price}: "
                    f"assignment P/L {pl:.2f}")
        return record

    def revert_assignment(self, event_id: int) -> CalculatedRecord:
        """Undo an assignment, making the event Open and current again"""
        return self._revert(event_id, STATUS_ASSIGNED, "revert assignment of")

    def revert_close(self, event_id: int) -> CalculatedRecord:
        """Undo a close, making the event Open and current again"""
        return self._revert(event_id, STATUS_CLOSED, "revert close of")

    def _revert(self, event_id: int, required_status: str, operation: str) -> CalculatedRecord:
        """
        Raises:
            EventNotFoundError: If the event does not exist
            InvalidStateTransitionError: If the status differs from
                required_status or the chain already has a current event
        """
        record = self._load(event_id)
        if record.status != required_status:
            raise InvalidStateTransitionError(
                f"Cannot {operation} event {event_id}: expected status {required_status}, got {record.status}"
            )

        live = self.db_manager.select_events({"chain_id": record.chain_id, "is_current_position": True})
        if live:
            raise InvalidStateTransitionError(
                f"Cannot {operation} event {event_id}: chain {record.chain_id} already has "
                f"current event {live[0]['id']}"
            )

        patch = {
            "status": STATUS_OPEN,
            "is_current_position": True,
            "movement_type": MOVEMENT_OPEN,
            "close_date": None,
            "current_price": None,
            "closing_cost": 0.0,
            "commission": 0.0,
        }
        row = self.db_manager.update_events(
            {"id": event_id, "status": required_status, "is_current_position": False}, patch
        )
        if row is None:
            raise InvalidStateTransitionError(
                f"Cannot {operation} event {event_id}: it changed while reverting"
            )

        logger.info(f"Position {event_id} reverted from {required_status} to {STATUS_OPEN}")
        return self._calculate(row)

    # ==================== Bulk import ====================

    def import_history(self, records: Iterable[LedgerRecord]) -> List[CalculatedRecord]:
        """
        Insert a batch of records (for example parsed from CSV) in one call

        All records are validated before anything is written; a store
        failure surfaces as a single error for the whole batch.

        Raises:
            LedgerValidationError: If any record is malformed
        """
        if records is None:
            raise LedgerValidationError("records is REQUIRED")

        rows = []
        for index, record in enumerate(records, start=1):
            if not record.ticker:
                raise LedgerValidationError(f"Row {index}: ticker is REQUIRED")
            if record.contracts < 1:
                raise LedgerValidationError(f"Row {index}: contracts must be >= 1")
            if record.status not in VALID_STATUSES:
                raise LedgerValidationError(f"Row {index}: unknown status '{record.status}'")
            if record.movement_type not in VALID_MOVEMENTS:
                raise LedgerValidationError(f"Row {index}: unknown movement type '{record.movement_type}'")
            if record.start_date is None:
                raise LedgerValidationError(f"Row {index}: start_date is REQUIRED")
            if min(record.premium_received, record.commission, record.closing_cost) < 0:
                raise LedgerValidationError(f"Row {index}: monetary fields must be >= 0")

            row = record_to_row(record)
            row["ticker"] = record.ticker.upper()
            row["chain_id"] = record.chain_id or new_chain_id()
            row["event_date"] = record.event_date or self._now()
            rows.append(row)

        if not rows:
            return []

        inserted = self.db_manager.insert_events(rows)
        logger.info(f"Imported {len(inserted)} position events")
        return [self._calculate(row) for row in inserted]


def check_chain(records: List[LedgerRecord]) -> List[str]:
    """
    Report transition-rule violations within one chain

    Expected shape, ordered by event_date then id: zero or more Rolled
    non-current roll events followed by a last event that is either
    Open/current, Closed or Assigned. At most one event is current.

    Returns:
        List of human readable problems (empty when the chain is valid)
    """
    if not records:
        return []

    problems = []
    ordered = sorted(records, key=lambda r: (r.event_date is not None, r.event_date or 0, r.id or 0))
    chain_ids = {r.chain_id for r in ordered}
    if len(chain_ids) > 1:
        problems.append(f"events span several chains: {sorted(chain_ids)}")

    current = [r for r in ordered if r.is_current_position]
    if len(current) > 1:
        problems.append(f"{len(current)} current events: {[r.id for r in current]}")

    for record in ordered[:-1]:
        if record.status != STATUS_ROLLED or record.movement_type != MOVEMENT_ROLL:
            problems.append(f"event {record.id} is superseded but is {record.status}/{record.movement_type}")
        if record.is_current_position:
            problems.append(f"event {record.id} is superseded but still current")

    last = ordered[-1]
    expected_movements = {
        STATUS_OPEN: (MOVEMENT_OPEN, MOVEMENT_ROLL),
        STATUS_CLOSED: (MOVEMENT_CLOSE,),
        STATUS_ASSIGNED: (MOVEMENT_ASSIGNMENT,),
    }
    if last.status not in expected_movements:
        problems.append(f"last event {last.id} has non-terminal status {last.status}")
    elif last.movement_type not in expected_movements[last.status]:
        problems.append(f"last event {last.id} is {last.status} with movement {last.movement_type}")
    if (last.status == STATUS_OPEN) != last.is_current_position:
        problems.append(f"last event {last.id} current flag does not match status {last.status}")

    for record in ordered:
        if record.status == STATUS_OPEN and (record.close_date is not None or record.current_price is not None):
            problems.append(f"open event {record.id} carries close data")

    return problems
