"""
PositionEvent Model - One row per logged movement of a CSP/CC position

Rows sharing a chain_id form a chain: an open, zero or more rolls and one
terminal close or assignment. Exactly one row per chain is the live
(current) event while the chain is open.
"""

from sqlalchemy import Column, Integer, String, DateTime, Date, Float, Boolean, Text, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import validates
from wheel_ledger import Base
from wheel_ledger.core.constants import VALID_STATUSES, VALID_MOVEMENTS


class PositionEvent(Base):
    """Append-style history of option position movements"""

    __tablename__ = "position_events"

    # Core identification
    id = Column(Integer, primary_key=True, autoincrement=True)
    chain_id = Column(String(64), nullable=False)  # Stable across rolls
    ticker = Column(String(10), nullable=False)
    strategy = Column(String(20), nullable=False)  # "CSP", "CC" or free text

    # Contract details
    contracts = Column(Integer, nullable=False, default=1)
    strike = Column(Float, nullable=False)

    # Underlying reference prices
    opening_price = Column(Float)  # Spot at open
    current_price = Column(Float)  # Spot at close/roll/assignment

    # Money in and out
    premium_received = Column(Float, nullable=False, default=0.0)
    commission = Column(Float, nullable=False, default=0.0)
    closing_cost = Column(Float, nullable=False, default=0.0)

    # Dates
    start_date = Column(Date, nullable=False)
    expiration_date = Column(Date)
    close_date = Column(Date)
    event_date = Column(DateTime, nullable=False, server_default=func.now())

    # Lifecycle
    status = Column(String(20), nullable=False, default="Open")
    movement_type = Column(String(20), nullable=False, default="open")
    is_current_position = Column(Boolean, nullable=False, default=True)

    note = Column(Text)

    __table_args__ = (
        Index("ix_position_events_chain_id", "chain_id"),
        Index("ix_position_events_is_current", "is_current_position"),
    )

    @validates('status')
    def validate_status(self, key, status):
        """Validate that status is a known lifecycle state"""
        if status not in VALID_STATUSES:
            raise ValueError(f"Status must be one of {VALID_STATUSES}, got '{status}'")
        return status

    @validates('movement_type')
    def validate_movement_type(self, key, movement_type):
        """Validate that movement type is recognized"""
        if movement_type not in VALID_MOVEMENTS:
            raise ValueError(f"Movement type must be one of {VALID_MOVEMENTS}, got '{movement_type}'")
        return movement_type

    @validates('contracts')
    def validate_contracts(self, key, contracts):
        """Validate that at least one contract is held"""
        if contracts is None or int(contracts) < 1:
            raise ValueError(f"Contracts must be >= 1, got '{contracts}'")
        return int(contracts)

    def __repr__(self):
        return f"<PositionEvent(id={self.id}, chain='{self.chain_id}', " \
               f"ticker='{self.ticker}', strategy='{self.strategy}', " \
               f"strike={self.strike}, status='{self.status}', " \
               f"movement='{self.movement_type}', current={self.is_current_position})>"
