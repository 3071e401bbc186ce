"""
LedgerDatabaseManager - Record store for position events

Exposes the three primitives the lifecycle engine relies on:
- select_events(filters, order_by) -> raw rows
- update_events(filters, patch) -> updated row or None (compare-and-swap)
- insert_events(rows) -> stored rows with ids

Rows leave this class as plain dicts; typing them is the normalizer's job.
Follows same session handling as the other database managers.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from wheel_ledger import logger, Base
from wheel_ledger.core.constants import CONFIG_DATABASE_URL
from typing import List, Dict, Optional, Tuple, Any
import os

from wheel_ledger.ledger.models.position_event import PositionEvent


class LedgerDatabaseManager:
    """Database manager for the position event ledger - uses SQLAlchemy declarative models"""

    def __init__(self, application_context):
        if application_context is None:
            raise ValueError("application_context is REQUIRED")

        self.application_context = application_context
        self.state_manager = application_context.state_manager

        db_url = self.state_manager.get_config_value(CONFIG_DATABASE_URL)
        if not db_url:
            raise ValueError("CONFIG_DATABASE_URL is REQUIRED")

        self.engine = self._create_engine(db_url)
        self.Session = sessionmaker(bind=self.engine)

        # Create tables if they don't exist
        Base.metadata.create_all(bind=self.engine)

        logger.info("LedgerDatabaseManager initialized - tables created from models")

    def _create_engine(self, db_url: str):
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            # Single shared connection so every session sees the same in-memory db
            return create_engine(db_url, connect_args={"check_same_thread": False}, poolclass=StaticPool)

        if db_url.startswith("sqlite:///"):
            directory = os.path.dirname(db_url[len("sqlite:///"):])
            if directory:
                os.makedirs(directory, exist_ok=True)
        return create_engine(db_url)

    def get_session(self):
        """Get a database session"""
        return self.Session()

    @staticmethod
    def _to_raw(event: PositionEvent) -> Dict[str, Any]:
        return {column.name: getattr(event, column.name) for column in PositionEvent.__table__.columns}

    @staticmethod
    def _apply_filters(query, filters: Optional[Dict[str, Any]]):
        for name, value in (filters or {}).items():
            if name not in PositionEvent.__table__.columns:
                raise ValueError(f"Unknown filter column: {name}")
            query = query.filter(getattr(PositionEvent, name) == value)
        return query

    # ==================== Queries ====================

    def select_events(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[List[Tuple[str, bool]]] = None
    ) -> List[Dict[str, Any]]:
        """
        Select events matching all equality filters

        Args:
            filters: column -> value, combined with AND (optional)
            order_by: list of (column, descending) pairs (optional)

        Returns:
            List of raw row dicts

        Raises:
            ValueError: If a filter or order column is unknown
        """
        session = self.get_session()
        try:
            query = self._apply_filters(session.query(PositionEvent), filters)

            for name, descending in (order_by or []):
                if name not in PositionEvent.__table__.columns:
                    raise ValueError(f"Unknown order column: {name}")
                column = getattr(PositionEvent, name)
                query = query.order_by(column.desc() if descending else column.asc())

            rows = [self._to_raw(event) for event in query.all()]
            logger.debug(f"select_events filters={filters} -> {len(rows)} rows")
            return rows
        finally:
            session.close()

    def get_event(self, event_id: int) -> Optional[Dict[str, Any]]:
        """
        Get a single event by id

        Raises:
            ValueError: If event_id is missing
        """
        if not event_id:
            raise ValueError("event_id is REQUIRED")

        rows = self.select_events({"id": event_id})
        return rows[0] if rows else None

    # ==================== Mutations ====================

    def update_events(self, filters: Dict[str, Any], patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Conditionally update the single event matching filters

        The filter acts as a compare-and-swap predicate: when another caller
        already changed the row, zero rows match and nothing is written.

        Args:
            filters: Must include "id" (required)
            patch: column -> new value (required)

        Returns:
            The updated row, or None when zero rows were affected

        Raises:
            ValueError: If filters lack an id or patch is empty
        """
        if not filters or "id" not in filters:
            raise ValueError("filters with id is REQUIRED")
        if not patch:
            raise ValueError("patch is REQUIRED")

        session = self.get_session()
        try:
            affected = self._apply_filters(session.query(PositionEvent), filters) \
                .update(patch, synchronize_session=False)

            if affected == 0:
                session.rollback()
                logger.warning(f"update_events affected 0 rows for filters {filters}")
                return None

            session.commit()
            updated = session.get(PositionEvent, filters["id"])
            logger.info(f"Position event {filters['id']} updated: {sorted(patch.keys())}")
            return self._to_raw(updated)

        except Exception as e:
            session.rollback()
            logger.error(f"Error updating position event: {e}")
            raise
        finally:
            session.close()

    def insert_events(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Bulk insert events in a single transaction

        Args:
            rows: List of column dicts without id (required)

        Returns:
            Stored rows including store-assigned ids

        Raises:
            ValueError: If rows is None
        """
        if rows is None:
            raise ValueError("rows is REQUIRED")
        if not rows:
            return []

        session = self.get_session()
        try:
            events = [PositionEvent(**row) for row in rows]
            session.add_all(events)
            session.commit()

            stored = [self._to_raw(event) for event in events]
            logger.info(f"Inserted {len(stored)} position events")
            return stored

        except Exception as e:
            session.rollback()
            logger.error(f"Error inserting position events: {e}")
            raise
        finally:
            session.close()

    def update_and_insert(
        self,
        filters: Dict[str, Any],
        patch: Dict[str, Any],
        row: Dict[str, Any]
    ) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
        """
        Conditionally update one event and insert another atomically

        Used by roll: the superseded event and its successor are committed
        together, or not at all.

        Returns:
            (updated row, inserted row), or (None, None) when the
            conditional update matched zero rows

        Raises:
            ValueError: If any parameter is missing
        """
        if not filters or "id" not in filters:
            raise ValueError("filters with id is REQUIRED")
        if not patch:
            raise ValueError("patch is REQUIRED")
        if not row:
            raise ValueError("row is REQUIRED")

        session = self.get_session()
        try:
            affected = self._apply_filters(session.query(PositionEvent), filters) \
                .update(patch, synchronize_session=False)

            if affected == 0:
                session.rollback()
                logger.warning(f"update_and_insert affected 0 rows for filters {filters}")
                return None, None

            inserted = PositionEvent(**row)
            session.add(inserted)
            session.commit()

            updated = session.get(PositionEvent, filters["id"])
            logger.info(f"Position event {filters['id']} superseded by {inserted.id}")
            return self._to_raw(updated), self._to_raw(inserted)

        except Exception as e:
            session.rollback()
            logger.error(f"Error in update_and_insert: {e}")
            raise
        finally:
            session.close()
