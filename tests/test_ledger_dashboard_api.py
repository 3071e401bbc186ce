"""
Tests for LedgerDashboardApi

Runs the FastAPI app through TestClient against an in-memory store.
"""
import pytest
from unittest.mock import Mock
from fastapi.testclient import TestClient

from wheel_ledger.core.state import State
from wheel_ledger.core.application_context import ApplicationContext
from wheel_ledger.core.utility_functions import build_config
from wheel_ledger.core.constants import CSV_COLUMNS, STATUS_OPEN, STATUS_ROLLED, STATUS_CLOSED, STATUS_ASSIGNED
from wheel_ledger.ledger.ledger_database_manager import LedgerDatabaseManager
from wheel_ledger.ledger.services.lifecycle_service import LifecycleService
from wheel_ledger.ledger.services.aggregation_service import AggregationService
from wheel_ledger.api.ledger_dashboard_api import LedgerDashboardApi

OPEN_BODY = {
    "ticker": "aapl",
    "strategy": "CSP",
    "contracts": 1,
    "strike": 100.0,
    "premium_received": 200.0,
    "commission": 1.0,
    "start_date": "2024-01-02",
    "expiration_date": "2024-01-19",
}


class TestLedgerDashboardApi:
    """Test the HTTP surface"""

    def setup_method(self):
        config = build_config(database_url="sqlite://", timezone="UTC")
        self.context = ApplicationContext(State(config))
        self.context.ledger_db_manager = LedgerDatabaseManager(self.context)
        self.context.lifecycle_service = LifecycleService(self.context)
        self.context.aggregation_service = AggregationService(self.context)
        self.api = LedgerDashboardApi(self.context)
        self.client = TestClient(self.api.app)

    def open_position(self, **overrides):
        body = dict(OPEN_BODY)
        body.update(overrides)
        response = self.client.post("/api/positions", json=body)
        assert response.status_code == 201
        return response.json()

    def test_null_context_raises_error(self):
        with pytest.raises(ValueError, match="application_context is REQUIRED"):
            LedgerDashboardApi(None)

    def test_create_position(self):
        # Act
        created = self.open_position()

        # Assert
        assert created["ticker"] == "AAPL"
        assert created["status"] == STATUS_OPEN
        assert created["is_current_position"] is True
        assert created["start_date"] == "2024-01-02"
        assert created["net"] == pytest.approx(199.0)
        assert created["break_even"] == pytest.approx(98.01)

    def test_invalid_body_is_rejected(self):
        response = self.client.post("/api/positions", json=dict(OPEN_BODY, contracts=0))

        assert response.status_code == 422

    def test_roll_then_get_chain(self):
        # Arrange
        created = self.open_position()

        # Act
        response = self.client.post(f"/api/positions/{created['id']}/roll", json={
            "new_start_date": "2024-01-19",
            "new_strike": 95.0,
            "new_premium": 150.0,
            "closing_cost": 20.0,
        })

        # Assert
        assert response.status_code == 200
        rolled = response.json()
        chain = self.client.get(f"/api/chains/{created['chain_id']}").json()["events"]
        assert [e["id"] for e in chain] == [created["id"], rolled["id"]]
        assert [e["status"] for e in chain] == [STATUS_ROLLED, STATUS_OPEN]

    def test_close_twice_is_conflict(self):
        # Arrange
        created = self.open_position()
        url = f"/api/positions/{created['id']}/close"

        # Act
        first = self.client.post(url, json={"close_date": "2024-01-10"})
        second = self.client.post(url, json={"close_date": "2024-01-11"})

        # Assert
        assert first.status_code == 200
        assert first.json()["status"] == STATUS_CLOSED
        assert second.status_code == 409

    def test_assign_and_revert(self):
        # Arrange
        created = self.open_position()

        # Act
        assigned = self.client.post(f"/api/positions/{created['id']}/assign",
                                    json={"close_date": "2024-01-19", "current_price": 95.0}).json()
        reverted = self.client.post(f"/api/positions/{created['id']}/revert-assignment")

        # Assert
        assert assigned["status"] == STATUS_ASSIGNED
        assert assigned["assignment_pl"] == pytest.approx(-500.0)
        assert reverted.status_code == 200
        assert reverted.json()["status"] == STATUS_OPEN

    def test_revert_close_on_open_event_is_conflict(self):
        created = self.open_position()

        response = self.client.post(f"/api/positions/{created['id']}/revert-close")

        assert response.status_code == 409

    def test_unknown_event_is_not_found(self):
        response = self.client.post("/api/positions/999/close", json={"close_date": "2024-01-10"})

        assert response.status_code == 404

    def test_update_position(self):
        created = self.open_position()

        response = self.client.put(f"/api/positions/{created['id']}", json=dict(OPEN_BODY, strike=90.0))

        assert response.status_code == 200
        assert response.json()["strike"] == 90.0

    def test_positions_and_summary(self):
        # Arrange
        self.open_position(ticker="aapl", premium_received=1000.0)
        self.open_position(ticker="msft", premium_received=500.0)

        # Act
        positions = self.client.get("/api/positions").json()["positions"]
        summary = self.client.get("/api/summary").json()

        # Assert
        assert {p["ticker"] for p in positions} == {"AAPL", "MSFT"}
        assert [t["ticker"] for t in summary["tickers"]] == ["AAPL", "MSFT"]
        assert summary["totals"]["open_positions"] == 2
        assert summary["general_roi"] == pytest.approx((0.0999 + 0.0499) / 2)

    def test_positions_with_live_quotes(self):
        # Arrange
        self.open_position()
        self.context.quote_service = Mock()
        self.context.quote_service.fetch_quotes.return_value = {"AAPL": 101.0}

        # Act
        positions = self.client.get("/api/positions", params={"quotes": True}).json()["positions"]

        # Assert
        assert positions[0]["display_price"] == 101.0

    def test_history_filters_and_pages(self):
        # Arrange
        for ticker in ("aapl", "aal", "msft"):
            self.open_position(ticker=ticker)

        # Act
        result = self.client.get("/api/history", params={"ticker": "aa", "page": 1, "page_size": 1}).json()

        # Assert
        assert result["total_items"] == 2
        assert result["total_pages"] == 2
        assert len(result["items"]) == 1

    def test_export_and_import(self):
        # Arrange
        self.open_position()

        # Act
        exported = self.client.get("/api/export")
        imported = self.client.post("/api/import", json={"csv": exported.text})

        # Assert
        assert exported.status_code == 200
        assert "historial-bitacora-" in exported.headers["content-disposition"]
        assert exported.text.split("\n")[0] == ",".join(CSV_COLUMNS)
        assert imported.json() == {"imported": 1}
        assert self.client.get("/api/history").json()["total_items"] == 2

    def test_import_bad_header_is_bad_request(self):
        response = self.client.post("/api/import", json={"csv": "ticker,strike\nAAPL,100"})

        assert response.status_code == 400
        assert "missing columns" in response.json()["detail"]
