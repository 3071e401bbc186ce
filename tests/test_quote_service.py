"""
Unit tests for QuoteService

The HTTP session is mocked; no network access.
"""
import pytest
import requests
from unittest.mock import Mock

from wheel_ledger.ledger.services.quote_service import QuoteService
from wheel_ledger.core.constants import CONFIG_FINNHUB_TOKEN, CONFIG_QUOTE_TIMEOUT, FINNHUB_QUOTE_URL


def quote_response(payload, ok=True, status_code=200):
    response = Mock()
    response.ok = ok
    response.status_code = status_code
    response.json.return_value = payload
    return response


class TestQuoteService:
    """Test quote lookups"""

    def setup_method(self):
        self.mock_context = Mock()
        self.mock_state_manager = Mock()
        self.mock_context.state_manager = self.mock_state_manager
        self.config = {CONFIG_FINNHUB_TOKEN: "token-123", CONFIG_QUOTE_TIMEOUT: 5}
        self.mock_state_manager.get_optional_config_value.side_effect = \
            lambda key, default=None: self.config.get(key, default)

        self.session = Mock()
        self.service = QuoteService(self.mock_context, session=self.session)

    def test_null_context_raises_error(self):
        with pytest.raises(ValueError, match="application_context is REQUIRED"):
            QuoteService(None)

    def test_fetches_each_symbol_once(self):
        # Arrange
        self.session.get.return_value = quote_response({"c": 123.45})

        # Act
        quotes = self.service.fetch_quotes(["aapl", "AAPL ", "msft"])

        # Assert
        assert quotes == {"AAPL": 123.45, "MSFT": 123.45}
        assert self.session.get.call_count == 2
        self.session.get.assert_any_call(
            FINNHUB_QUOTE_URL, params={"symbol": "AAPL", "token": "token-123"}, timeout=5
        )

    def test_no_token_skips_lookup(self):
        # Arrange
        self.config[CONFIG_FINNHUB_TOKEN] = None

        # Act
        quotes = self.service.fetch_quotes(["AAPL"])

        # Assert
        assert quotes == {}
        self.session.get.assert_not_called()

    def test_explicit_token_wins(self):
        self.session.get.return_value = quote_response({"current": 10.0})

        quotes = self.service.fetch_quotes(["AAPL"], token="other")

        assert quotes == {"AAPL": 10.0}
        assert self.session.get.call_args.kwargs["params"]["token"] == "other"

    def test_failing_ticker_is_omitted(self):
        # Arrange
        def fake_get(url, params, timeout):
            if params["symbol"] == "BAD":
                raise requests.ConnectionError("boom")
            return quote_response({"c": 50.0})
        self.session.get.side_effect = fake_get

        # Act
        quotes = self.service.fetch_quotes(["BAD", "GOOD"])

        # Assert
        assert quotes == {"GOOD": 50.0}

    def test_non_object_body_is_omitted(self):
        # Arrange
        responses = {
            "AAA": quote_response(["oops"]),
            "BBB": quote_response({"c": 10.0}),
            "CCC": quote_response("n/a"),
        }
        self.session.get.side_effect = lambda url, params, timeout: responses[params["symbol"]]

        # Act
        quotes = self.service.fetch_quotes({"AAA", "BBB", "CCC"})

        # Assert
        assert quotes == {"BBB": 10.0}

    def test_non_positive_and_missing_prices_are_ignored(self):
        # Arrange
        responses = {
            "ZERO": quote_response({"c": 0}),
            "NONE": quote_response({}),
            "HTTP": quote_response({"c": 10.0}, ok=False, status_code=429),
            "TEXT": quote_response({"c": "n/a"}),
        }
        self.session.get.side_effect = lambda url, params, timeout: responses[params["symbol"]]

        # Act
        quotes = self.service.fetch_quotes(responses.keys())

        # Assert
        assert quotes == {}

    def test_none_tickers_raises_error(self):
        with pytest.raises(ValueError, match="tickers is REQUIRED"):
            self.service.fetch_quotes(None)
