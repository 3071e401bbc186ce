"""
QuoteService - Last-price lookup for display

Fetches the last traded price per ticker from Finnhub. A failing ticker
is logged and left out of the result; it never aborts the batch.
"""

import math
from typing import Dict, Iterable, Optional

import requests

from wheel_ledger import logger
from wheel_ledger.core.constants import (
    CONFIG_FINNHUB_TOKEN, CONFIG_QUOTE_TIMEOUT, DEFAULT_QUOTE_TIMEOUT, FINNHUB_QUOTE_URL
)


class QuoteService:
    """Live quote collaborator, used only for display"""

    def __init__(self, application_context, session: Optional[requests.Session] = None):
        if application_context is None:
            raise ValueError("application_context is REQUIRED")

        self.application_context = application_context
        self.state_manager = application_context.state_manager
        self.session = session or requests.Session()
        self.timeout = self.state_manager.get_optional_config_value(CONFIG_QUOTE_TIMEOUT, DEFAULT_QUOTE_TIMEOUT)

    def fetch_quotes(self, tickers: Iterable[str], token: Optional[str] = None) -> Dict[str, float]:
        """
        Fetch last prices for a set of tickers

        Args:
            tickers: Ticker symbols, any case (required)
            token: Finnhub API token (falls back to CONFIG_FINNHUB_TOKEN)

        Returns:
            dict of uppercase ticker -> last price, omitting failures

        Raises:
            ValueError: If tickers is None
        """
        if tickers is None:
            raise ValueError("tickers is REQUIRED")

        token = token or self.state_manager.get_optional_config_value(CONFIG_FINNHUB_TOKEN)
        symbols = sorted({t.strip().upper() for t in tickers if t and t.strip()})
        if not symbols or not token:
            logger.debug("No tickers or no quote token - skipping quote lookup")
            return {}

        quotes = {}
        for symbol in symbols:
            price = self._fetch_quote(symbol, token)
            if price is not None:
                quotes[symbol] = price

        logger.info(f"Fetched {len(quotes)}/{len(symbols)} quotes")
        return quotes

    def _fetch_quote(self, symbol: str, token: str) -> Optional[float]:
        try:
            response = self.session.get(
                FINNHUB_QUOTE_URL,
                params={"symbol": symbol, "token": token},
                timeout=self.timeout,
            )
            if not response.ok:
                logger.warning(f"Quote lookup for {symbol} failed: HTTP {response.status_code}")
                return None

            data = response.json() or {}
            if not isinstance(data, dict):
                logger.warning(f"Quote lookup for {symbol} failed: unexpected body {data!r}")
                return None
            raw = data.get("c", data.get("current"))
            price = float(raw)
        except (requests.RequestException, ValueError, TypeError) as e:
            logger.warning(f"Quote lookup for {symbol} failed: {e}")
            return None

        if not math.isfinite(price) or price <= 0:
            logger.debug(f"Quote for {symbol} ignored: {price}")
            return None
        return price
