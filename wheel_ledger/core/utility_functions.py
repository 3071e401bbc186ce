from datetime import datetime
from wheel_ledger import logger
from wheel_ledger.core.constants import (
    CONFIG_DATABASE_URL, CONFIG_FINNHUB_TOKEN, CONFIG_TIMEZONE, CONFIG_API_HOST,
    CONFIG_API_PORT, CONFIG_QUOTE_TIMEOUT, CONFIG_DEBUG,
    DEFAULT_DATABASE_URL, DEFAULT_TIMEZONE, DEFAULT_QUOTE_TIMEOUT
)
import os
import uuid
import pytz
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def now_local(timezone: str = DEFAULT_TIMEZONE) -> datetime:
    """Current wall-clock time in the given zone, returned naive for storage"""
    return datetime.now(pytz.timezone(timezone)).replace(tzinfo=None, microsecond=0)


def new_chain_id() -> str:
    return str(uuid.uuid4())


def format_money(value) -> str:
    if value is None:
        return "-"
    if value < 0:
        return f"-${abs(value):,.2f}"
    return f"${value:,.2f}"


def format_percent(value) -> str:
    if value is None:
        return "-"
    return f"{value * 100:.2f}%"


def build_config(database_url=None, finnhub_token=None, timezone=None,
                 api_host=None, api_port=None, debug=False):
    """
    Build the configuration dictionary from explicit values with
    environment fallbacks

    Args:
        database_url: SQLAlchemy URL (falls back to WHEEL_LEDGER_DATABASE_URL)
        finnhub_token: Quote API token (falls back to FINNHUB_TOKEN)
        timezone: Timezone used for "today" (falls back to WHEEL_LEDGER_TIMEZONE)
        api_host: Dashboard API bind host
        api_port: Dashboard API port
        debug: Enable debug logging

    Returns:
        dict keyed by CONFIG_* constants
    """
    config = {
        CONFIG_DATABASE_URL: database_url or os.getenv("WHEEL_LEDGER_DATABASE_URL", DEFAULT_DATABASE_URL),
        CONFIG_FINNHUB_TOKEN: finnhub_token or os.getenv("FINNHUB_TOKEN"),
        CONFIG_TIMEZONE: timezone or os.getenv("WHEEL_LEDGER_TIMEZONE", DEFAULT_TIMEZONE),
        CONFIG_API_HOST: api_host or "127.0.0.1",
        CONFIG_API_PORT: api_port or 8000,
        CONFIG_QUOTE_TIMEOUT: int(os.getenv("WHEEL_LEDGER_QUOTE_TIMEOUT", DEFAULT_QUOTE_TIMEOUT)),
        CONFIG_DEBUG: debug,
    }

    if config[CONFIG_TIMEZONE] not in pytz.all_timezones_set:
        raise ValueError(f"Unknown timezone: {config[CONFIG_TIMEZONE]}")

    logger.debug(f"config built: database={config[CONFIG_DATABASE_URL]} timezone={config[CONFIG_TIMEZONE]}")
    return config
