#!/usr/bin/env python3
"""
Wheel Ledger - CSP / CC position ledger
Export, import and report on the position event history, or serve the
dashboard API.
"""

from wheel_ledger.core.state import State
from wheel_ledger.core.application_context import ApplicationContext
from wheel_ledger.core.command_invoker import CommandInvoker
from wheel_ledger.core.constants import *
from wheel_ledger.core.utility_functions import build_config
from wheel_ledger.ledger.ledger_database_manager import LedgerDatabaseManager
from wheel_ledger.ledger.services.lifecycle_service import LifecycleService
from wheel_ledger.ledger.services.aggregation_service import AggregationService
from wheel_ledger.ledger.services.quote_service import QuoteService
from wheel_ledger.ledger.commands.export_history_command import ExportHistoryCommand
from wheel_ledger.ledger.commands.import_history_command import ImportHistoryCommand
from wheel_ledger.ledger.commands.portfolio_report_command import (
    PortfolioReportCommand, OpenPositionsReportCommand
)
from wheel_ledger import logger
import warnings
import argparse
import logging
import sys

warnings.simplefilter(action='ignore', category=FutureWarning)


def build_application_context(config) -> ApplicationContext:
    """Wire the database manager and services into a fresh context"""
    state_manager = State(config)
    application_context = ApplicationContext(state_manager)

    # Initialize database manager FIRST so services can access it
    application_context.ledger_db_manager = LedgerDatabaseManager(application_context)
    application_context.lifecycle_service = LifecycleService(application_context)
    application_context.aggregation_service = AggregationService(application_context)
    application_context.quote_service = QuoteService(application_context)

    return application_context


def build_invoker(application_context: ApplicationContext) -> CommandInvoker:
    invoker = CommandInvoker()
    invoker.register_command(EVENT_TYPE_EXPORT_HISTORY, ExportHistoryCommand(application_context))
    invoker.register_command(EVENT_TYPE_IMPORT_HISTORY, ImportHistoryCommand(application_context))
    invoker.register_command(EVENT_TYPE_PORTFOLIO_REPORT, PortfolioReportCommand(application_context))
    invoker.register_command(EVENT_TYPE_OPEN_POSITIONS_REPORT, OpenPositionsReportCommand(application_context))
    return invoker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CSP / CC position ledger")

    parser.add_argument("--database-url", help="SQLAlchemy database URL (env WHEEL_LEDGER_DATABASE_URL)")
    parser.add_argument("--timezone", help="Timezone used for dates (env WHEEL_LEDGER_TIMEZONE)")
    parser.add_argument("--token", help="Finnhub quote token (env FINNHUB_TOKEN)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    export_parser = subparsers.add_parser("export", help="Export the history to CSV")
    export_parser.add_argument("path", nargs="?", default="", help="Output file or directory")

    import_parser = subparsers.add_parser("import", help="Import a CSV history file")
    import_parser.add_argument("path", help="CSV file to import")

    subparsers.add_parser("report", help="Portfolio totals and ROI ranking")
    subparsers.add_parser("positions", help="Current open positions")

    serve_parser = subparsers.add_parser("serve", help="Run the dashboard API")
    serve_parser.add_argument("-i", "--host", default="127.0.0.1", help="Bind host")
    serve_parser.add_argument("-p", "--port", type=int, default=8000, help="Bind port")

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    config = build_config(
        database_url=args.database_url,
        finnhub_token=args.token,
        timezone=args.timezone,
        api_host=getattr(args, "host", None),
        api_port=getattr(args, "port", None),
        debug=args.debug,
    )
    if config[CONFIG_DEBUG]:
        logger.setLevel(logging.DEBUG)

    application_context = build_application_context(config)

    if args.command == "serve":
        from wheel_ledger.api.ledger_dashboard_api import LedgerDashboardApi
        dashboard_api = LedgerDashboardApi(application_context)
        dashboard_api.run(host=config[CONFIG_API_HOST], port=config[CONFIG_API_PORT])
        return 0

    invoker = build_invoker(application_context)
    try:
        if args.command == "export":
            path = invoker.execute_command(EVENT_TYPE_EXPORT_HISTORY, {FIELD_PATH: args.path})[0]
            print(f"History exported to {path}")
        elif args.command == "import":
            imported = invoker.execute_command(EVENT_TYPE_IMPORT_HISTORY, {FIELD_PATH: args.path})[0]
            print(f"Imported {len(imported)} events")
        elif args.command == "report":
            print(invoker.execute_command(EVENT_TYPE_PORTFOLIO_REPORT, {})[0])
        elif args.command == "positions":
            print(invoker.execute_command(EVENT_TYPE_OPEN_POSITIONS_REPORT, {})[0])
    except (ValueError, RuntimeError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
