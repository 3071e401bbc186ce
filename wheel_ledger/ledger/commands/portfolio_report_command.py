from wheel_ledger.core.command import Command
from wheel_ledger.core.constants import *
from wheel_ledger.core.utility_functions import format_money, format_percent
from wheel_ledger import logger
from wheel_ledger.ledger.services.lifecycle_service import check_chain
from prettytable import PrettyTable
from collections import defaultdict


class PortfolioReportCommand(Command):
    """
    Portfolio report: totals, ROI ranking per ticker and chain warnings
    """

    def execute(self, event):
        """
        Args:
            event: Event data (required)

        Returns:
            str: Formatted report

        Raises:
            ValueError: If event is None
        """
        if event is None:
            raise ValueError("event is REQUIRED")

        history = self.lifecycle_service.get_history()
        if not history:
            logger.info("No events in ledger")
            return "No events in ledger."

        totals = self.aggregation_service.portfolio_totals(history)
        summaries = self.aggregation_service.ticker_summaries(history)
        general_roi = self.aggregation_service.general_roi(summaries)

        totals_table = PrettyTable(['Premium', 'Commission', 'Closing cost', 'Net', 'Collateral', 'ROI'])
        totals_table.add_row([
            format_money(totals.total_premium),
            format_money(totals.total_commission),
            format_money(totals.total_closing_cost),
            format_money(totals.net_total),
            format_money(totals.collateral_total),
            format_percent(totals.portfolio_roi),
        ])

        ticker_table = PrettyTable(['Ticker', 'Premium', 'Costs', 'Net', 'Capital', 'Break-even', 'ROI'])
        ticker_table.align['Ticker'] = 'l'
        for summary in summaries:
            ticker_table.add_row([
                summary.ticker,
                format_money(summary.premium),
                format_money(summary.costs),
                format_money(summary.net),
                format_money(summary.capital),
                format_money(summary.break_even),
                format_percent(summary.roi),
            ])

        lines = [
            f"{totals.events} events, {totals.open_positions} open positions",
            str(totals_table),
            f"General ROI (mean per ticker): {format_percent(general_roi)}",
            str(ticker_table),
        ]

        warnings = self._chain_warnings(history)
        if warnings:
            lines.append("Chain warnings:")
            lines.extend(f"  {warning}" for warning in warnings)

        logger.info(f"Portfolio report generated for {len(summaries)} tickers")
        return "\n".join(lines)

    def _chain_warnings(self, history):
        chains = defaultdict(list)
        for record in history:
            chains[record.chain_id].append(record)

        warnings = []
        for chain_id, records in chains.items():
            for problem in check_chain(records):
                warnings.append(f"{chain_id}: {problem}")
        return warnings


class OpenPositionsReportCommand(Command):
    """Table of live events, with live quotes when a token is configured"""

    def execute(self, event):
        if event is None:
            raise ValueError("event is REQUIRED")

        positions = self.lifecycle_service.get_current_positions()
        if not positions:
            return "No open positions."

        quotes = {}
        quote_service = self.application_context.quote_service
        if quote_service is not None:
            quotes = quote_service.fetch_quotes({p.ticker for p in positions})

        table = PrettyTable(['ID', 'Ticker', 'Strategy', 'Qty', 'Strike', 'Expiry', 'Price', 'Net', 'Break-even', 'ROI'])
        table.align['Ticker'] = 'l'
        for position in positions:
            table.add_row([
                position.id,
                position.ticker,
                position.strategy,
                position.contracts,
                f"{position.strike:.2f}",
                position.expiration_date.isoformat() if position.expiration_date else "-",
                format_money(self.aggregation_service.display_price(position, quotes)),
                format_money(position.net),
                format_money(position.break_even),
                format_percent(position.roi),
            ])

        return str(table)
