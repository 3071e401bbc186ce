"""
AggregationService - Portfolio totals and per-ticker ROI ranking

Rolls the full event history into:
- portfolio totals (premium, costs, net, open collateral, ROI)
- per-ticker summaries ranked by ROI, with share-weighted break-even
- the general ROI (plain mean of per-ticker ROI)

Also carries the history filters and pagination used by the dashboard.
"""

import math
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from wheel_ledger import logger
from wheel_ledger.ledger.models.ledger_record import CalculatedRecord, TickerSummary, PortfolioTotals


def records_to_frame(records: Iterable[CalculatedRecord]) -> pd.DataFrame:
    """One row per event with the columns the rollups need"""
    rows = [
        {
            "id": r.id,
            "ticker": (r.ticker or "").upper(),
            "premium_received": r.premium_received,
            "commission": r.commission,
            "closing_cost": r.closing_cost,
            "net": r.net,
            "break_even": r.break_even,
            "shares": r.shares,
            "collateral": r.shares * r.strike,
            "is_current_position": bool(r.is_current_position),
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=[
        "id", "ticker", "premium_received", "commission", "closing_cost", "net",
        "break_even", "shares", "collateral", "is_current_position",
    ])


class AggregationService:
    """Pure rollups over annotated ledger records"""

    def __init__(self, application_context=None):
        self.application_context = application_context

    def portfolio_totals(self, records: Sequence[CalculatedRecord]) -> PortfolioTotals:
        """
        Portfolio totals across every event

        Collateral only counts currently open events, while premium and
        costs accumulate over the whole history.

        Args:
            records: Full annotated history (required)

        Returns:
            PortfolioTotals

        Raises:
            ValueError: If records is None
        """
        if records is None:
            raise ValueError("records is REQUIRED")

        df = records_to_frame(records)
        total_premium = float(df["premium_received"].sum())
        total_commission = float(df["commission"].sum())
        total_closing_cost = float(df["closing_cost"].sum())
        net_total = total_premium - total_commission - total_closing_cost

        open_events = df[df["is_current_position"].astype(bool)]
        collateral_total = float(open_events["collateral"].sum())
        portfolio_roi = net_total / collateral_total if collateral_total > 0 else 0.0

        totals = PortfolioTotals(
            total_premium=total_premium,
            total_commission=total_commission,
            total_closing_cost=total_closing_cost,
            net_total=net_total,
            collateral_total=collateral_total,
            portfolio_roi=portfolio_roi,
            open_positions=int(len(open_events)),
            events=int(len(df)),
        )
        logger.debug(f"Portfolio totals: net={net_total:.2f} collateral={collateral_total:.2f} "
                     f"roi={portfolio_roi:.4f}")
        return totals

    def ticker_summaries(self, records: Sequence[CalculatedRecord]) -> List[TickerSummary]:
        """
        Per-ticker rollup ranked by ROI, highest first

        Capital used is the collateral of the ticker's currently open
        events when any exists, else the largest single-event collateral
        seen in its history.

        Raises:
            ValueError: If records is None
        """
        if records is None:
            raise ValueError("records is REQUIRED")

        df = records_to_frame(records)
        if df.empty:
            return []

        df["costs"] = df["commission"] + df["closing_cost"]
        df["current_collateral"] = np.where(df["is_current_position"], df["collateral"], 0.0)
        df["weighted_break_even"] = df["break_even"] * df["shares"]

        grouped = df.groupby("ticker", sort=False).agg(
            premium=("premium_received", "sum"),
            costs=("costs", "sum"),
            net=("net", "sum"),
            current_capital=("current_collateral", "sum"),
            max_capital=("collateral", "max"),
            shares=("shares", "sum"),
            weighted_break_even=("weighted_break_even", "sum"),
        ).reset_index()

        grouped["capital"] = np.where(grouped["current_capital"] > 0,
                                      grouped["current_capital"], grouped["max_capital"])
        capital = grouped["capital"].where(grouped["capital"] > 0)
        grouped["roi"] = (grouped["net"] / capital).fillna(0.0)
        shares = grouped["shares"].where(grouped["shares"] > 0)
        grouped["break_even"] = (grouped["weighted_break_even"] / shares).fillna(0.0)

        grouped = grouped.sort_values("roi", ascending=False, kind="mergesort")

        summaries = [
            TickerSummary(
                ticker=row.ticker,
                premium=float(row.premium),
                costs=float(row.costs),
                net=float(row.net),
                current_capital=float(row.current_capital),
                max_capital=float(row.max_capital),
                capital=float(row.capital),
                shares=int(row.shares),
                break_even=float(row.break_even),
                roi=float(row.roi),
            )
            for row in grouped.itertuples(index=False)
        ]
        logger.debug(f"Ticker summaries computed for {len(summaries)} tickers")
        return summaries

    @staticmethod
    def general_roi(summaries: Sequence[TickerSummary]) -> float:
        """Arithmetic mean of per-ticker ROI (not premium weighted)"""
        if not summaries:
            return 0.0
        return float(np.mean([s.roi for s in summaries]))

    # ==================== History views ====================

    @staticmethod
    def filter_history(
        records: Sequence[CalculatedRecord],
        ticker: Optional[str] = None,
        status: Optional[str] = None,
        event_date_prefix: Optional[str] = None
    ) -> List[CalculatedRecord]:
        """
        Filter events by ticker substring (case-insensitive), exact status
        and ISO event-date prefix (e.g. "2024-03")
        """
        term = ticker.upper() if ticker else None
        result = []
        for record in records:
            if term and term not in record.ticker.upper():
                continue
            if status and record.status != status:
                continue
            if event_date_prefix:
                stamp = record.event_date.isoformat() if record.event_date else ""
                if not stamp.startswith(event_date_prefix):
                    continue
            result.append(record)
        return result

    @staticmethod
    def filter_summaries(summaries: Sequence[TickerSummary], term: Optional[str]) -> List[TickerSummary]:
        if not term:
            return list(summaries)
        term = term.upper()
        return [s for s in summaries if term in s.ticker]

    @staticmethod
    def paginate(items: Sequence, page: int, page_size: int) -> Dict:
        """
        Slice one page out of items; page is clamped to the valid range

        Returns:
            dict with items, page, page_size, total_pages, total_items
        """
        if page_size is None or page_size < 1:
            raise ValueError("page_size must be >= 1")

        total_pages = max(1, math.ceil(len(items) / page_size))
        page = min(max(1, page or 1), total_pages)
        start = (page - 1) * page_size
        return {
            "items": list(items[start:start + page_size]),
            "page": page,
            "page_size": page_size,
            "total_pages": total_pages,
            "total_items": len(items),
        }

    @staticmethod
    def display_price(record: CalculatedRecord, live_quotes: Optional[Dict[str, float]] = None) -> Optional[float]:
        """Live quote for the ticker when known, else current, else opening price"""
        if live_quotes:
            quote = live_quotes.get(record.ticker.upper())
            if quote is not None and math.isfinite(quote):
                return quote
        if record.current_price is not None:
            return record.current_price
        return record.opening_price
