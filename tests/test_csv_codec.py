"""
Unit tests for the CSV codec

Tests header layout, quoting, round trip, header validation and the
fallbacks applied to blank cells.
"""
import pytest
from dataclasses import replace
from datetime import date, datetime

from wheel_ledger.ledger.models.ledger_record import LedgerRecord
from wheel_ledger.ledger.services import csv_codec
from wheel_ledger.core.constants import (
    CSV_COLUMNS, STRATEGY_CSP, STRATEGY_CC, STATUS_OPEN, STATUS_ROLLED, MOVEMENT_OPEN, MOVEMENT_ROLL
)
from wheel_ledger.core.exceptions import LedgerValidationError


def make_record(**overrides):
    fields = dict(
        id=11,
        chain_id="chain-a",
        ticker="AAPL",
        strategy=STRATEGY_CSP,
        contracts=2,
        strike=150.0,
        opening_price=152.25,
        current_price=None,
        premium_received=320.0,
        commission=1.3,
        closing_cost=0.0,
        start_date=date(2024, 3, 1),
        expiration_date=date(2024, 3, 15),
        close_date=None,
        event_date=datetime(2024, 3, 1, 10, 30, 5),
        status=STATUS_OPEN,
        movement_type=MOVEMENT_OPEN,
        is_current_position=True,
        note=None,
    )
    fields.update(overrides)
    return LedgerRecord(**fields)


def csv_text(*rows):
    """Header plus rows given as {column: value} dicts"""
    lines = [",".join(CSV_COLUMNS)]
    for row in rows:
        lines.append(",".join(row.get(column, "") for column in CSV_COLUMNS))
    return "\n".join(lines)


class TestSerialize:
    """Test CSV output layout"""

    def test_header_row_is_fixed(self):
        # Act
        text = csv_codec.serialize([])

        # Assert
        assert text == ",".join(CSV_COLUMNS)

    def test_one_line_per_record_without_trailing_newline(self):
        # Act
        text = csv_codec.serialize([make_record(), make_record(id=12, chain_id="chain-b")])

        # Assert
        assert len(text.split("\n")) == 3
        assert not text.endswith("\n")

    def test_values_are_formatted(self):
        # Act
        line = csv_codec.serialize([make_record()]).split("\n")[1]

        # Assert
        assert line.startswith("2024-03-01T10:30:05,AAPL,CSP,2,150.0,152.25,,320.0,1.3,0.0,2024-03-01,2024-03-15,,")
        assert line.endswith(",Open,open,chain-a,true,")

    def test_special_characters_are_quoted(self):
        # Arrange
        record = make_record(note='He said "roll it", then\nwaited')

        # Act
        text = csv_codec.serialize([record])

        # Assert
        assert '"He said ""roll it"", then\nwaited"' in text

    def test_none_records_raises_error(self):
        with pytest.raises(ValueError, match="records is REQUIRED"):
            csv_codec.serialize(None)


class TestRoundTrip:
    """Serialize then parse returns the same records (id is not exported)"""

    def test_round_trip_preserves_fields(self):
        # Arrange
        records = [
            make_record(note="plain note"),
            make_record(id=12, chain_id="chain-b", ticker="MSFT", strategy=STRATEGY_CC,
                        current_price=410.5, closing_cost=42.0, close_date=date(2024, 3, 8),
                        status=STATUS_ROLLED, movement_type=MOVEMENT_ROLL, is_current_position=False,
                        note='comma, "quotes"\r\nand lines'),
        ]

        # Act
        parsed = csv_codec.parse(csv_codec.serialize(records))

        # Assert
        assert parsed == [replace(r, id=None) for r in records]


class TestParse:
    """Test header validation and fallbacks"""

    def test_missing_column_is_rejected(self):
        # Arrange
        columns = [c for c in CSV_COLUMNS if c != "strike"]
        text = ",".join(columns) + "\nAAPL"

        # Act & Assert
        with pytest.raises(LedgerValidationError, match="strike"):
            csv_codec.parse(text)

    def test_empty_text_is_rejected(self):
        with pytest.raises(LedgerValidationError, match="header row is REQUIRED"):
            csv_codec.parse("")

    def test_header_is_case_insensitive_and_may_have_extra_columns(self):
        # Arrange
        header = ",".join(c.upper() for c in CSV_COLUMNS) + ",extra"
        row = csv_codec.serialize([make_record()]).split("\n")[1] + ",ignored"
        text = "\ufeff" + header + "\r\n" + row + "\r\n"

        # Act
        parsed = csv_codec.parse(text)

        # Assert
        assert parsed == [replace(make_record(), id=None)]

    def test_blank_rows_are_dropped(self):
        text = csv_text({"ticker": "AAPL"}) + "\n\n,,,,,,,,,,,,,,,,,\n"

        assert len(csv_codec.parse(text)) == 1

    def test_blank_cells_fall_back(self):
        # Arrange
        text = csv_text({"ticker": "aapl", "contratos": "abc"})

        # Act
        record = csv_codec.parse(text, timezone="UTC")[0]

        # Assert
        assert record.ticker == "AAPL"
        assert record.contracts == 1
        assert record.strike == 0.0
        assert record.premium_received == 0.0
        assert record.strategy == STRATEGY_CSP
        assert record.status == STATUS_OPEN
        assert record.movement_type == MOVEMENT_OPEN
        assert record.start_date is not None
        assert record.event_date is not None
        assert record.chain_id
        assert record.is_current_position is False
        assert record.note is None
        assert record.opening_price is None

    def test_generated_chain_ids_are_distinct(self):
        records = csv_codec.parse(csv_text({"ticker": "A"}, {"ticker": "B"}))

        assert records[0].chain_id != records[1].chain_id

    def test_current_flag_only_for_true_text(self):
        # Arrange
        text = csv_text(
            {"ticker": "A", "es_posicion_actual": "TRUE"},
            {"ticker": "B", "es_posicion_actual": "1"},
            {"ticker": "C", "es_posicion_actual": "yes"},
        )

        # Act
        flags = [r.is_current_position for r in csv_codec.parse(text)]

        # Assert
        assert flags == [True, False, False]


class TestExportFilename:

    def test_filename_is_dated(self):
        assert csv_codec.export_filename(date(2024, 3, 5)) == "historial-bitacora-2024-03-05.csv"
