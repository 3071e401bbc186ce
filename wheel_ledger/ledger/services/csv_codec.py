"""
CSV codec for the ledger history interchange file

Fixed 18-column layout (see CSV_COLUMNS). serialize() writes one header
line and one line per event; parse() reads it back into LedgerRecords,
applying the documented fallbacks for blank or unparsable cells.
"""

import csv
import io
from datetime import datetime, date
from typing import Iterable, List, Optional

from wheel_ledger import logger
from wheel_ledger.core.constants import (
    CSV_COLUMNS, CSV_FIELD_MAP, STRATEGY_CSP, STATUS_OPEN, MOVEMENT_OPEN, DEFAULT_TIMEZONE
)
from wheel_ledger.core.exceptions import LedgerValidationError
from wheel_ledger.core.utility_functions import now_local, new_chain_id
from wheel_ledger.ledger.models.ledger_record import LedgerRecord
from wheel_ledger.ledger.services.record_normalizer import (
    to_number, to_optional_number, to_int, to_date, to_datetime, to_text
)

EXPORT_FILENAME_TEMPLATE = "historial-bitacora-{day}.csv"


def _format_cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def serialize(records: Iterable[LedgerRecord]) -> str:
    """
    Render records as CSV text

    Cells containing a comma, a double quote or a line break are quoted,
    with inner quotes doubled. None renders as an empty cell.

    Raises:
        ValueError: If records is None
    """
    if records is None:
        raise ValueError("records is REQUIRED")

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_COLUMNS)
    count = 0
    for record in records:
        writer.writerow([_format_cell(getattr(record, CSV_FIELD_MAP[column])) for column in CSV_COLUMNS])
        count += 1

    logger.debug(f"Serialized {count} events to CSV")
    # No trailing newline after the last record
    return buffer.getvalue().rstrip("\n")


def read_rows(text: str) -> List[List[str]]:
    """RFC 4180 rows with blank lines (all cells empty) dropped"""
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=",", quotechar='"')
    return [row for row in reader if any(cell != "" for cell in row)]


def parse(text: str, timezone: str = DEFAULT_TIMEZONE) -> List[LedgerRecord]:
    """
    Parse CSV text into LedgerRecords

    The header is matched case-insensitively and may carry extra columns,
    but every column of CSV_COLUMNS must be present.

    Fallbacks: contracts -> 1, strike and money -> 0, strategy -> CSP,
    status -> Open, movement type -> open, start date -> today,
    event date -> now, chain id -> new uuid. es_posicion_actual is true
    only for the text "true" (any case).

    Raises:
        LedgerValidationError: If the text is empty or columns are missing
    """
    if text is None:
        raise LedgerValidationError("text is REQUIRED")

    rows = read_rows(text.lstrip("\ufeff"))
    if not rows:
        raise LedgerValidationError("CSV is empty: header row is REQUIRED")

    header = [cell.strip().lower() for cell in rows[0]]
    missing = [column for column in CSV_COLUMNS if column not in header]
    if missing:
        raise LedgerValidationError(f"CSV header is missing columns: {', '.join(missing)}")

    positions = {column: header.index(column) for column in CSV_COLUMNS}
    now = now_local(timezone)

    records = []
    for row in rows[1:]:
        def cell(column: str, row=row) -> str:
            return row[positions[column]].strip() if positions[column] < len(row) else ""

        records.append(LedgerRecord(
            id=None,
            event_date=to_datetime(cell("fecha_evento")) or now,
            ticker=cell("ticker").upper(),
            strategy=cell("estrategia") or STRATEGY_CSP,
            contracts=to_int(cell("contratos") or None, fallback=1),
            strike=to_number(cell("strike")),
            opening_price=to_optional_number(cell("precio_apertura")),
            current_price=to_optional_number(cell("precio_actual")),
            premium_received=to_number(cell("prima_recibida")),
            commission=to_number(cell("comision")),
            closing_cost=to_number(cell("costo_cierre")),
            start_date=to_date(cell("fecha_inicio")) or now.date(),
            expiration_date=to_date(cell("fecha_vencimiento")),
            close_date=to_date(cell("fecha_cierre")),
            status=cell("estado") or STATUS_OPEN,
            movement_type=cell("tipo_movimiento") or MOVEMENT_OPEN,
            chain_id=cell("cadena_id") or new_chain_id(),
            is_current_position=cell("es_posicion_actual").lower() == "true",
            note=to_text(_raw_cell(row, positions["nota"])),
        ))

    logger.info(f"Parsed {len(records)} events from CSV")
    return records


def _raw_cell(row: List[str], index: int) -> Optional[str]:
    # Notes keep their inner whitespace and line breaks
    return row[index] if index < len(row) else None


def export_filename(day: Optional[date] = None, timezone: str = DEFAULT_TIMEZONE) -> str:
    day = day or now_local(timezone).date()
    return EXPORT_FILENAME_TEMPLATE.format(day=day.isoformat())
