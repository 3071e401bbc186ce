from wheel_ledger.core.command import Command
from wheel_ledger.core.constants import *
from wheel_ledger.core.exceptions import LedgerValidationError
from wheel_ledger import logger
from wheel_ledger.ledger.services import csv_codec


class ImportHistoryCommand(Command):
    """
    Import a CSV history file (or CSV text) into the store

    The whole file is parsed and validated before a single bulk insert;
    an invalid header means nothing is written.
    """

    def execute(self, event):
        """
        Args:
            event: dict with FIELD_PATH or FIELD_TEXT (required)

        Returns:
            List of imported CalculatedRecords

        Raises:
            ValueError: If event is None
            LedgerValidationError: If the CSV is invalid or has no rows
        """
        if event is None:
            raise ValueError("event is REQUIRED")

        text = event.get(FIELD_TEXT)
        if text is None:
            path = event.get(FIELD_PATH)
            if not path:
                raise LedgerValidationError("path or text is REQUIRED")
            with open(path, "r", encoding="utf-8-sig") as f:
                text = f.read()

        timezone = self.state_manager.get_optional_config_value(CONFIG_TIMEZONE, DEFAULT_TIMEZONE)
        records = csv_codec.parse(text, timezone=timezone)
        if not records:
            raise LedgerValidationError("CSV has no rows to import")

        imported = self.lifecycle_service.import_history(records)
        logger.info(f"Imported {len(imported)} rows")
        return imported
