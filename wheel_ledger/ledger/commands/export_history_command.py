from wheel_ledger.core.command import Command
from wheel_ledger.core.constants import *
from wheel_ledger import logger
from wheel_ledger.ledger.services import csv_codec
import os


class ExportHistoryCommand(Command):
    """
    Export the full event history to a CSV file

    Writes to event[FIELD_PATH] when given; a directory path (or no path)
    gets the dated default filename.
    """

    def execute(self, event):
        """
        Args:
            event: dict, optionally with FIELD_PATH (required)

        Returns:
            str: Path of the written file

        Raises:
            ValueError: If event is None
        """
        if event is None:
            raise ValueError("event is REQUIRED")

        timezone = self.state_manager.get_optional_config_value(CONFIG_TIMEZONE, DEFAULT_TIMEZONE)
        path = event.get(FIELD_PATH) or ""
        if not path or os.path.isdir(path):
            path = os.path.join(path, csv_codec.export_filename(timezone=timezone))

        history = self.lifecycle_service.get_history()
        text = csv_codec.serialize(history)

        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)

        logger.info(f"Exported {len(history)} events to {path}")
        return path
