# wheel_ledger/core/command.py
from abc import ABC, abstractmethod


class Command(ABC):
    """Generic base command class for all ledger commands"""

    def __init__(self, application_context):
        if application_context is None:
            raise ValueError("application_context is REQUIRED")

        self.config = application_context.config
        self.application_context = application_context
        self.state_manager = application_context.state_manager
        self.lifecycle_service = application_context.lifecycle_service
        self.aggregation_service = application_context.aggregation_service

    @abstractmethod
    def execute(self, event):
        """Execute the command with the given event"""
        pass
