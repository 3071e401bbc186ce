# wheel_ledger/core/command_invoker.py
import traceback
from wheel_ledger.core.command import Command
from wheel_ledger import logger


class CommandInvoker:
    """Generic command invoker for ledger commands"""

    def __init__(self):
        self.commands = {}

    def register_command(self, event_type, command: Command):
        """Register a command for an event type"""
        if event_type is None:
            raise ValueError("event_type is REQUIRED")
        if command is None:
            raise ValueError("command is REQUIRED")
        if not isinstance(command, Command):
            raise ValueError("command must be an instance of Command")

        if event_type not in self.commands:
            self.commands[event_type] = []
        self.commands[event_type].append(command)

    def execute_command(self, event_type, event):
        """
        Execute all commands registered for the given event type

        Returns:
            List of command results, in registration order

        Raises:
            ValueError: If no command is registered for event_type
        """
        if event_type is None:
            raise ValueError("event_type is REQUIRED")
        if event is None:
            raise ValueError("event is REQUIRED")

        commands = self.commands.get(event_type, [])
        if not commands:
            raise ValueError(f"No command registered for event {event_type}")

        results = []
        for command in commands:
            try:
                results.append(command.execute(event))
            except Exception as e:
                logger.error(f"Error executing command {command.__class__.__name__} for event {event_type}: {e}")
                logger.debug(f"Stack trace: {traceback.format_exc()}")
                raise
        return results
