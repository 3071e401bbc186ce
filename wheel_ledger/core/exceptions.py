"""
Ledger error taxonomy

Validation problems are ValueErrors; lookup and state problems are
RuntimeErrors.
"""


class LedgerValidationError(ValueError):
    """Malformed input rejected before any store mutation"""


class EventNotFoundError(RuntimeError):
    """Target event or chain absent from the store"""


class InvalidStateTransitionError(RuntimeError):
    """Requested transition does not match the event's current state"""
