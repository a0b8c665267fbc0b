"""
Exception hierarchy for the intervention engine.
"""


class InterventionEngineError(Exception):
    """Base exception for all intervention engine errors."""
    pass


class ValidationError(InterventionEngineError):
    """Raised when a request is missing a field or carries a malformed one."""
    pass


class NotFoundError(InterventionEngineError):
    """Raised when a student_id is not on the roster."""
    pass


class StoreError(InterventionEngineError):
    """Raised when the record store fails to read or write."""
    pass


class DispatchError(InterventionEngineError):
    """Raised when a reviewer notification could not be delivered.

    Never surfaced to API callers; the dispatcher logs and drops it.
    """
    pass
