# core/errors.py
"""
Error taxonomy shared by the document chain and the ledger.

Commands raise these inside their atomic block so that nothing persists,
then convert them into a failed CommandResult at the command boundary.
Every error carries a stable machine-readable code and the HTTP status the
views answer with.

    ValidationError       400  malformed input, missing required fields
    StateConflictError    409  already transferred/posted/voided, immutable rows
    NotFoundError         404  unknown id, or a row of another company
    ReconciliationError   422  amounts or quantities that do not add up
"""


class CommandError(Exception):
    """Base class for errors raised by commands."""

    default_code = "COMMAND_ERROR"
    http_status = 400

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def __str__(self):
        return self.message


class ValidationError(CommandError):
    default_code = "VALIDATION_ERROR"
    http_status = 400


class StateConflictError(CommandError):
    default_code = "STATE_CONFLICT"
    http_status = 409


class NotFoundError(CommandError):
    default_code = "NOT_FOUND"
    http_status = 404


class ReconciliationError(CommandError):
    default_code = "RECONCILIATION_ERROR"
    http_status = 422
