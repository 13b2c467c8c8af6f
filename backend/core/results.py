# core/results.py
"""
Command results and the command boundary decorator.

Usage:
    @command
    def post_document(actor, document_id) -> CommandResult:
        ...
        raise StateConflictError("Invoice already posted", code="ALREADY_POSTED")

    result = post_document(actor, document_id)
    if result.success:
        invoice = result.data
    else:
        result.error, result.error_code, result.http_status
"""

import functools
import logging

from django.db import transaction

from core.errors import CommandError


logger = logging.getLogger(__name__)


class CommandResult:
    """
    Wrapper for command results with success/failure info.

    Usage:
        result = transfer_document(actor, document_id, "GOODS_RECEIVED")
        if result.success:
            document = result.data
            event = result.event
        else:
            error_message = result.error
    """

    def __init__(
        self,
        success: bool,
        data=None,
        error: str = None,
        event=None,
        error_code: str = None,
        http_status: int = None,
    ):
        self.success = success
        self.data = data
        self.error = error
        self.event = event  # The emitted event, if any
        self.error_code = error_code
        self.http_status = http_status

    def __repr__(self):
        if self.success:
            return f"CommandResult(ok, data={self.data!r})"
        return f"CommandResult(fail, {self.error_code}: {self.error})"

    @classmethod
    def ok(cls, data=None, event=None):
        return cls(success=True, data=data, event=event)

    @classmethod
    def fail(cls, error: str, code: str = "COMMAND_ERROR", http_status: int = 400):
        return cls(success=False, error=error, error_code=code, http_status=http_status)

    @classmethod
    def from_error(cls, exc: CommandError):
        return cls.fail(exc.message, code=exc.code, http_status=exc.http_status)


def command(func):
    """
    Run a command in one transaction and turn CommandError into a failed result.

    The error is raised inside the atomic block, so every write made before
    the failure is rolled back before the result is returned.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            with transaction.atomic():
                return func(*args, **kwargs)
        except CommandError as exc:
            logger.info(
                "Command %s rejected: %s",
                func.__name__,
                exc.message,
                extra={"command": func.__name__, "error_code": exc.code},
            )
            return CommandResult.from_error(exc)

    return wrapper
