# core/policies.py
"""
Shared policy helpers.

Policies answer: "Is this action allowed given the current state?"
They do NOT perform the action; that's the command's job.

Design Principles:
1. Policies are pure functions (no side effects)
2. Policies return (bool, str) tuples for clear error messages
3. Policies check ONE thing conceptually
4. Commands compose policies as needed and turn a denial into a
   StateConflictError with enforce()
"""

from core.errors import StateConflictError


def enforce(result: tuple, code: str = "STATE_CONFLICT") -> None:
    """Raise StateConflictError(reason, code) for a denied (False, reason) result."""
    allowed, reason = result
    if not allowed:
        raise StateConflictError(reason, code=code)
