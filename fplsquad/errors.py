"""Error taxonomy for squad, transfer and chip operations.

Every failure the core can report is a :class:`SquadError` carrying a
``kind`` (validation, not_found, state_conflict, economic,
external_dependency), an HTTP-ish ``status`` and structured ``details``.
The API layer turns these into JSON via a single error handler.
"""

from __future__ import annotations

from typing import Any


class SquadError(Exception):
    """Base class for all structured failures."""

    kind = "error"
    status = 400
    retryable = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.message, "kind": self.kind}
        if self.retryable:
            payload["retryable"] = True
        payload.update(self.details)
        return payload


class ValidationError(SquadError):
    """Malformed identifiers, out-of-range gameweeks, unknown chip names."""

    kind = "validation"
    status = 400


class NotFoundError(SquadError):
    kind = "not_found"
    status = 404


class StateConflictError(SquadError):
    """The request is well-formed but violates a roster/chip invariant."""

    kind = "state_conflict"
    status = 409


class EconomicError(SquadError):
    kind = "economic"
    status = 422


class InsufficientFundsError(EconomicError):
    pass


class PositionMismatchError(EconomicError):
    pass


class ExternalDependencyError(SquadError):
    """The data feed was unreachable or did not know a player."""

    kind = "external_dependency"
    status = 503
    retryable = True
