"""Exception hierarchy for the unitdc console.

Only PreconditionViolation is meant to escape to callers: the other two are
caught at the session boundaries and turned into transcript cells.
"""

from __future__ import annotations


class UnitdcError(Exception):
    """Base class for every error raised by this package."""


class EngineError(UnitdcError):
    """Raised by an engine when submitted text is not a well-formed expression."""


class BootstrapFailure(UnitdcError):
    """The engine could not be loaded or initialized."""


class SubmissionFailure(UnitdcError):
    """The engine rejected a submitted expression.

    ``description`` is the human-readable text shown in the error cell.
    """

    def __init__(self, description: str) -> None:
        super().__init__(description)
        self.description = description


class PreconditionViolation(UnitdcError):
    """An edit or keyboard action was dispatched with no active input cell."""
