"""Submission controller — the submit/success/failure protocol.

Per submission:

    EDITING --submit--> SUBMITTING --engine returns--> SUCCEEDED
                                   --engine raises---> FAILED

SUCCEEDED appends the engine's cells and one blank InputCell.
FAILED appends one ErrorCell and one InputCell seeded with the failed text.
Both are terminal; the new InputCell starts a fresh EDITING state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from unitdc_console.cells import CellStore
from unitdc_console.engine import EngineAdapter
from unitdc_console.errors import PreconditionViolation, SubmissionFailure
from unitdc_console.models import Cell, ErrorCell, InputCell

logger = logging.getLogger(__name__)


class SubmissionState(str, Enum):
    """States of one submission."""

    EDITING = "editing"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class SubmissionRecord:
    """What one submission captured and what it appended."""

    text: str
    index: int
    state: SubmissionState = SubmissionState.SUBMITTING
    cells: list[Cell] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == SubmissionState.SUCCEEDED


class SubmissionController:
    """Submits the active input cell and records the outcome in the transcript."""

    def __init__(self, store: CellStore, adapter: EngineAdapter) -> None:
        self._store = store
        self._adapter = adapter
        self.last: Optional[SubmissionRecord] = None

    @property
    def state(self) -> SubmissionState:
        """State of the active cell: EDITING unless a submission is running."""
        if self.last is not None and self.last.state == SubmissionState.SUBMITTING:
            return SubmissionState.SUBMITTING
        return SubmissionState.EDITING

    def submit(self) -> SubmissionRecord:
        """Submit the active cell's text.

        Raises:
            PreconditionViolation: if there is no active input cell.
        """
        active = self._store.active
        index = self._store.active_index
        if active is None or index is None:
            raise PreconditionViolation("No active input cell to submit")

        record = SubmissionRecord(text=active.text, index=index)
        self.last = record

        try:
            produced = self._adapter.submit(record.text)
        except SubmissionFailure as failure:
            record.state = SubmissionState.FAILED
            record.error = failure.description
            record.cells = [ErrorCell(text=failure.description), InputCell(text=record.text)]
            logger.debug("Submission In [%d] failed: %s", index, failure.description)
        else:
            record.state = SubmissionState.SUCCEEDED
            record.cells = [*produced, InputCell(text="")]
            logger.debug("Submission In [%d] produced %d cell(s)", index, len(produced))

        self._store.extend(record.cells)
        return record
