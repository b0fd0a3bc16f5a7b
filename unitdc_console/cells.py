"""Cell store: the ordered transcript and its active-cell handle.

The transcript only grows. The one exception to immutability is the text of
the active cell, which is always the last cell when that cell is an
InputCell. The active index is kept explicitly next to the cell list and
re-derived on every append, so callers never scan for it.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional

from unitdc_console.errors import PreconditionViolation
from unitdc_console.models import Cell, InputCell

logger = logging.getLogger(__name__)


class CellStore:
    """Owns the transcript. Mutated only through append/extend/update_active_text."""

    def __init__(self) -> None:
        self._cells: list[Cell] = []
        self._active_index: Optional[int] = None
        # Bumped every time a different cell becomes active.
        self._generation = 0

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Cell]:
        return iter(list(self._cells))

    def __getitem__(self, index: int) -> Cell:
        return self._cells[index]

    @property
    def cells(self) -> tuple[Cell, ...]:
        return tuple(self._cells)

    @property
    def active_index(self) -> Optional[int]:
        return self._active_index

    @property
    def active(self) -> Optional[InputCell]:
        """The active InputCell, or None before bootstrap / after a failed one."""
        if self._active_index is None:
            return None
        return self._cells[self._active_index]  # type: ignore[return-value]

    @property
    def generation(self) -> int:
        """Counter identifying the current active cell."""
        return self._generation

    def append(self, cell: Cell) -> None:
        """Add a cell at the end of the transcript."""
        self._cells.append(cell)
        self._refresh_active()

    def extend(self, cells: Iterable[Cell]) -> None:
        """Append several cells as one mutation; the active handle moves once."""
        batch = list(cells)
        if not batch:
            return
        self._cells.extend(batch)
        self._refresh_active()

    def update_active_text(self, text: str) -> None:
        """Replace the active cell's text.

        Raises:
            PreconditionViolation: if no InputCell is active.
        """
        if self._active_index is None:
            raise PreconditionViolation("No active input cell to update")
        self._cells[self._active_index] = InputCell(text=text)

    def _refresh_active(self) -> None:
        last = len(self._cells) - 1
        new_index = last if isinstance(self._cells[last], InputCell) else None
        if new_index != self._active_index:
            self._generation += 1
            logger.debug("Active cell: %s -> %s", self._active_index, new_index)
        self._active_index = new_index
