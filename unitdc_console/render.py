"""Transcript rendering — rich output for the terminal and dicts for --json.

Each cell gets a notebook-style prompt label:

    In [0]:   input text (the active cell is highlighted)
    Out:      [0]: newest result
              [1]: older result
    Error:    failure description
"""

from __future__ import annotations

from typing import Iterable, Optional

from rich.console import Console, Group
from rich.table import Table
from rich.text import Text

from unitdc_console.cells import CellStore
from unitdc_console.keyboard import LAYOUT, Key
from unitdc_console.models import Cell, ErrorCell, InputCell, MessageCell, OutputCell

_SUBMIT_HINT = "Enter to submit, :help for keyboard commands"


def format_results(cell: OutputCell) -> list[str]:
    """Result lines newest first; the newest is [0]."""
    count = len(cell.results)
    lines = [f"[{count - 1 - i}]: {r.display}" for i, r in enumerate(cell.results)]
    return list(reversed(lines))


def _render_cell(index: int, cell: Cell, active: bool, show_hints: bool) -> Table:
    grid = Table.grid(padding=(0, 1))
    grid.add_column(style="dim", min_width=8, no_wrap=True)
    grid.add_column()

    if isinstance(cell, InputCell):
        label = Text(f"In [{index}]:", style="bold green" if active else "green")
        body = Text(cell.text, style="bold" if active else "")
        if active and show_hints:
            body = Group(body, Text(_SUBMIT_HINT, style="dim italic"))
        grid.add_row(label, body)
    elif isinstance(cell, OutputCell):
        grid.add_row(Text("Out:", style="cyan"), Text("\n".join(format_results(cell))))
    elif isinstance(cell, ErrorCell):
        grid.add_row(Text("Error:", style="bold red"), Text(cell.text, style="red"))
    elif isinstance(cell, MessageCell):
        grid.add_row(Text(""), Text(cell.text, style="yellow"))
    return grid


def render_transcript(
    store: CellStore,
    console: Console,
    start: int = 0,
    stop: Optional[int] = None,
    show_hints: bool = False,
) -> None:
    """Print cells ``start`` up to (not including) ``stop``; all of them by default."""
    if not len(store):
        console.print("[dim]Loading engine...[/dim]")
        return
    active_index = store.active_index
    for index in range(start, len(store) if stop is None else stop):
        console.print(_render_cell(index, store[index], index == active_index, show_hints))


def cells_to_dicts(cells: Iterable[Cell]) -> list[dict]:
    """JSON-compatible view of a sequence of cells."""
    return [cell.to_dict() for cell in cells]


def _key_style(key: Key) -> str:
    if key.modifier is not None:
        return "magenta"
    if key.action is not None:
        return "bold"
    return {"operator": "yellow", "literal_num": "white", "unit": "cyan"}[key.token_type.value]


def render_keyboard(console: Console, modifier: Optional[str] = None) -> None:
    """Print the virtual keyboard as a table, one column per keyboard column."""
    table = Table(title="Keyboard", show_header=False, show_lines=True)
    for _ in LAYOUT:
        table.add_column(justify="center", min_width=5)

    depth = max(len(col) for col in LAYOUT)
    for row in range(depth):
        cells = []
        for column in LAYOUT:
            if row >= len(column):
                cells.append("")
                continue
            key = column[row]
            style = _key_style(key)
            if key.modifier is not None and key.modifier == modifier:
                style = "reverse magenta"
            cells.append(f"[{style}]{key.label}[/]")
        table.add_row(*cells)

    console.print()
    console.print(table)
    console.print()
