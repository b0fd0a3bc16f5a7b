"""Interactive terminal front-end for a Session.

The terminal prompt stands in for the text surface of the active cell:

- a plain line replaces the active text and submits it;
- an empty line submits whatever the keyboard has composed so far;
- lines starting with ``:`` drive the virtual keyboard (see HELP).
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from typing import Callable, Optional

from rich.console import Console
from rich.markup import escape

from unitdc_console.models import UiAction
from unitdc_console.render import render_keyboard, render_transcript
from unitdc_console.session import Session

logger = logging.getLogger(__name__)

HELP = """\
:key LABEL...   press virtual keys by label, e.g. :key 1 2 + "(m)"
:mod M          toggle a unit modifier (k c d m u n)
:space          append a space            :newline   append a newline
:bs             delete the last character :clear     empty the input
:submit         submit the input          :show      redraw the transcript
:keys           show the keyboard         :quit      leave
"""

_UI_COMMANDS: dict[str, UiAction] = {
    "space": UiAction.APPEND_SPACE,
    "newline": UiAction.APPEND_NEWLINE,
    "bs": UiAction.BACKSPACE,
    "clear": UiAction.CLEAR,
    "submit": UiAction.SUBMIT,
}


class Repl:
    """Reads lines, applies them to the session, prints what changed."""

    def __init__(self, session: Session, console: Console, show_hints: bool = True) -> None:
        self.session = session
        self.console = console
        self.show_hints = show_hints
        # Cells before this index have been printed in their final form.
        self._printed = 0
        self.running = True

    def start(self) -> bool:
        """Bootstrap the session and print the initial transcript."""
        ready = asyncio.run(self.session.bootstrap())
        if not ready:
            render_transcript(self.session.store, self.console)
            return False
        if self.show_hints:
            self.console.print("[dim]unitdc console. Type :help for keyboard commands.[/dim]")
        self._flush()
        return True

    def prompt(self) -> str:
        return f"In [{self.session.store.active_index}]: "

    def handle(self, line: str) -> None:
        """Apply one line of input."""
        if line.startswith(":"):
            self._command(line[1:])
        elif line == "":
            self.session.submit()
            self._flush()
        else:
            self.session.submit_text(line)
            self._flush()

    def loop(self, read: Optional[Callable[[str], str]] = None) -> None:
        read = read or self.console.input
        while self.running:
            try:
                line = read(self.prompt())
            except (EOFError, KeyboardInterrupt):
                self.console.print()
                break
            self.handle(line)

    def _flush(self) -> None:
        """Print every settled cell not printed yet; the active one is the prompt."""
        store = self.session.store
        end = store.active_index if store.active_index is not None else len(store)
        render_transcript(store, self.console, start=self._printed, stop=end)
        self._printed = max(self._printed, end)

    def _preview(self) -> None:
        active = self.session.active
        modifier = self.session.composer.modifier
        suffix = f"  [magenta]({modifier}*)[/magenta]" if modifier else ""
        text = escape(active.text) if active is not None else ""
        self.console.print(f"[dim]{escape(self.prompt())}[/dim]{text}{suffix}")

    def _command(self, command: str) -> None:
        try:
            parts = shlex.split(command)
        except ValueError as e:
            self.console.print(f"[red]{escape(str(e))}[/red]")
            return
        if not parts:
            return
        name, args = parts[0], parts[1:]
        logger.debug("Command :%s %s", name, args)

        try:
            if name in ("quit", "q", "exit"):
                self.running = False
            elif name == "help":
                self.console.print(HELP, markup=False)
            elif name == "keys":
                render_keyboard(self.console, self.session.composer.modifier)
            elif name == "show":
                render_transcript(self.session.store, self.console, show_hints=self.show_hints)
            elif name == "key":
                for label in args:
                    self.session.press(label)
                self._after_edit()
            elif name == "mod":
                if len(args) != 1:
                    self.console.print("[red]Usage: :mod M[/red]")
                    return
                self.session.select_modifier(args[0])
                self._preview()
            elif name in _UI_COMMANDS:
                self.session.ui_action(_UI_COMMANDS[name])
                self._after_edit()
            else:
                self.console.print(f"[red]Unknown command: :{escape(name)}[/red] (try :help)")
        except (KeyError, ValueError) as e:
            self.console.print(f"[red]{escape(str(e.args[0] if e.args else e))}[/red]")

    def _after_edit(self) -> None:
        # A submit through the keyboard moves the active cell.
        if self._printed < (self.session.store.active_index or 0):
            self._flush()
        else:
            self._preview()
