"""CLI for the unitdc console.

Usage:
    python -m unitdc_console repl                      # Interactive session
    python -m unitdc_console eval "3 4 + p" "f"         # Submit expressions, print transcript
    python -m unitdc_console eval --json "2 (m) d * p"  # Transcript as JSON cells
    python -m unitdc_console keys                      # Show the virtual keyboard
"""

from __future__ import annotations

import asyncio
import json
from typing import List, Optional

import typer
from rich.console import Console

from unitdc_console.config import ConsoleConfig, configure_logging
from unitdc_console.render import cells_to_dicts, render_keyboard, render_transcript
from unitdc_console.repl import Repl
from unitdc_console.session import Session

app = typer.Typer(
    name="unitdc",
    help="Unit-aware desk calculator console",
    no_args_is_help=True,
)
console = Console(stderr=True)
out = Console()


def _load_config(engine: Optional[str], log_level: Optional[str]) -> ConsoleConfig:
    try:
        cfg = ConsoleConfig.from_env().override(engine=engine, log_level=log_level)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)
    configure_logging(cfg.log_level, console)
    return cfg


@app.command("repl")
def cmd_repl(
    engine: Optional[str] = typer.Option(None, "--engine", "-e", help="Engine factory as module:attr"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
    hints: Optional[bool] = typer.Option(None, "--hints/--no-hints", help="Show usage hints"),
) -> None:
    """Start an interactive session."""
    cfg = _load_config(engine, log_level)
    show_hints = cfg.show_hints if hints is None else hints

    repl = Repl(Session(cfg.engine), out, show_hints=show_hints)
    if not repl.start():
        raise typer.Exit(1)
    repl.loop()


@app.command("eval")
def cmd_eval(
    expressions: List[str] = typer.Argument(..., help="Expressions to submit in order"),
    engine: Optional[str] = typer.Option(None, "--engine", "-e", help="Engine factory as module:attr"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
    as_json: bool = typer.Option(False, "--json", help="Print the transcript as JSON cells"),
) -> None:
    """Submit each expression and print the resulting transcript.

    Exits 1 when the engine fails to load or any submission fails.
    """
    cfg = _load_config(engine, log_level)
    session = Session(cfg.engine)

    ready = asyncio.run(session.bootstrap())
    failed = not ready
    if ready:
        for expr in expressions:
            record = session.submit_text(expr)
            failed = failed or not record.succeeded

    if as_json:
        typer.echo(json.dumps(cells_to_dicts(session.store), indent=2, allow_nan=False))
    else:
        render_transcript(session.store, out)

    if failed:
        raise typer.Exit(1)


@app.command("keys")
def cmd_keys() -> None:
    """Show the virtual keyboard layout."""
    render_keyboard(out)


if __name__ == "__main__":
    app()
