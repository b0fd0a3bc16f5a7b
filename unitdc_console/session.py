"""Session: one transcript, one keyboard, one engine.

Sessions own all their mutable state, so any number can coexist in one
process. Nothing is usable until ``bootstrap()`` has completed; before that
every edit, key press or submit raises PreconditionViolation.
"""

from __future__ import annotations

from typing import Optional, Union

from unitdc_console.cells import CellStore
from unitdc_console.engine import DEFAULT_ENGINE, Engine, EngineAdapter
from unitdc_console.keyboard import Keyboard, TokenComposer
from unitdc_console.models import InputCell, TokenType, UiAction
from unitdc_console.submission import SubmissionController, SubmissionRecord


class Session:
    """Wires the cell store, token composer, submission controller and engine adapter."""

    def __init__(self, engine: Union[Engine, str] = DEFAULT_ENGINE) -> None:
        self.store = CellStore()
        self.adapter = EngineAdapter(engine, self.store)
        self.controller = SubmissionController(self.store, self.adapter)
        self.composer = TokenComposer(self.store, on_submit=self.submit)
        self.keyboard = Keyboard(self.composer)

    async def bootstrap(self) -> bool:
        """Bootstrap the engine. Safe to call repeatedly; runs once."""
        return await self.adapter.bootstrap()

    @property
    def ready(self) -> bool:
        return self.adapter.ready

    @property
    def active(self) -> Optional[InputCell]:
        return self.store.active

    def edit(self, text: str) -> None:
        """Change notification from the text surface bound to the active cell."""
        self.store.update_active_text(text)

    def submit(self) -> SubmissionRecord:
        return self.controller.submit()

    def submit_text(self, text: str) -> SubmissionRecord:
        """Replace the active text and submit it in one step."""
        self.edit(text)
        return self.submit()

    def press(self, label: str) -> None:
        self.keyboard.press(label)

    def insert_token(self, token: str, token_type: TokenType) -> str:
        return self.composer.insert_token(token, token_type)

    def ui_action(self, action: UiAction) -> None:
        self.composer.ui_action(action)

    def select_modifier(self, modifier: str) -> Optional[str]:
        return self.composer.select_modifier(modifier)
