"""Virtual keyboard: key layout and the token composer.

The composer turns key presses into edits of the active input cell:

- Tokens carry a TokenType. A token whose type differs from the previously
  inserted one is separated from it by a single space; same-type tokens are
  concatenated so digit runs form one number.
- Unit tokens are wrapped in parentheses, with the selected modifier (if
  any) fused in front of the symbol first.
- The modifier selection lasts for exactly one token emission.
- UI actions (space, newline, backspace, clear, submit) bypass type tracking.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from unitdc_console.cells import CellStore
from unitdc_console.errors import PreconditionViolation
from unitdc_console.models import InputCell, TokenType, UiAction

logger = logging.getLogger(__name__)

# Metric-prefix-like modifiers, in keyboard order.
MODIFIERS = ("k", "c", "d", "m", "u", "n")


@dataclass(frozen=True)
class Key:
    """One virtual key. Exactly one of token_type/action/modifier is set."""

    label: str
    token: str = ""
    token_type: Optional[TokenType] = None
    action: Optional[UiAction] = None
    modifier: Optional[str] = None


def _tok(token: str, token_type: TokenType) -> Key:
    label = f"({token})" if token_type == TokenType.UNIT else token
    return Key(label=label, token=token, token_type=token_type)


def _ui(action: UiAction, label: str) -> Key:
    return Key(label=label, action=action)


def _mod(modifier: str) -> Key:
    return Key(label=f"({modifier}*)", modifier=modifier)


_OP = TokenType.OPERATOR
_NUM = TokenType.LITERAL_NUM
_UNIT = TokenType.UNIT

# Column-major, as drawn on screen.
LAYOUT: tuple[tuple[Key, ...], ...] = (
    (_tok("c", _OP), *(_mod(m) for m in ("k", "c", "d")), _ui(UiAction.APPEND_SPACE, "␣")),
    (_tok("d", _OP), *(_mod(m) for m in ("m", "u", "n")), _ui(UiAction.BACKSPACE, "←")),
    (_tok("v", _OP), *(_tok(t, _NUM) for t in ("7", "4", "1", "."))),
    (_tok("p", _OP), *(_tok(t, _NUM) for t in ("8", "5", "2", "0"))),
    (_tok("n", _OP), *(_tok(t, _NUM) for t in ("9", "6", "3", "e")), _ui(UiAction.APPEND_NEWLINE, "↩")),
    (*(_tok(t, _OP) for t in ("f", "+", "-", "*", "/")), _ui(UiAction.SUBMIT, "✓")),
    (_tok("r", _OP), _tok("s", _OP), *(_tok(t, _UNIT) for t in ("1", "g", "l", "iu"))),
    (_ui(UiAction.CLEAR, "CLR"), _tok("U", _OP), *(_tok(t, _UNIT) for t in ("m", "mol", "M", "Da"))),
)

KEYS: dict[str, Key] = {key.label: key for column in LAYOUT for key in column}


class TokenComposer:
    """Applies token and UI actions to the active cell of a CellStore."""

    def __init__(
        self,
        store: CellStore,
        on_submit: Optional[Callable[[], object]] = None,
    ) -> None:
        self._store = store
        self._on_submit = on_submit
        self._last_type: Optional[TokenType] = None
        self._generation = store.generation
        self.modifier: Optional[str] = None

    @property
    def last_type(self) -> Optional[TokenType]:
        self._sync_generation()
        return self._last_type

    def select_modifier(self, modifier: str) -> Optional[str]:
        """Toggle a modifier. Returns the selection after the toggle."""
        if modifier not in MODIFIERS:
            raise ValueError(f"Unknown modifier: {modifier!r}. Choose: {', '.join(MODIFIERS)}")
        self.modifier = None if self.modifier == modifier else modifier
        return self.modifier

    def insert_token(self, token: str, token_type: TokenType) -> str:
        """Insert a token into the active cell and return the new text."""
        cell = self._require_active()
        token_type = TokenType(token_type)

        if token_type == TokenType.UNIT:
            token = f"({self.modifier or ''}{token})"
        self.modifier = None

        text = cell.text
        if self._last_type is not None and self._last_type != token_type:
            text += " "
        text += token

        self._last_type = token_type
        self._store.update_active_text(text)
        return text

    def ui_action(self, action: UiAction) -> None:
        """Run a UI action against the active cell."""
        cell = self._require_active()
        action = UiAction(action)

        if action == UiAction.APPEND_SPACE:
            self._store.update_active_text(cell.text + " ")
        elif action == UiAction.APPEND_NEWLINE:
            self._store.update_active_text(cell.text + "\n")
        elif action == UiAction.BACKSPACE:
            self._store.update_active_text(cell.text[:-1])
        elif action == UiAction.CLEAR:
            self._store.update_active_text("")
        elif action == UiAction.SUBMIT:
            if self._on_submit is None:
                raise PreconditionViolation("No submission handler attached to the keyboard")
            self._on_submit()

    def _sync_generation(self) -> None:
        if self._store.generation != self._generation:
            self._generation = self._store.generation
            self._last_type = None

    def _require_active(self) -> InputCell:
        cell = self._store.active
        if cell is None:
            raise PreconditionViolation("No active input cell")
        self._sync_generation()
        return cell


class Keyboard:
    """Dispatches key presses by label to a TokenComposer."""

    def __init__(self, composer: TokenComposer) -> None:
        self.composer = composer

    def press(self, label: str) -> None:
        key = KEYS.get(label)
        if key is None:
            raise KeyError(f"No such key: {label!r}")
        logger.debug("Key pressed: %s", label)
        if key.modifier is not None:
            self.composer.select_modifier(key.modifier)
        elif key.action is not None:
            self.composer.ui_action(key.action)
        else:
            self.composer.insert_token(key.token, key.token_type)
