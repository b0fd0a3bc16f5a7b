"""Data models for the unitdc console.

Cell variants, Result, and the enums for token types, UI actions and engine
event kinds: all the typed structures that flow through
keyboard → session → cell store → renderer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class CellKind(str, Enum):
    """Transcript cell tags."""

    INPUT = "input"
    OUTPUT = "output"
    MESSAGE = "message"
    ERROR = "error"


class TokenType(str, Enum):
    """Token classes produced by the virtual keyboard."""

    OPERATOR = "operator"
    LITERAL_NUM = "literal_num"
    UNIT = "unit"


class UiAction(str, Enum):
    """Keyboard actions that bypass token type tracking."""

    APPEND_SPACE = "append_space"
    APPEND_NEWLINE = "append_newline"
    BACKSPACE = "backspace"
    CLEAR = "clear"
    SUBMIT = "submit"


class EventKind(str, Enum):
    """Result event kinds reported by the engine callback."""

    QUANTITY = "quantity"
    QUANTITY_LIST = "quantity_list"
    MESSAGE = "message"


@dataclass(frozen=True)
class UnitExponent:
    """One factor of a product-of-powers unit."""

    symbol: str
    exponent: int = 1


@dataclass(frozen=True)
class Result:
    """One engine-computed value.

    ``display`` is the engine's own rendering; ``unit`` is kept in the order
    the engine reported it.
    """

    display: str
    value: float
    unit: tuple[UnitExponent, ...] = ()

    def to_dict(self) -> dict:
        """Serialize to the engine's wire shape."""
        return {
            "_str": self.display,
            "number_float": None if math.isnan(self.value) else self.value,
            "unit": [{"unit": u.symbol, "exponent": u.exponent} for u in self.unit],
        }

    @classmethod
    def from_payload(cls, payload: Any) -> Result:
        """Build a Result from a quantity payload.

        Accepts an existing Result or the serialized mapping
        ``{"_str", "number_float", "unit": [{"unit", "exponent"}]}``.
        Missing fields fall back to empty values; a missing number is NaN
        and serializes back to null.
        """
        if isinstance(payload, Result):
            return payload
        if not isinstance(payload, dict):
            raise TypeError(f"Unsupported quantity payload: {type(payload).__name__}")
        unit = tuple(
            UnitExponent(symbol=str(u.get("unit", "")), exponent=int(u.get("exponent", 1)))
            for u in payload.get("unit", [])
        )
        value = payload.get("number_float")
        return cls(
            display=str(payload.get("_str", "")),
            value=float("nan") if value is None else float(value),
            unit=unit,
        )


@dataclass(frozen=True)
class InputCell:
    """User-editable source text. Only the active one is ever edited."""

    text: str = ""

    kind = CellKind.INPUT

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "text": self.text}


@dataclass(frozen=True)
class OutputCell:
    """Engine results rendered together, newest first."""

    results: tuple[Result, ...] = field(default_factory=tuple)

    kind = CellKind.OUTPUT

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "quantity": [r.to_dict() for r in self.results]}


@dataclass(frozen=True)
class MessageCell:
    """Informational text from the engine."""

    text: str = ""

    kind = CellKind.MESSAGE

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "text": self.text}


@dataclass(frozen=True)
class ErrorCell:
    """A failure description."""

    text: str = ""

    kind = CellKind.ERROR

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "text": self.text}


Cell = Union[InputCell, OutputCell, MessageCell, ErrorCell]


@dataclass(frozen=True)
class EngineEvent:
    """A single result-callback invocation."""

    kind: EventKind
    payload: Any = None

    def to_cell(self) -> Cell:
        """Translate the event into the transcript cell it produces."""
        if self.kind == EventKind.QUANTITY:
            return OutputCell(results=(Result.from_payload(self.payload),))
        if self.kind == EventKind.QUANTITY_LIST:
            return OutputCell(results=tuple(Result.from_payload(p) for p in self.payload))
        return MessageCell(text=str(self.payload))
