"""Reference engine: a small dc-style stack calculator with unit annotations.

This is the default engine for the console so the CLI works out of the box.
Units are opaque symbols combined as a product of powers; there is no
conversion between units.

Syntax (whitespace separates tokens where needed):

    3 4 +      numbers; ``_`` is a digit separator, ``e`` an exponent
    5 (m)      annotate the top of the stack with a unit (``1`` = unitless)
    (m/s*kg)   compound units
    + - * /    arithmetic on the top two values
    p          print the top value        n   pop and print the top value
    f          print the whole stack      c   clear the stack
    d          duplicate the top value    r   swap the top two values
    >x  <x     store into / recall from variable x
    # ...      comment to end of line
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Any, Callable, Iterator, Optional

from unitdc_console.errors import EngineError
from unitdc_console.models import EventKind, Result, UnitExponent

logger = logging.getLogger(__name__)

_NUMBER_START = set("0123456789_")
_NUMBER_BODY = set("0123456789.eE_-")
_UNIT_CHARS = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789/*_")
_NAME_CHARS = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_")
_OPERATORS = set("+-*/pnfcdrsUv")


@dataclass(frozen=True)
class Token:
    """A lexed token. ``kind`` is one of number/unit/op/store/recall."""

    kind: str
    text: str
    line: int
    column: int


def tokenize(text: str) -> Iterator[Token]:
    """Lex ``text`` into tokens, skipping whitespace and comments.

    Raises:
        EngineError: on a character that cannot start or continue a token.
    """
    i = 0
    line, col = 1, 1

    def advance(n: int = 1) -> None:
        nonlocal i, line, col
        for ch in text[i:i + n]:
            if ch == "\n":
                line, col = line + 1, 1
            else:
                col += 1
        i += n

    while i < len(text):
        ch = text[i]
        start = (line, col)

        if ch.isspace():
            advance()
        elif ch == "#":
            end = text.find("\n", i)
            advance((len(text) if end == -1 else end) - i)
        elif ch in _NUMBER_START:
            j = i + 1
            while j < len(text) and text[j] in _NUMBER_BODY:
                j += 1
            yield Token("number", text[i:j], *start)
            advance(j - i)
        elif ch == "(":
            j = i + 1
            while j < len(text) and text[j] in _UNIT_CHARS:
                j += 1
            if j >= len(text) or text[j] != ")":
                bad = text[j] if j < len(text) else "end of input"
                raise EngineError(f"Invalid character: {bad} at {line}:{col + j - i}")
            yield Token("unit", text[i + 1:j], *start)
            advance(j + 1 - i)
        elif ch in "><":
            j = i + 1
            while j < len(text) and text[j] in _NAME_CHARS:
                j += 1
            yield Token("store" if ch == ">" else "recall", text[i + 1:j], *start)
            advance(j - i)
        elif ch in _OPERATORS:
            yield Token("op", ch, *start)
            advance()
        else:
            raise EngineError(f"Invalid character: {ch} at {line}:{col}")


def parse_number(text: str) -> Fraction:
    """Parse a number literal exactly; ``_`` separators are ignored."""
    cleaned = text.replace("_", "")
    try:
        return Fraction(cleaned)
    except (ValueError, ZeroDivisionError):
        raise EngineError(f"Invalid number: {text}") from None


def parse_unit(text: str) -> dict[str, int]:
    """Parse ``a*b/c`` into ``{"a": 1, "b": 1, "c": -1}``. ``1`` is unitless."""
    exponents: dict[str, int] = {}
    sign = 1
    symbol = ""
    for ch in text + "*":
        if ch in "*/":
            if symbol and symbol != "1":
                exponents[symbol] = exponents.get(symbol, 0) + sign
            elif not symbol:
                raise EngineError(f"Invalid unit: ({text})")
            symbol = ""
            sign = -1 if ch == "/" else 1
        else:
            symbol += ch
    return {s: e for s, e in exponents.items() if e != 0}


def format_unit(unit: dict[str, int]) -> str:
    """Render a unit, highest exponent first: ``{"m": 1, "s": -2}`` → ``m(s^-2)``."""
    factors = sorted(((s, e) for s, e in unit.items() if e != 0), key=lambda f: -f[1])
    if not factors:
        return "1"
    return "".join(s if e == 1 else f"({s}^{e})" for s, e in factors)


def _format_number(value: Fraction) -> str:
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


@dataclass
class Quantity:
    """An exact number with a product-of-powers unit."""

    number: Fraction
    unit: dict[str, int] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{_format_number(self.number)} ({format_unit(self.unit)})"

    def same_unit(self, other: Quantity) -> bool:
        return self.unit == other.unit

    def combine(self, other: Quantity, sign: int) -> dict[str, int]:
        merged = dict(self.unit)
        for symbol, exponent in other.unit.items():
            merged[symbol] = merged.get(symbol, 0) + sign * exponent
        return {s: e for s, e in merged.items() if e != 0}

    def to_payload(self) -> dict:
        """Serialize the way the original engine reports a quantity."""
        try:
            value = float(self.number)
        except OverflowError:
            raise EngineError("Overflow") from None
        return Result(
            display=str(self),
            value=value,
            unit=tuple(UnitExponent(symbol=s, exponent=e) for s, e in self.unit.items()),
        ).to_dict()


class Interpreter:
    """Stack machine state for one engine handle."""

    def __init__(self) -> None:
        self.stack: list[Quantity] = []
        self.variables: dict[str, Quantity] = {}
        self.output: Optional[Callable[[str, Any], None]] = None

    def _emit(self, kind: EventKind, payload: Any) -> None:
        if self.output is not None:
            self.output(kind.value, payload)

    def _pop(self) -> Quantity:
        if not self.stack:
            raise EngineError("Stack underflow")
        return self.stack.pop()

    def _pop2(self) -> tuple[Quantity, Quantity]:
        if len(self.stack) < 2:
            raise EngineError("Stack underflow")
        rhs = self.stack.pop()
        lhs = self.stack.pop()
        return lhs, rhs

    def run(self, text: str) -> None:
        """Execute ``text`` token by token.

        State changes made before a failing token are kept, as in dc.
        """
        for token in tokenize(text):
            self._step(token)

    def _step(self, token: Token) -> None:
        if token.kind == "number":
            self.stack.append(Quantity(parse_number(token.text)))
        elif token.kind == "unit":
            self._apply_unit(token.text)
        elif token.kind == "store":
            self.variables[token.text] = self._pop()
        elif token.kind == "recall":
            if token.text not in self.variables:
                raise EngineError(f"Undefined variable: {token.text}")
            q = self.variables[token.text]
            self.stack.append(Quantity(q.number, dict(q.unit)))
        else:
            self._operator(token.text)

    def _apply_unit(self, text: str) -> None:
        q = self._pop()
        unit = parse_unit(text)
        if not unit:
            q = Quantity(q.number)
        elif not q.unit:
            q = Quantity(q.number, unit)
        elif q.unit != unit:
            self.stack.append(q)
            raise EngineError(f"Incompatible units: {format_unit(q.unit)}")
        self.stack.append(q)

    def _operator(self, op: str) -> None:
        if op in "+-":
            lhs, rhs = self._pop2()
            if not lhs.same_unit(rhs):
                self.stack.extend([lhs, rhs])
                raise EngineError(f"Incompatible units: {format_unit(lhs.unit)}")
            number = lhs.number + rhs.number if op == "+" else lhs.number - rhs.number
            self.stack.append(Quantity(number, dict(lhs.unit)))
        elif op == "*":
            lhs, rhs = self._pop2()
            self.stack.append(Quantity(lhs.number * rhs.number, lhs.combine(rhs, 1)))
        elif op == "/":
            lhs, rhs = self._pop2()
            if rhs.number == 0:
                self.stack.extend([lhs, rhs])
                raise EngineError("Division by zero")
            self.stack.append(Quantity(lhs.number / rhs.number, lhs.combine(rhs, -1)))
        elif op == "p":
            q = self._pop()
            self.stack.append(q)
            self._emit(EventKind.QUANTITY, q.to_payload())
        elif op == "n":
            self._emit(EventKind.QUANTITY, self._pop().to_payload())
        elif op == "f":
            self._emit(EventKind.QUANTITY_LIST, [q.to_payload() for q in self.stack])
        elif op == "c":
            self.stack.clear()
        elif op == "d":
            q = self._pop()
            self.stack.extend([q, Quantity(q.number, dict(q.unit))])
        elif op == "r":
            lhs, rhs = self._pop2()
            self.stack.extend([rhs, lhs])
        else:
            raise EngineError(f"Unsupported operator: {op}")


class RpnEngine:
    """Engine-protocol wrapper around Interpreter."""

    async def initialize(self) -> Interpreter:
        logger.debug("Initializing RPN interpreter")
        return Interpreter()

    def register_result_callback(self, handle: Interpreter, callback: Callable[[str, Any], None]) -> None:
        handle.output = callback

    def submit(self, handle: Interpreter, text: str) -> None:
        handle.run(text)
