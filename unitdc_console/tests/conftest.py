"""Shared fixtures: a scripted in-memory engine and bootstrapped sessions."""

import asyncio

import pytest

from unitdc_console.errors import EngineError
from unitdc_console.session import Session


def quantity(display, value, *unit):
    """Quantity payload in the engine's serialized shape."""
    return {
        "_str": display,
        "number_float": value,
        "unit": [{"unit": s, "exponent": e} for s, e in unit],
    }


class ScriptedEngine:
    """Engine whose reaction to each submitted text is fixed up front.

    ``script`` maps text to a list of steps: ``(kind, payload)`` tuples are
    reported through the callback, exceptions are raised where they appear.
    Unknown text succeeds silently.
    """

    def __init__(self, script=None, init_error=None, init_events=()):
        self.script = script or {}
        self.init_error = init_error
        self.init_events = list(init_events)
        self.init_calls = 0
        self.callback = None
        self.submitted = []

    async def initialize(self):
        self.init_calls += 1
        await asyncio.sleep(0)
        if self.init_error is not None:
            raise self.init_error
        return "handle"

    def register_result_callback(self, handle, callback):
        assert handle == "handle"
        self.callback = callback
        for kind, payload in self.init_events:
            callback(kind, payload)

    def submit(self, handle, text):
        self.submitted.append(text)
        for step in self.script.get(text, []):
            if isinstance(step, BaseException):
                raise step
            self.callback(*step)


@pytest.fixture
def engine():
    return ScriptedEngine(
        script={
            "1 p": [("quantity", quantity("1 (1)", 1.0))],
            "f": [("quantity_list", [quantity("1 (m)", 1.0, ("m", 1)), quantity("2 (m)", 2.0, ("m", 1))])],
            "f msg": [
                ("quantity_list", [quantity("1 (m)", 1.0, ("m", 1))]),
                ("message", "stack printed"),
            ],
            "bad": [EngineError("Stack underflow")],
            "half": [("quantity", quantity("5 (1)", 5.0)), EngineError("Undefined unit: zz")],
        }
    )


@pytest.fixture
def session(engine):
    """A session bootstrapped against the scripted engine."""
    s = Session(engine)
    assert asyncio.run(s.bootstrap()) is True
    return s


@pytest.fixture
def rpn_session():
    """A session bootstrapped against the bundled RPN engine."""
    s = Session()
    assert asyncio.run(s.bootstrap()) is True
    return s
