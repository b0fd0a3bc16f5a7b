"""Engine adapter: bootstrap, result callback and per-submission event buffering.

The engine itself is an external collaborator. Anything with the three
methods of the Engine protocol will do:

    initialize()                         -> handle (or an awaitable of one)
    register_result_callback(handle, cb) -> None
    submit(handle, text)                 -> None, raises on malformed input

The callback receives ``(kind, payload)`` where kind is one of "quantity",
"quantity_list" or "message". While a submission is in flight every event
is translated to a cell and buffered; the buffer is handed back to the
caller when the engine returns, so the cells of one submission are applied
together and in the order the engine reported them.
"""

from __future__ import annotations

import asyncio
import importlib
import inspect
import logging
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Union, runtime_checkable

from unitdc_console.cells import CellStore
from unitdc_console.errors import BootstrapFailure, PreconditionViolation, SubmissionFailure
from unitdc_console.models import Cell, EngineEvent, ErrorCell, EventKind, InputCell

logger = logging.getLogger(__name__)

DEFAULT_ENGINE = "unitdc_console.rpn:RpnEngine"

ResultCallback = Callable[[str, Any], None]


@runtime_checkable
class Engine(Protocol):
    """The calculation engine boundary."""

    def initialize(self) -> Any: ...

    def register_result_callback(self, handle: Any, callback: ResultCallback) -> None: ...

    def submit(self, handle: Any, text: str) -> None: ...


class AdapterState(str, Enum):
    """Bootstrap progress of an EngineAdapter."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def describe_exception(exc: BaseException) -> str:
    """Human-readable description of an engine failure."""
    text = str(exc)
    return text if text else type(exc).__name__


def load_engine(path: str) -> Engine:
    """Import an engine from a ``module:attr`` path.

    The attribute may be an Engine instance or a zero-argument factory (such
    as a class) returning one.

    Raises:
        BootstrapFailure: if the path is malformed, not importable, or does
            not resolve to an engine.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise BootstrapFailure(f"Invalid engine path {path!r}, expected 'module:attr'")

    try:
        mod = importlib.import_module(module_name)
    except ImportError as e:
        raise BootstrapFailure(f"Cannot import engine module {module_name!r}: {e}") from e

    target = getattr(mod, attr, None)
    if target is None:
        raise BootstrapFailure(f"Engine module {module_name!r} has no attribute {attr!r}")

    if isinstance(target, Engine) and not inspect.isclass(target):
        engine = target
    elif callable(target):
        try:
            engine = target()
        except Exception as e:
            raise BootstrapFailure(f"Engine factory {path} failed: {describe_exception(e)}") from e
    else:
        engine = target
    if not isinstance(engine, Engine):
        raise BootstrapFailure(f"{path} is not a calculation engine")
    return engine


class EngineAdapter:
    """Bootstraps one engine for one CellStore and relays its results."""

    def __init__(self, engine: Union[Engine, str], store: CellStore) -> None:
        self._engine_source = engine
        self._engine: Optional[Engine] = None
        self._store = store
        self._handle: Any = None
        self._task: Optional[asyncio.Future] = None
        self._buffer: Optional[list[Cell]] = None
        self._pending: list[Cell] = []
        self.state = AdapterState.IDLE

    @property
    def ready(self) -> bool:
        return self.state == AdapterState.READY

    async def bootstrap(self) -> bool:
        """Load the engine once; every later call awaits the same attempt.

        Returns True when the session is ready for input.
        """
        if self._task is None:
            self._task = asyncio.ensure_future(self._bootstrap())
        return await self._task

    async def _bootstrap(self) -> bool:
        self.state = AdapterState.LOADING
        source = self._engine_source
        logger.info("Bootstrapping engine %s", source if isinstance(source, str) else type(source).__name__)
        try:
            engine = load_engine(source) if isinstance(source, str) else source
            handle = engine.initialize()
            if inspect.isawaitable(handle):
                handle = await handle
            engine.register_result_callback(handle, self._on_result)
        except Exception as e:
            self.state = AdapterState.FAILED
            logger.error("Engine bootstrap failed: %s", describe_exception(e))
            self._store.append(ErrorCell(text=describe_exception(e)))
            return False

        self._engine = engine
        self._handle = handle
        self.state = AdapterState.READY
        self._store.append(InputCell(text=""))
        logger.info("Engine ready")
        return True

    def submit(self, text: str) -> list[Cell]:
        """Run text through the engine and return the cells it produced.

        Cells from out-of-band events received since the previous submission
        come first.

        Raises:
            PreconditionViolation: if bootstrap has not completed.
            SubmissionFailure: if the engine raised; buffered events are dropped.
        """
        if not self.ready or self._engine is None:
            raise PreconditionViolation("Engine is not ready")

        logger.debug("Submitting %r", text)
        self._buffer = []
        try:
            self._engine.submit(self._handle, text)
        except Exception as e:
            if self._buffer:
                logger.debug("Discarding %d event(s) from failed submission", len(self._buffer))
            raise SubmissionFailure(describe_exception(e)) from e
        finally:
            events, self._buffer = self._buffer, None

        pending, self._pending = self._pending, []
        return pending + events

    def _on_result(self, kind: str, payload: Any) -> None:
        cell = EngineEvent(kind=EventKind(kind), payload=payload).to_cell()
        if self._buffer is not None:
            self._buffer.append(cell)
        elif self.state != AdapterState.READY:
            # Still bootstrapping: no active cell to keep last yet.
            self._store.append(cell)
        else:
            logger.warning("Engine reported %s outside a submission; holding it for the next one", kind)
            self._pending.append(cell)
