"""Chain executor — walks layers, applying cursor transitions.

One ``Chain`` is built per dispatch call. It owns the cursor position
(layer index, handler index), the params of the current layer, and the
pending error; the layer list itself is shared and only read.

States::

    SELECTING_ROUTE  find the next eligible layer and handler
    RUNNING_HANDLER  a handler holds the cursor
    DONE / ERROR     walk finished, error is None or not

Handlers never call into the next handler directly. ``Cursor`` methods
record a transition and return; the driver loop applies it and invokes
the next handler. Long chains therefore use constant stack depth.

Two drivers share the state machine:

- ``SyncChain`` — callback style, finishes by calling ``done(error)``.
  A handler may keep its cursor and transition later (from a timer, a
  callback, another task); the loop restarts from that call.
- ``AsyncChain`` — awaited, runs ``async def`` handlers, and waits on
  an ``anyio.Event`` when a handler returns without transitioning.
"""

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, unique
from typing import Any

import anyio

from switchyard._internal.invoke import resolve
from switchyard._internal.types import Done, Params
from switchyard.context import page_var
from switchyard.errors import DispatchError
from switchyard.routing.layer import Handler, Layer

logger = logging.getLogger("switchyard.chain")


@unique
class Transition(str, Enum):
    START = "start"
    PROCEED = "proceed"
    SKIP_ROUTE = "skip_route"
    FAIL = "fail"


@dataclass(frozen=True, slots=True)
class Segment:
    """A layer as seen by one walk.

    Stage layers are ``unconditional``: stage membership already chose
    them, so their pattern (if any) is not tested.
    """

    layer: Layer
    unconditional: bool = False


class Cursor:
    """The handle a handler uses to move the walk forward.

    Exactly one transition may be made per cursor::

        def handler(page, params, cursor):
            if page.draft:
                cursor.skip_route()      # rest of this route is skipped
            elif page.broken:
                cursor.fail(ValueError("broken page"))
            else:
                cursor.proceed()
    """

    __slots__ = ("_chain", "_step")

    def __init__(self, chain: "Chain", step: int) -> None:
        self._chain = chain
        self._step = step

    def proceed(self) -> None:
        """Continue with the next handler (clears a pending error)."""
        self._chain._record(self._step, Transition.PROCEED, None)

    def skip_route(self) -> None:
        """Abandon the current route's remaining handlers."""
        self._chain._record(self._step, Transition.SKIP_ROUTE, None)

    def fail(self, error: BaseException) -> None:
        """Route *error* to the next error handler, or to completion."""
        if not isinstance(error, BaseException):
            msg = f"fail() expects an exception, got {error!r}"
            raise TypeError(msg)
        self._chain._record(self._step, Transition.FAIL, error)

    @property
    def active(self) -> bool:
        """True while this cursor may still make its transition."""
        return self._chain._awaiting == self._step


class Chain(ABC):
    """State machine shared by both drivers.

    Drivers implement ``_resume``, called when a cursor records a
    transition.
    """

    __slots__ = (
        "_awaiting",
        "_context",
        "_error",
        "_finished",
        "_handler_index",
        "_index",
        "_params",
        "_path",
        "_pending",
        "_segments",
        "_step",
    )

    def __init__(self, segments: Sequence[Segment], path: str | None, context: Any) -> None:
        self._segments = segments
        self._path = path
        self._context = context
        self._index = 0
        self._handler_index = 0
        self._params: Params | None = None
        self._error: BaseException | None = None
        self._step = 0
        self._awaiting: int | None = None
        self._pending: tuple[Transition, BaseException | None] | None = None
        self._finished = False

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def finished(self) -> bool:
        return self._finished

    # -- Transitions --

    def _record(self, step: int, transition: Transition, error: BaseException | None) -> None:
        if self._finished:
            msg = f"Cannot {transition.value}: dispatch of {self._path!r} already finished."
            raise DispatchError(msg)
        if step != self._awaiting:
            msg = f"Cannot {transition.value}: this cursor was already advanced."
            raise DispatchError(msg)
        self._awaiting = None
        self._pending = (transition, error)
        self._resume()

    @abstractmethod
    def _resume(self) -> None: ...

    def _capture(self, exc: Exception) -> None:
        """Treat an exception raised by a handler as ``fail(exc)``."""
        logger.debug("Handler raised during dispatch of %r", self._path, exc_info=True)
        self._awaiting = None
        self._pending = (Transition.FAIL, exc)

    def _advance(self, transition: Transition, error: BaseException | None) -> None:
        if transition is Transition.START:
            return
        if transition is Transition.SKIP_ROUTE:
            self._error = None
            self._leave_layer()
            return
        self._handler_index += 1
        self._error = error

    def _leave_layer(self) -> None:
        self._index += 1
        self._handler_index = 0
        self._params = None

    # -- Selection --

    def _select(self) -> Handler | None:
        """Return the next handler to run, or ``None`` at the end.

        While an error is pending only error handlers are eligible;
        otherwise only normal handlers are.
        """
        while self._index < len(self._segments):
            segment = self._segments[self._index]

            if self._params is None:
                params = self._match(segment)
                if params is None:
                    self._leave_layer()
                    continue
                self._params = params

            handlers = segment.layer.handlers
            while self._handler_index < len(handlers):
                handler = handlers[self._handler_index]
                if handler.is_error_handler == (self._error is not None):
                    return handler
                self._handler_index += 1

            self._leave_layer()
        return None

    def _match(self, segment: Segment) -> Params | None:
        if segment.unconditional:
            return {}
        try:
            return segment.layer.match(self._path, self._context)
        except Exception as exc:
            # A predicate that raises fails the walk at this point; an
            # error already pending is kept
            logger.debug("Pattern of %r raised on %r", segment.layer, self._path, exc_info=True)
            if self._error is None:
                self._error = exc
            return None

    def _call(self, handler: Handler) -> Any:
        self._step += 1
        self._awaiting = self._step
        cursor = Cursor(self, self._step)
        if handler.is_error_handler:
            return handler.fn(self._error, self._context, self._params, cursor)
        return handler.fn(self._context, self._params, cursor)

    def _next_handler(self) -> Handler | None:
        pending = self._pending
        self._pending = None
        if pending is not None:
            self._advance(*pending)
        return self._select()

    def _finish(self) -> None:
        self._finished = True
        self._awaiting = None
        if self._error is not None:
            logger.debug("Dispatch of %r finished with %r", self._path, self._error)
        else:
            logger.debug("Dispatch of %r finished", self._path)


class SyncChain(Chain):
    """Callback driver. ``start()`` runs until a handler defers or the end.

    Usage::

        chain = SyncChain(segments, "/docs", page, done)
        chain.start()
    """

    __slots__ = ("_done", "_running")

    def __init__(self, segments: Sequence[Segment], path: str | None, context: Any, done: Done) -> None:
        super().__init__(segments, path, context)
        self._done = done
        self._running = False

    def start(self) -> None:
        self._pending = (Transition.START, None)
        self._run()

    def _resume(self) -> None:
        # Inside the loop the recorded transition is picked up on the
        # next iteration; outside it (a deferred call) the loop restarts.
        if not self._running:
            self._run()

    def _run(self) -> None:
        self._running = True
        try:
            while self._pending is not None:
                handler = self._next_handler()
                if handler is None:
                    self._finish()
                    self._done(self._error)
                    return

                token = page_var.set(self._context)
                try:
                    result = self._call(handler)
                except Exception as exc:
                    self._capture(exc)
                    continue
                finally:
                    page_var.reset(token)

                if inspect.isawaitable(result):
                    if inspect.iscoroutine(result):
                        result.close()
                    msg = (
                        f"Handler {handler.fn!r} returned an awaitable under callback "
                        "dispatch. Use 'await router.dispatch(...)' for async handlers."
                    )
                    self._capture(DispatchError(msg))
        finally:
            self._running = False


class AsyncChain(Chain):
    """Async driver. ``await run()`` returns the terminal error or ``None``.

    Handlers may be ``def`` or ``async def``. A handler that returns
    without transitioning is waited on until its cursor is used.
    """

    __slots__ = ("_wakeup",)

    def __init__(self, segments: Sequence[Segment], path: str | None, context: Any) -> None:
        super().__init__(segments, path, context)
        self._wakeup: anyio.Event | None = None

    async def run(self) -> BaseException | None:
        self._pending = (Transition.START, None)
        while True:
            handler = self._next_handler()
            if handler is None:
                break

            wakeup = self._wakeup = anyio.Event()
            token = page_var.set(self._context)
            try:
                await resolve(self._call(handler))
            except Exception as exc:
                self._capture(exc)
                continue
            finally:
                page_var.reset(token)

            if self._pending is None:
                await wakeup.wait()

        self._finish()
        return self._error

    def _resume(self) -> None:
        if self._wakeup is not None:
            self._wakeup.set()
