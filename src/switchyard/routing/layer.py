"""Layer, Handler, and Outcome definitions.

A layer binds one pattern to one or more handlers. The router walks
layers with the chain executor; the pipeline calls ``try_handle``.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum, unique
from typing import Any

from switchyard._internal.invoke import accepts_positional, attach, get_path
from switchyard._internal.types import HandlerFn, Params, PatternLike
from switchyard.config import PatternOptions
from switchyard.errors import ConfigurationError
from switchyard.routing.pattern import Matcher, is_pattern

logger = logging.getLogger("switchyard.layer")


@unique
class HandlerKind(str, Enum):
    NORMAL = "normal"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Handler:
    """A handler function tagged with its kind.

    Normal handlers run while no error is pending; error handlers run
    only while one is. The kind is declared, never guessed from the
    function's signature.
    """

    fn: HandlerFn
    kind: HandlerKind = HandlerKind.NORMAL

    @property
    def is_error_handler(self) -> bool:
        return self.kind is HandlerKind.ERROR

    @classmethod
    def wrap(cls, fn: "HandlerFn | Handler") -> "Handler":
        """Return *fn* as a Handler, tagging bare callables as normal."""
        if isinstance(fn, Handler):
            return fn
        if not callable(fn):
            msg = f"Handler must be callable, got {fn!r}"
            raise ConfigurationError(msg)
        return cls(fn=fn)


def error_handler(fn: HandlerFn) -> Handler:
    """Tag *fn* as an error handler.

    Works inline or as a decorator::

        router.route("/docs", render, error_handler(report))

        @error_handler
        def report(error, page, params, cursor):
            page.error = str(error)
            cursor.proceed()
    """
    if not callable(fn):
        msg = f"Error handler must be callable, got {fn!r}"
        raise ConfigurationError(msg)
    return Handler(fn=fn, kind=HandlerKind.ERROR)


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of ``Layer.try_handle``.

    ``result`` may be an awaitable when the handler is asynchronous.
    ``error`` holds an exception the handler raised synchronously.
    """

    matched: bool
    result: Any = None
    error: BaseException | None = None


class Layer:
    """One pattern bound to an ordered sequence of handlers.

    Usage::

        layer = Layer("/blog/:year", [show_year])
        layer.match("/blog/2013")   # {"year": "2013"}

    The matcher is built on first use and owned by the layer for its
    whole lifetime. Unsupported pattern types are rejected at
    construction; template syntax errors surface on first match.
    """

    __slots__ = ("_matcher", "handlers", "options", "pattern", "stage")

    def __init__(
        self,
        pattern: PatternLike | None,
        handlers: Iterable[HandlerFn | Handler],
        *,
        options: PatternOptions | None = None,
        stage: str | None = None,
    ) -> None:
        if pattern is not None and not is_pattern(pattern):
            msg = (
                f"Unsupported pattern {pattern!r}: expected a path template, "
                "a compiled regex, or a predicate callable."
            )
            raise ConfigurationError(msg)
        self.pattern = pattern
        self.handlers: tuple[Handler, ...] = tuple(Handler.wrap(h) for h in handlers)
        if not self.handlers:
            msg = "A layer needs at least one handler."
            raise ConfigurationError(msg)
        self.options = options or PatternOptions()
        self.stage = stage
        self._matcher: Matcher | None = None

    @property
    def matcher(self) -> Matcher | None:
        """The compiled matcher, built on first access."""
        if self._matcher is None and self.pattern is not None:
            self._matcher = Matcher(self.pattern, self.options)
        return self._matcher

    def match(self, path: str | None, context: Any = None) -> Params | None:
        """Return params if the layer's pattern matches, ``None`` otherwise.

        A layer without a pattern (a stage layer) matches everything
        with empty params.
        """
        matcher = self.matcher
        if matcher is None:
            return {}
        return matcher.match(path, context)

    def try_handle(self, context: Any) -> Outcome:
        """Match the context's path and, on success, call the handler.

        Pipeline dispatch only: the layer must hold exactly one handler.
        Router walks drive multi-handler layers through the chain
        executor instead. Params are attached to the context as
        ``params`` before the call. The handler receives ``(context)``
        or ``(context, params)`` depending on what it accepts.
        """
        if len(self.handlers) != 1:
            msg = f"try_handle() needs a single-handler layer, {self!r} has {len(self.handlers)}."
            raise ConfigurationError(msg)
        params = self.match(get_path(context), context)
        if params is None:
            return Outcome(matched=False)

        fn = self.handlers[0].fn
        attach(context, "params", params)
        try:
            if accepts_positional(fn, 2):
                result = fn(context, params)
            else:
                result = fn(context)
        except Exception as exc:
            logger.debug("Handler %r raised on %r", fn, self, exc_info=True)
            return Outcome(matched=True, error=exc)
        return Outcome(matched=True, result=result)

    def __repr__(self) -> str:
        if self.stage is not None:
            return f"<Layer stage={self.stage!r} handlers={len(self.handlers)}>"
        return f"<Layer {self.pattern!r} handlers={len(self.handlers)}>"


def layer_decorator(register: Callable[[HandlerFn], Any]) -> Callable[[HandlerFn], HandlerFn]:
    """Build a decorator that registers a function and returns it unchanged."""

    def decorator(fn: HandlerFn) -> HandlerFn:
        register(fn)
        return fn

    return decorator
