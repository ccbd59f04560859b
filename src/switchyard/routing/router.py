"""Layered router with path routes and named stages.

Routes and stages are registered in order and dispatched in that same
order. A dispatch walks the matching layers through the chain executor.
"""

import logging
from collections.abc import Callable
from typing import Any, overload

from switchyard._internal.invoke import get_path
from switchyard._internal.types import Done, HandlerFn, PatternLike
from switchyard.config import PatternOptions
from switchyard.middleware.chain import AsyncChain, Segment, SyncChain
from switchyard.routing.layer import Handler, Layer, layer_decorator

logger = logging.getLogger("switchyard.router")


class Router:
    """Ordered route stack plus named stages.

    Usage::

        router = Router()

        @router.route("/blog/:year")
        def blog(page, params, cursor):
            page.year = params["year"]
            cursor.proceed()

        router.use("render", add_layout)

        router.middleware(page, done)           # routes only
        router.stage("render", page, done)      # stage layers, then routes
        await router.dispatch(page)             # async handlers allowed

    The matching path is an optional trailing argument,
    ``middleware(context, done, path=None)`` and
    ``stage(name, context, done, path=None)``, and defaults to the
    context's own ``path``. Callers used to a leading optional path
    pass it last, or by keyword.
    """

    __slots__ = ("options", "stack", "stages")

    def __init__(self, *, options: PatternOptions | None = None) -> None:
        self.options = options or PatternOptions()
        self.stack: list[Layer] = []
        self.stages: dict[str, list[Layer]] = {}

    # -- Registration --

    @overload
    def route(
        self, pattern: PatternLike, *, options: PatternOptions | None = None
    ) -> Callable[[HandlerFn], HandlerFn]: ...

    @overload
    def route(
        self,
        pattern: PatternLike,
        handler: HandlerFn | Handler,
        /,
        *handlers: HandlerFn | Handler,
        options: PatternOptions | None = None,
    ) -> Layer: ...

    def route(
        self,
        pattern: PatternLike,
        *handlers: HandlerFn | Handler,
        options: PatternOptions | None = None,
    ) -> Layer | Callable[[HandlerFn], HandlerFn]:
        """Append a route: one pattern, one or more handlers.

        All handlers of a route share the params computed when the walk
        enters it. Called without handlers, returns a decorator.
        """
        if not handlers:
            return layer_decorator(lambda fn: self.route(pattern, fn, options=options))

        layer = Layer(pattern, handlers, options=options or self.options)
        self.stack.append(layer)
        logger.debug("Registered route %r", layer)
        return layer

    @overload
    def use(self, stage: str) -> Callable[[HandlerFn], HandlerFn]: ...

    @overload
    def use(self, stage: str, handler: HandlerFn | Handler, /, *handlers: HandlerFn | Handler) -> Layer: ...

    def use(self, stage: str, *handlers: HandlerFn | Handler) -> Layer | Callable[[HandlerFn], HandlerFn]:
        """Append a layer to the named stage, creating the stage if needed.

        Stage layers are not matched against the path: dispatching the
        stage runs all of them. Called without handlers, returns a decorator.
        """
        if not handlers:
            return layer_decorator(lambda fn: self.use(stage, fn))

        layer = Layer(None, handlers, stage=stage)
        self.stages.setdefault(stage, []).append(layer)
        logger.debug("Registered stage layer %r", layer)
        return layer

    # -- Dispatch --

    def middleware(self, context: Any, done: Done, path: str | None = None) -> None:
        """Run the route stack for *context*, then call ``done(error)``.

        *path* defaults to the context's own ``path``.
        """
        self._start(None, context, done, path)

    def stage(self, name: str, context: Any, done: Done, path: str | None = None) -> None:
        """Run stage *name*'s layers, then the route stack, as one walk.

        An unknown stage name runs no stage layers and goes straight to
        route matching.
        """
        self._start(name, context, done, path)

    async def dispatch(self, context: Any, *, stage: str | None = None, path: str | None = None) -> Any:
        """Awaitable dispatch. Returns the context; raises an unhandled error.

        Handlers may be ``async def``; their coroutines are awaited
        before the walk continues.
        """
        path = get_path(context) if path is None else path
        logger.debug("Dispatching %r (stage=%r, async)", path, stage)
        error = await AsyncChain(self.segments(stage), path, context).run()
        if error is not None:
            raise error
        return context

    def segments(self, stage: str | None = None) -> list[Segment]:
        """The walk for one dispatch: stage layers first, then routes."""
        walk: list[Segment] = []
        if stage is not None:
            walk.extend(Segment(layer, unconditional=True) for layer in self.stages.get(stage, ()))
        walk.extend(Segment(layer) for layer in self.stack)
        return walk

    def _start(self, stage: str | None, context: Any, done: Done, path: str | None) -> None:
        path = get_path(context) if path is None else path
        logger.debug("Dispatching %r (stage=%r)", path, stage)
        SyncChain(self.segments(stage), path, context, done).start()

    def __repr__(self) -> str:
        return f"<Router routes={len(self.stack)} stages={sorted(self.stages)}>"
