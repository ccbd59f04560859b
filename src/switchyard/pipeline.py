"""Pipeline — hook-named layers run in order over one page.

The second dispatch mode. Each hook holds an ordered list of
single-handler layers. ``handle()`` tries them in order; every matching
handler runs to completion (awaited if it returns an awaitable) before
the next layer is tried, and its resolved value is attached to the page
as ``result``. There is no cursor and no error routing:
an exception leaves ``handle()`` and the remaining layers are skipped.

Usage::

    pipeline = Pipeline()
    pipeline.handler("on_load", "on_render")

    @pipeline.on_load(re.compile(r"\\.md$"))
    async def parse(page):
        return await render_markdown(page.path)

    page = await pipeline.handle("on_load", Page("/index.md"))
    page.result   # the rendered markdown
"""

import functools
import logging
from collections.abc import Callable
from typing import Any, overload

import anyio

from switchyard._internal.invoke import attach, get_path, resolve
from switchyard._internal.types import HandlerFn, PatternLike
from switchyard.config import PatternOptions
from switchyard.context import page_var
from switchyard.errors import ConfigurationError
from switchyard.routing.layer import Layer, layer_decorator

logger = logging.getLogger("switchyard.pipeline")


class Pipeline:
    """Mapping of hook name to an ordered list of layers.

    Layers registered under one hook are independent alternatives, each
    matched on its own against the page as it is when its turn comes.
    """

    __slots__ = ("hooks", "options")

    def __init__(self, *, options: PatternOptions | None = None) -> None:
        self.options = options or PatternOptions()
        self.hooks: dict[str, list[Layer]] = {}

    # -- Registration --

    def handler(self, *names: str) -> None:
        """Declare hook names.

        Each declared hook becomes a registration attribute::

            pipeline.handler("on_load")
            pipeline.on_load("/docs/:slug", load_doc)
        """
        for name in names:
            if not name.isidentifier() or name.startswith("_") or hasattr(type(self), name):
                msg = f"Cannot declare hook {name!r}: not a usable attribute name."
                raise ConfigurationError(msg)
            self.hooks.setdefault(name, [])

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if not name.startswith("_"):
            hooks = object.__getattribute__(self, "hooks")
            if name in hooks:
                return functools.partial(self.on_hook, name)
        msg = f"{type(self).__name__!r} object has no attribute {name!r}"
        raise AttributeError(msg)

    @overload
    def on_hook(
        self, hook: str, pattern: PatternLike, *, options: PatternOptions | None = None
    ) -> Callable[[HandlerFn], HandlerFn]: ...

    @overload
    def on_hook(
        self,
        hook: str,
        pattern: PatternLike,
        handler: HandlerFn,
        /,
        *handlers: HandlerFn,
        options: PatternOptions | None = None,
    ) -> list[Layer]: ...

    def on_hook(
        self,
        hook: str,
        pattern: PatternLike,
        *handlers: HandlerFn,
        options: PatternOptions | None = None,
    ) -> list[Layer] | Callable[[HandlerFn], HandlerFn]:
        """Register one layer per handler under *hook*, all with *pattern*.

        The layers are matched independently, so a handler that changes
        the page's path decides which of the following layers match.
        Called without handlers, returns a decorator.
        """
        if not handlers:
            return layer_decorator(lambda fn: self.on_hook(hook, pattern, fn, options=options))

        return [self.add_layer(hook, Layer(pattern, [fn], options=options or self.options)) for fn in handlers]

    def add_layer(self, hook: str, layer: Layer) -> Layer:
        """Append a pre-built single-handler layer to *hook*."""
        if len(layer.handlers) != 1:
            msg = f"Pipeline layers take exactly one handler, {layer!r} has {len(layer.handlers)}."
            raise ConfigurationError(msg)
        if layer.handlers[0].is_error_handler:
            msg = "Pipeline layers cannot be error handlers; exceptions propagate out of handle()."
            raise ConfigurationError(msg)
        self.hooks.setdefault(hook, []).append(layer)
        logger.debug("Registered %r on hook %r", layer, hook)
        return layer

    # -- Dispatch --

    async def handle(self, hook: str, context: Any) -> Any:
        """Run *hook*'s matching layers in order and return *context*.

        Each matching handler's resolved value is attached to the context
        as ``result`` (``context["result"]`` for mappings) before the next
        layer is tried. A handler that returns the context itself leaves
        ``result`` untouched. An unknown hook returns the context unchanged.
        """
        token = page_var.set(context)
        try:
            for layer in self.hooks.get(hook, ()):
                outcome = layer.try_handle(context)
                if not outcome.matched:
                    continue
                if outcome.error is not None:
                    raise outcome.error
                result = await resolve(outcome.result)
                if result is not context:
                    attach(context, "result", result)
        finally:
            page_var.reset(token)
        logger.debug("Hook %r finished for %r", hook, get_path(context))
        return context

    def run(self, hook: str, context: Any, *, backend: str = "asyncio") -> Any:
        """Blocking ``handle()``, for callers without an event loop."""
        return anyio.run(self.handle, hook, context, backend=backend)

    def __repr__(self) -> str:
        counts = {hook: len(layers) for hook, layers in self.hooks.items()}
        return f"<Pipeline hooks={counts}>"
