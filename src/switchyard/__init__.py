"""Switchyard — pattern-guarded middleware dispatch for in-process records.

Routes a mutable record (a page, a file, anything with a ``path``)
through ordered, pattern-matched handler layers.

Callback-style routing::

    from switchyard import Page, Router

    router = Router()

    @router.route("/blog/:year/:slug")
    def blog(page, params, cursor):
        page.year = params["year"]
        cursor.proceed()

    router.middleware(Page("/blog/2013/foo"), lambda error: ...)

Awaitable pipelines::

    from switchyard import Pipeline

    pipeline = Pipeline()
    pipeline.on_hook("on_load", "/blog/:year", load_post)
    page = await pipeline.handle("on_load", Page("/blog/2013"))
"""

__version__ = "0.1.0-dev"
__all__ = [
    "CompiledPath",
    "ConfigurationError",
    "Cursor",
    "DispatchError",
    "Handler",
    "HandlerKind",
    "Layer",
    "Match",
    "Matcher",
    "Outcome",
    "Page",
    "PatternOptions",
    "Pipeline",
    "Router",
    "SwitchyardError",
    "compile_path",
    "error_handler",
    "get_page",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import switchyard`` fast while providing a clean top-level API.
    """
    if name == "Router":
        from switchyard.routing.router import Router

        return Router

    if name == "Pipeline":
        from switchyard.pipeline import Pipeline

        return Pipeline

    if name == "PatternOptions":
        from switchyard.config import PatternOptions

        return PatternOptions

    if name in ("Handler", "HandlerKind", "Layer", "Outcome", "error_handler"):
        from switchyard.routing import layer as _layer

        return getattr(_layer, name)

    if name in ("CompiledPath", "Match", "Matcher", "compile_path"):
        from switchyard.routing import pattern as _pattern

        return getattr(_pattern, name)

    if name == "Cursor":
        from switchyard.middleware.chain import Cursor

        return Cursor

    if name in ("Page", "get_page"):
        from switchyard import context as _ctx

        return getattr(_ctx, name)

    if name in ("ConfigurationError", "DispatchError", "SwitchyardError"):
        from switchyard import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
