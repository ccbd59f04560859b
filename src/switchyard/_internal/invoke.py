"""Invoke helpers — call sync or async handlers uniformly.

Switchyard handlers can be ``def`` or ``async def``. Any code that calls
a user-provided handler and may wait for it must handle both cases. This
module keeps the sync/async check and the signature inspection in one place.

Usage::

    from switchyard._internal.invoke import resolve

    result = await resolve(handler(page))
"""

import inspect
from collections.abc import Callable, MutableMapping
from typing import Any


async def resolve(result: Any) -> Any:
    """Await *result* if it's awaitable, otherwise return it as-is.

    Works with the return value of both sync and async callables::

        # sync: value passes through, no await needed
        def stamp(page):
            page.stamped = True

        # async: coroutine, awaited here
        async def fetch(page):
            page.body = await load(page.path)
    """
    if inspect.isawaitable(result):
        result = await result
    return result


def accepts_positional(handler: Callable[..., Any], count: int) -> bool:
    """Return True when *handler* can be called with *count* positional args.

    Used by the pipeline to decide between ``fn(context)`` and
    ``fn(context, params)``. Callables whose signature cannot be read
    (some builtins) are assumed to take a single argument.
    """
    try:
        sig = inspect.signature(handler)
    except (TypeError, ValueError):
        return count <= 1

    positional = 0
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            positional += 1
    return positional >= count


# -- Context record access --
#
# A context is either an attribute object (``page.path``) or a mutable
# mapping (``page["path"]``). These helpers hide the difference.


def get_path(context: Any) -> str | None:
    """Return the context's ``path``, or ``None`` if it has none."""
    if isinstance(context, MutableMapping):
        return context.get("path")
    return getattr(context, "path", None)


def attach(context: Any, name: str, value: Any) -> None:
    """Set *name* on the context, as a key or as an attribute."""
    if isinstance(context, MutableMapping):
        context[name] = value
    else:
        setattr(context, name, value)
