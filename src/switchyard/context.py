"""Dispatch-scoped context via ContextVar, and a ready-made page record.

Provides:
- ``Page``: a plain mutable record with a ``path``, usable as a context.
- ``page_var``: The context of the handler currently running.
- ``get_page()``: Accessor for ``page_var``.

``page_var`` is set by the chain executor and the pipeline around each
handler call and reset afterwards. Outside a handler, ``get_page()``
raises ``LookupError``.

Thread safety:
    ``ContextVar`` is task-local under asyncio and thread-local under
    free-threading. No locks needed.
"""

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Page:
    """A minimal mutable record to route.

    Any object with a ``path`` attribute (or a mutable mapping with a
    ``"path"`` key) works as a context; ``Page`` is a convenient default.
    Extra attributes can be set freely::

        page = Page("/blog/2013/04/20/foo")
        page.title = "Foo"
    """

    path: str
    params: dict[str | int, str | None] = field(default_factory=dict)


page_var: ContextVar[Any] = ContextVar("switchyard_page")
"""The context being dispatched. Set around every handler call."""


def get_page() -> Any:
    """Return the context of the handler currently running.

    Raises ``LookupError`` if called outside a handler.
    """
    return page_var.get()
