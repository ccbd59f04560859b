"""Handler protocols for router and pipeline dispatch.

A router handler is any callable matching::

    def my_handler(page, params, cursor) -> None: ...

and a router error handler, registered through ``error_handler()``::

    def my_error_handler(error, page, params, cursor) -> None: ...

No base class required. Handlers move the walk forward through the
cursor: ``cursor.proceed()``, ``cursor.skip_route()``, or
``cursor.fail(error)``. A handler may also keep the cursor and call one
of those later; the walk resumes at that point.

Pipeline handlers take ``(page)`` or ``(page, params)`` and may return a
value or an awaitable. The resolved value is attached to the page as
``result``; the page itself is what every layer receives.
"""

from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

from switchyard._internal.types import Params

if TYPE_CHECKING:
    from switchyard.middleware.chain import Cursor


class RouteHandler(Protocol):
    """Protocol for router handlers.

    Accepts both functions and callable objects::

        # Function handler
        def stamp(page, params, cursor):
            page.year = params["year"]
            cursor.proceed()

        # Class handler
        class Guard:
            def __call__(self, page, params, cursor):
                if page.draft:
                    cursor.skip_route()
                else:
                    cursor.proceed()
    """

    def __call__(self, page: Any, params: Params, cursor: "Cursor") -> Any: ...


class RouteErrorHandler(Protocol):
    """Protocol for router error handlers (tag with ``error_handler()``)."""

    def __call__(self, error: BaseException, page: Any, params: Params, cursor: "Cursor") -> Any: ...


# Pipeline handler result: any value, or an awaitable of one
PipelineResult: TypeAlias = Any | Awaitable[Any]


class PipelineHandler(Protocol):
    """Protocol for pipeline handlers.

    The ``params`` argument is optional; handlers declaring a single
    parameter are called with the page alone::

        async def load(page):
            page.body = await read(page.path)
            return page
    """

    def __call__(self, page: Any, /, *args: Any) -> PipelineResult: ...
