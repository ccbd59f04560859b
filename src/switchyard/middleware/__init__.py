"""Middleware — handler protocols and the chain executor.

Public API::

    from switchyard.middleware import Cursor, RouteHandler, error_handler
"""

from switchyard.middleware.chain import Cursor
from switchyard.middleware.protocol import PipelineHandler, RouteErrorHandler, RouteHandler
from switchyard.routing.layer import error_handler

__all__ = [
    "Cursor",
    "PipelineHandler",
    "RouteErrorHandler",
    "RouteHandler",
    "error_handler",
]
