"""Switchyard exception hierarchy.

Shared across Router, Pipeline, Layer, and the chain executor so every
module raises and catches the same types.

Errors raised *by handlers* are never wrapped: they travel through the
chain (or out of ``Pipeline.handle``) as the original exception object.
"""


class SwitchyardError(Exception):
    """Base for all switchyard-specific errors."""


class ConfigurationError(SwitchyardError):
    """Raised when a layer is registered with invalid arguments.

    Typically surfaces at registration time: an unsupported pattern type,
    a malformed path template, or a handler that is not callable.
    """


class DispatchError(SwitchyardError):
    """Raised when the chain executor is driven incorrectly.

    Examples: a cursor transition called twice, a transition on a finished
    chain, or a coroutine handler run under the callback driver.
    """
