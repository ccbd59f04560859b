"""Shared type aliases used across switchyard modules."""

from collections.abc import Callable
from re import Pattern as RegexPattern
from typing import Any, TypeAlias

# Params extracted by a successful match: names for named keys,
# zero-based positions for unnamed ones
Params: TypeAlias = dict[str | int, str | None]

# Handler function: user-defined callable, signature depends on dispatch mode
HandlerFn: TypeAlias = Callable[..., Any]

# Predicate pattern: receives the context, returns bool, params, or a Match
Predicate: TypeAlias = Callable[[Any], Any]

# Anything a layer can be bound to
PatternLike: TypeAlias = str | RegexPattern[str] | Predicate

# Completion callback for the callback-style router dispatch
Done: TypeAlias = Callable[[BaseException | None], Any]
