"""Pattern compilation and matching.

Three kinds of pattern can guard a layer:

- a path template, ``/blog/:year/:month``, compiled into a regex
- a compiled ``re.Pattern``, searched against the path as-is
- a predicate callable, given the context, deciding for itself

Template syntax::

    /users/:id          named segment              {"id": "42"}
    /users/:id?         optional named segment     {"id": None}
    /files/:rest*       zero or more segments      {"rest": "a/b"}
    /files/:rest+       one or more segments
    /users/:id(\\d+)     named segment, custom regex
    /posts/(\\d+)        unnamed group              {0: "7"}
    index.*             bare wildcard              {0: "js"}
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from switchyard._internal.types import Params, PatternLike
from switchyard.config import PatternOptions
from switchyard.errors import ConfigurationError

# Default regex for a single path segment
SEGMENT = r"[^/]+?"

# :name, optionally followed by (custom) and a modifier; or a bare (custom)
# group; or a bare * wildcard. Escaped characters are consumed first.
_TOKEN = re.compile(
    r"(?P<escaped>\\.)"
    r"|(?::(?P<name>\w+)(?:\((?P<custom>(?:\\.|[^\\()])+)\))?"
    r"|\((?P<group>(?:\\.|[^\\()])+)\))(?P<modifier>[+*?])?"
    r"|(?P<star>\*)"
)


@dataclass(frozen=True, slots=True)
class PathKey:
    """One capture in a compiled template.

    ``name`` is the segment name for ``:name`` keys and a zero-based
    position for unnamed ones.
    """

    name: str | int
    pattern: str = SEGMENT
    optional: bool = False
    repeat: bool = False


@dataclass(frozen=True, slots=True)
class CompiledPath:
    """A path template compiled into a regex plus its ordered keys."""

    template: str
    regex: re.Pattern[str]
    keys: tuple[PathKey, ...]

    def match(self, path: str) -> Params | None:
        """Match *path*, returning params in key order or ``None``."""
        m = self.regex.match(path)
        if m is None:
            return None
        return {key.name: value for key, value in zip(self.keys, m.groups(), strict=True)}


@dataclass(frozen=True, slots=True)
class Match:
    """Explicit result a predicate pattern may return.

    Lets a predicate that does its own sub-matching hand the captured
    params to the route's handlers::

        blog = compile_path("/blog/:year")

        def is_blog(page):
            params = blog.match(page.path)
            return Match(matched=params is not None, params=params or {})
    """

    matched: bool
    params: Params = field(default_factory=dict)


def _custom_pattern(source: str, template: str) -> str:
    try:
        groups = re.compile(source).groups
    except re.error as exc:
        msg = f"Invalid regex {source!r} in path template {template!r}: {exc}"
        raise ConfigurationError(msg) from exc
    if groups:
        msg = (
            f"Capturing group inside {source!r} in path template {template!r}. "
            "Use (?:...) for grouping."
        )
        raise ConfigurationError(msg)
    return source


def compile_path(template: str, options: PatternOptions | None = None) -> CompiledPath:
    """Compile a path template into a :class:`CompiledPath`.

    Examples::

        compile_path("/blog/:year").match("/blog/2013")   -> {"year": "2013"}
        compile_path("/blog/:year").match("/about")       -> None

    Raises ``ConfigurationError`` for a malformed custom regex.
    """
    options = options or PatternOptions()
    keys: list[PathKey] = []
    parts: list[str] = []
    position = 0
    last = 0

    for token in _TOKEN.finditer(template):
        literal = template[last : token.start()]
        last = token.end()

        if token.group("escaped"):
            parts.append(re.escape(literal + token.group("escaped")[1]))
            continue

        if token.group("star"):
            parts.append(re.escape(literal))
            keys.append(PathKey(name=position, pattern=".*"))
            position += 1
            parts.append("(.*)")
            continue

        name: str | int
        if token.group("name"):
            name = token.group("name")
            source = token.group("custom")
            pattern = _custom_pattern(source, template) if source else SEGMENT
        else:
            name = position
            position += 1
            pattern = _custom_pattern(token.group("group"), template)

        modifier = token.group("modifier") or ""
        optional = modifier in ("?", "*")
        repeat = modifier in ("+", "*")

        # A delimiter right before the key belongs to the key, so an
        # optional key can drop it: /users/:id? matches /users
        prefix = ""
        if literal and literal[-1] in "/.":
            prefix = literal[-1]
            literal = literal[:-1]
        parts.append(re.escape(literal))

        esc = re.escape(prefix)
        capture = f"((?:{pattern})(?:{esc}(?:{pattern}))*)" if repeat else f"({pattern})"
        group = f"(?:{esc}{capture})"
        parts.append(group + "?" if optional else group)
        keys.append(PathKey(name=name, pattern=pattern, optional=optional, repeat=repeat))

    parts.append(re.escape(template[last:]))
    route = "".join(parts)

    ends_with_slash = template.endswith("/")
    if not options.strict:
        if ends_with_slash:
            route = route[: -len(re.escape("/"))]
        route += r"(?:/(?=$))?"
    if options.end:
        route += "$"
    elif not (options.strict and ends_with_slash):
        route += r"(?=/|$)"

    flags = 0 if options.sensitive else re.IGNORECASE
    return CompiledPath(template=template, regex=re.compile("^" + route, flags), keys=tuple(keys))


def regex_params(m: re.Match[str]) -> Params:
    """Extract params from a regex match.

    Named groups map by name, unnamed groups by zero-based position
    counted over unnamed groups only.
    """
    names = {index: name for name, index in m.re.groupindex.items()}
    params: Params = {}
    position = 0
    for index, value in enumerate(m.groups(), start=1):
        name = names.get(index)
        if name is None:
            params[position] = value
            position += 1
        else:
            params[name] = value
    return params


def predicate_params(result: Any) -> Params | None:
    """Interpret a predicate's return value as params or no match."""
    if isinstance(result, Match):
        return dict(result.params) if result.matched else None
    if isinstance(result, Mapping):
        return dict(result)
    return {} if result else None


def is_pattern(pattern: Any) -> bool:
    """Return True if *pattern* is a supported pattern kind."""
    return isinstance(pattern, (str, re.Pattern)) or callable(pattern)


class Matcher:
    """Match decision plus params for one pattern.

    Usage::

        matcher = Matcher("/blog/:year/:slug")
        matcher.match("/blog/2013/foo")   # {"year": "2013", "slug": "foo"}
        matcher.match("/about")           # None

    Predicate patterns receive the context; path-based patterns ignore it.
    """

    __slots__ = ("_compiled", "options", "pattern")

    def __init__(self, pattern: PatternLike, options: PatternOptions | None = None) -> None:
        if not is_pattern(pattern):
            msg = (
                f"Unsupported pattern {pattern!r}: expected a path template, "
                "a compiled regex, or a predicate callable."
            )
            raise ConfigurationError(msg)
        self.pattern = pattern
        self.options = options or PatternOptions()
        self._compiled: CompiledPath | None = None
        if isinstance(pattern, str):
            self._compiled = compile_path(pattern, self.options)

    def match(self, path: str | None, context: Any = None) -> Params | None:
        """Return params on a match, ``None`` otherwise."""
        if self._compiled is not None:
            if not path:
                return None
            return self._compiled.match(path)

        if isinstance(self.pattern, re.Pattern):
            if not path:
                return None
            m = self.pattern.search(path)
            return regex_params(m) if m else None

        return predicate_params(self.pattern(context))

    @property
    def keys(self) -> tuple[PathKey, ...]:
        """Keys of a template pattern; empty for regex and predicates."""
        return self._compiled.keys if self._compiled is not None else ()

    def __repr__(self) -> str:
        return f"Matcher({self.pattern!r})"
