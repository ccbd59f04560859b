"""Pattern configuration.

PatternOptions is a frozen dataclass — immutable after creation,
IDE-autocompletable, no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PatternOptions:
    """How path templates compile into regular expressions.

    The defaults match prefixes on segment boundaries, so ``/docs`` also
    matches ``/docs/intro``. Override what you need::

        options = PatternOptions(end=True, sensitive=True)
        router = Router(options=options)
    """

    # Trailing slash must match exactly when True (optional otherwise)
    strict: bool = False

    # Whole path must match when True (prefix match otherwise)
    end: bool = False

    # Case-sensitive matching of template literals
    sensitive: bool = False
