"""Name pattern matching for package selection."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from wyvern.errors import ConfigError


def compile_patterns(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile regular expressions.

    Raises:
        ConfigError: If a pattern is not a valid regular expression.
    """
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise ConfigError(f"Parsing Regex failed for '{pattern}': {e}") from e
    return compiled


def match_scope(name: str, patterns: Sequence[re.Pattern[str]]) -> bool:
    """True if any pattern matches somewhere in ``name``."""
    return any(p.search(name) for p in patterns)
