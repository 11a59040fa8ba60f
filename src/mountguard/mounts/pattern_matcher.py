"""Blocked-pattern matching over path segments.

Pattern forms:

* ``**/.ssh/**``, ``**/.env`` - segment globs matched against every suffix of
  the path. ``**`` spans zero or more whole segments; other segments use
  ``fnmatch`` rules (``*``, ``?``, ``[...]``), case-sensitively.
* ``.ssh``, ``id_rsa*`` - no slash: a component pattern, equivalent to
  ``**/<pattern>/**``. Blocks the component and everything below it.
* ``/etc/**``, ``~/secrets`` - anchored: must match the whole path.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from fnmatch import fnmatchcase
from functools import lru_cache

_GLOBSTAR = "**"


def _segments(path: str) -> tuple[str, ...]:
    return tuple(part for part in path.split("/") if part and part != ".")


@lru_cache(maxsize=512)
def _compile(pattern: str) -> tuple[tuple[str, ...], bool] | None:
    """Return (segment globs, anchored) or None for an empty pattern."""
    pattern = pattern.strip()
    if not pattern:
        return None
    anchored = pattern.startswith("/")
    segments = _segments(pattern)
    if not segments:
        return None
    if not anchored and "/" not in pattern:
        segments = (_GLOBSTAR, segments[0], _GLOBSTAR)
    return segments, anchored


def _match(globs: tuple[str, ...], parts: tuple[str, ...]) -> bool:
    """Full match of segment globs against path segments."""
    memo: dict[tuple[int, int], bool] = {}

    def step(gi: int, pi: int) -> bool:
        key = (gi, pi)
        if key in memo:
            return memo[key]
        if gi == len(globs):
            result = pi == len(parts)
        elif globs[gi] == _GLOBSTAR:
            # zero segments, or swallow one and stay on the globstar
            result = step(gi + 1, pi) or (pi < len(parts) and step(gi, pi + 1))
        else:
            result = pi < len(parts) and fnmatchcase(parts[pi], globs[gi]) and step(gi + 1, pi + 1)
        memo[key] = result
        return result

    return step(0, 0)


def matches(normalized_path: str, pattern: str) -> bool:
    if pattern.startswith("~"):
        pattern = os.path.expanduser(pattern)
    compiled = _compile(pattern)
    if compiled is None:
        return False
    globs, anchored = compiled
    parts = _segments(normalized_path)
    if anchored:
        return _match(globs, parts)
    return any(_match(globs, parts[start:]) for start in range(len(parts) + 1))


def first_blocking_pattern(normalized_path: str, blocked_patterns: Iterable[str]) -> str | None:
    for pattern in blocked_patterns:
        if matches(normalized_path, pattern):
            return pattern
    return None


def is_blocked(normalized_path: str, blocked_patterns: Iterable[str]) -> bool:
    """True if any pattern matches. Knows nothing about permissions: it only denies."""
    return first_blocking_pattern(normalized_path, blocked_patterns) is not None
