"""Glob matching shared by profile activation and rule file scoping.

Patterns use :mod:`fnmatch` syntax over relative POSIX paths, plus brace
alternatives (``*.{c,h}``) and a leading ``**/`` that also matches files at
the project root.
"""

from __future__ import annotations

import fnmatch
import re

_BRACE_RE = re.compile(r"\{([^{}]*)\}")


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives into plain fnmatch patterns.

    Raises ``ValueError`` for unbalanced braces.
    """
    if pattern.count("{") != pattern.count("}"):
        msg = f"unbalanced braces in glob '{pattern}'"
        raise ValueError(msg)
    match = _BRACE_RE.search(pattern)
    if match is None:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    expanded: list[str] = []
    for alternative in match.group(1).split(","):
        expanded.extend(expand_braces(head + alternative + tail))
    return expanded


def match_glob(pattern: str, rel_path: str) -> bool:
    """Return True if *rel_path* matches *pattern*.

    A pattern without ``/`` is matched against the file name only, so
    ``*.py`` scopes to Python files anywhere in the tree.
    """
    name = rel_path.rsplit("/", 1)[-1]
    for candidate in expand_braces(pattern):
        if "/" not in candidate:
            if fnmatch.fnmatchcase(name, candidate):
                return True
            continue
        if fnmatch.fnmatchcase(rel_path, candidate):
            return True
        if candidate.startswith("**/") and fnmatch.fnmatchcase(rel_path, candidate[3:]):
            return True
    return False
