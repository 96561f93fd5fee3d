"""Ignore-pattern matching for files excluded from review.

Patterns are shell-style globs (``*``, ``?``, ``[...]``) matched one path
segment at a time, so wildcards never cross a ``/``. A pattern without a
``/`` is also tried against the file's basename, which lets ``*.json`` ignore
JSON files in any directory while ``docs/*.md`` only matches under ``docs``.
"""

import re
from fnmatch import fnmatchcase
from posixpath import basename

SEPARATOR = "/"


def split_patterns(text: str) -> list[str]:
    """Split a comma-separated pattern string and trim each pattern.

    An empty string yields ``[""]``; the empty pattern matches nothing.

    Args:
        text: Patterns as given on the command line, e.g. "*.yaml, *.json".

    Returns:
        List of trimmed patterns in input order.
    """
    return [pattern.strip() for pattern in text.split(",")]


def is_well_formed(pattern: str) -> bool:
    """Check that a glob pattern has no unterminated class or dangling escape."""
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\":
            if i + 1 >= len(pattern):
                return False
            i += 2
            continue
        if char == "[":
            j = i + 1
            if j < len(pattern) and pattern[j] in "!^":
                j += 1
            # A leading ']' is a literal member of the class
            if j < len(pattern) and pattern[j] == "]":
                j += 1
            while j < len(pattern) and pattern[j] != "]":
                j += 1
            if j >= len(pattern):
                return False
            i = j
        i += 1
    return True


def glob_match(pattern: str, name: str) -> bool:
    """Match name against pattern segment by segment.

    Malformed patterns never match.
    """
    if not pattern:
        return False
    pattern_parts = pattern.split(SEPARATOR)
    name_parts = name.split(SEPARATOR)
    if len(pattern_parts) != len(name_parts):
        return False
    try:
        return all(
            is_well_formed(glob) and fnmatchcase(part, _to_fnmatch(glob))
            for glob, part in zip(pattern_parts, name_parts)
        )
    except re.error:
        return False


def _to_fnmatch(glob: str) -> str:
    # fnmatch has no escape character and spells negation "[!...]"
    out = []
    i = 0
    while i < len(glob):
        char = glob[i]
        if char == "\\":
            escaped = glob[i + 1]
            out.append(f"[{escaped}]" if escaped in "*?[" else escaped)
            i += 2
            continue
        if char == "[":
            j = i + 1
            negate = glob[j] in "!^"
            if negate:
                j += 1
            end = glob.index("]", j + 1)
            out.append("[" + ("!" if negate else "") + glob[j:end] + "]")
            i = end + 1
            continue
        out.append(char)
        i += 1
    return "".join(out)


class IgnoreMatcher:
    """Decides whether a changed file is excluded from the review document."""

    def __init__(self, patterns: list[str] | None = None) -> None:
        """Initialize matcher.

        Args:
            patterns: Glob patterns, checked in order; first match wins.
        """
        self.patterns = tuple(patterns or ())

    @classmethod
    def from_string(cls, text: str | None) -> "IgnoreMatcher":
        """Build a matcher from a comma-separated pattern string."""
        return cls(split_patterns(text or ""))

    def matches(self, path: str) -> bool:
        """Check if path is matched by any ignore pattern.

        Args:
            path: File path relative to the repository root.

        Returns:
            True if the file should be left out of the review.
        """
        return self.matching_pattern(path) is not None

    def matching_pattern(self, path: str) -> str | None:
        """Return the first pattern matching path, or None."""
        name = basename(path)
        for pattern in self.patterns:
            if glob_match(pattern, path):
                return pattern
            if SEPARATOR not in pattern and glob_match(pattern, name):
                return pattern
        return None

    def __bool__(self) -> bool:
        return any(self.patterns)

    def __repr__(self) -> str:
        return f"IgnoreMatcher({list(self.patterns)!r})"
