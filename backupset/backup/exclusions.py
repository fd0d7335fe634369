"""
Exclusion (blacklist) patterns for backups.

Patterns use shell-style glob syntax and are matched against the path of a
file relative to the folder being backed up, written with forward slashes:

- ``*`` matches any run of characters inside a single path segment
- ``**`` matches any run of characters across segments
- ``?`` matches one character other than ``/``
- ``[abc]``, ``[a-z]``, ``[!abc]`` match one character from a class
- ``{a,b}`` matches any of the comma separated alternatives
- ``\\`` escapes the next character

Patterns are anchored at the backup root, so ``*.log`` only matches log
files directly inside it while ``**/*.log`` matches them at any depth.
"""

import os
import re
from pathlib import PurePath
from typing import Iterable, List, Optional


class InvalidPattern(ValueError):
    """Raised when an exclusion pattern is not valid glob syntax."""
    pass


class GlobMatcher:
    """A compiled glob pattern."""

    def __init__(self, pattern: str, regex):
        self.pattern = pattern
        self.regex = regex

    def matches(self, path) -> bool:
        """
        Check a relative path against the pattern.

        Args:
            path: Relative path as a string or PurePath

        Returns:
            True if the whole path matches
        """
        return self.regex.match(_to_posix(path)) is not None

    def __repr__(self):
        return f'<GlobMatcher {self.pattern!r}>'


class ExclusionEntry:
    """
    An exclusion pattern together with the number of files it excluded.

    Created once per backup run and reported once the run is over.
    """

    def __init__(self, pattern: str, matcher: GlobMatcher):
        self.pattern = pattern
        self.matcher = matcher
        self.match_count = 0

    def matches(self, relative_path) -> bool:
        """Evaluate the pattern, counting the path if it matches."""
        if self.matcher.matches(relative_path):
            self.match_count += 1
            return True
        return False

    def __repr__(self):
        return f'<ExclusionEntry {self.pattern!r} matches={self.match_count}>'


def compile_glob(pattern: str) -> GlobMatcher:
    """
    Compile a glob pattern into a matcher.

    Raises:
        InvalidPattern: If the pattern is empty or malformed
    """
    if not pattern:
        raise InvalidPattern("Glob pattern must not be empty")

    try:
        regex = re.compile(_translate(pattern))
    except re.error as e:
        raise InvalidPattern(f"Invalid glob pattern {pattern!r}: {e}")

    return GlobMatcher(pattern, regex)


def compile_exclusions(patterns: Optional[Iterable[str]]) -> List[ExclusionEntry]:
    """
    Compile the configured exclusion patterns for one backup run.

    Args:
        patterns: Glob patterns, e.g. ``['*.log', 'cache/**']``

    Returns:
        One ExclusionEntry per pattern, in the given order

    Raises:
        InvalidPattern: If any pattern is malformed
    """
    return [ExclusionEntry(pattern, compile_glob(pattern)) for pattern in (patterns or [])]


def match_exclusion(entries: Iterable[ExclusionEntry], relative_path) -> Optional[ExclusionEntry]:
    """
    Find the first entry excluding a path.

    Only the first matching entry is counted.

    Returns:
        The matching entry, or None if the path is not excluded
    """
    for entry in entries:
        if entry.matches(relative_path):
            return entry
    return None


def _to_posix(path) -> str:
    if isinstance(path, PurePath):
        return path.as_posix()
    path = str(path)
    if os.sep != '/':
        path = path.replace(os.sep, '/')
    return path


def _translate(pattern: str) -> str:
    """Translate a glob pattern into a regular expression."""
    i, n = 0, len(pattern)
    parts = []
    in_group = False

    while i < n:
        c = pattern[i]
        i += 1

        if c == '\\':
            if i >= n:
                raise InvalidPattern(f"Dangling escape at end of pattern {pattern!r}")
            parts.append(re.escape(pattern[i]))
            i += 1
        elif c == '*':
            if i < n and pattern[i] == '*':
                while i < n and pattern[i] == '*':
                    i += 1
                parts.append('.*')
            else:
                parts.append('[^/]*')
        elif c == '?':
            parts.append('[^/]')
        elif c == '[':
            cls, i = _translate_class(pattern, i)
            parts.append(cls)
        elif c == '{':
            if in_group:
                raise InvalidPattern(f"Nested groups are not supported: {pattern!r}")
            in_group = True
            parts.append('(?:')
        elif c == ',' and in_group:
            parts.append('|')
        elif c == '}' and in_group:
            in_group = False
            parts.append(')')
        else:
            parts.append(re.escape(c))

    if in_group:
        raise InvalidPattern(f"Missing '}}' in pattern {pattern!r}")

    return '(?s:' + ''.join(parts) + r')\Z'


def _translate_class(pattern: str, start: int):
    """
    Translate a bracket expression beginning right after its '['.

    Returns:
        Tuple of (regex fragment, index after the closing ']')
    """
    i, n = start, len(pattern)
    negate = False

    if i < n and pattern[i] in '!^':
        negate = True
        i += 1

    members = []
    # A ']' right after the opening bracket is a literal member
    if i < n and pattern[i] == ']':
        members.append(re.escape(']'))
        i += 1

    while i < n and pattern[i] != ']':
        c = pattern[i]
        if c == '/':
            raise InvalidPattern(f"'/' is not allowed in a character class: {pattern!r}")
        if c == '\\' and i + 1 < n:
            members.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        members.append('-' if c == '-' else re.escape(c))
        i += 1

    if i >= n:
        raise InvalidPattern(f"Missing ']' in pattern {pattern!r}")

    body = ''.join(members)
    if negate:
        return f'[^/{body}]', i + 1
    return f'(?!/)[{body}]', i + 1
