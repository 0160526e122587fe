"""Glob-based ignore rules (``.secretignore``)."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from secret_hook.diff_parser import normalize_path

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_FILENAME = ".secretignore"

# Characters that are literal in a glob but special in a regex.
_REGEX_SPECIALS = frozenset(".^$+{}()|\\")


class InvalidGlobPatternError(ValueError):
    """Raised when a glob cannot be translated into a matcher."""

    def __init__(self, glob: str, reason: str) -> None:
        super().__init__(f"Invalid glob pattern {glob!r}: {reason}")
        self.glob = glob
        self.reason = reason


def translate_glob(glob: str) -> str:
    """Translate a glob into an anchored regular expression source.

    ``*`` and ``?`` never cross ``/``; ``**/`` matches zero or more leading
    directories and a trailing ``**`` matches the rest of the path. A
    backslash is a literal character, not an escape.
    """
    if not glob:
        raise InvalidGlobPatternError(glob, "empty pattern")

    parts = ["^"]
    i = 0
    length = len(glob)
    while i < length:
        char = glob[i]
        if char == "*":
            if glob.startswith("**/", i):
                parts.append("(?:.*/)?")
                i += 3
            elif i + 2 == length and glob[i + 1] == "*":
                parts.append(".*")
                i += 2
            else:
                parts.append("[^/]*")
                i += 1
        elif char == "?":
            parts.append("[^/]")
            i += 1
        elif char == "[":
            class_source, i = _translate_class(glob, i)
            parts.append(class_source)
        elif char in _REGEX_SPECIALS:
            parts.append("\\" + char)
            i += 1
        else:
            parts.append(char)
            i += 1
    parts.append("$")
    return "".join(parts)


def _translate_class(glob: str, start: int) -> tuple[str, int]:
    j = start + 1
    negated = j < len(glob) and glob[j] == "!"
    if negated:
        j += 1
    body_start = j
    if j < len(glob) and glob[j] == "]":
        j += 1
    while j < len(glob) and glob[j] != "]":
        j += 1
    if j >= len(glob):
        raise InvalidGlobPatternError(glob, "unterminated character class")

    body = glob[body_start:j]
    escaped = body.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")
    prefix = "[^" if negated else "["
    return prefix + escaped + "]", j + 1


@dataclass(frozen=True, slots=True)
class IgnorePattern:
    """One compiled glob.

    A glob ending in ``/`` is a directory pattern: it ignores every path
    below a directory whose relative path or name matches.
    """

    glob: str
    regex: re.Pattern[str]
    directory_only: bool = False

    def matches(self, path: str) -> bool:
        normalized = normalize_path(path)
        if self.directory_only:
            return any(self._matches_candidate(parent) for parent in _parent_dirs(normalized))
        return self._matches_candidate(normalized)

    def _matches_candidate(self, path: str) -> bool:
        if self.regex.fullmatch(path):
            return True
        return self.regex.fullmatch(PurePosixPath(path).name) is not None


def compile_glob(glob: str) -> IgnorePattern:
    """Compile ``glob`` into an :class:`IgnorePattern`."""
    stripped = glob.strip()
    directory_only = len(stripped) > 1 and stripped.endswith("/")
    source = stripped.rstrip("/") if directory_only else stripped
    translated = translate_glob(source)
    try:
        regex = re.compile(translated)
    except re.error as exc:
        raise InvalidGlobPatternError(glob, str(exc)) from exc
    return IgnorePattern(glob=glob, regex=regex, directory_only=directory_only)


class IgnoreMatcher:
    """OR-combination of ignore patterns.

    There is no negation: a path matched by any pattern stays ignored.
    """

    __slots__ = ("_patterns",)

    def __init__(self, patterns: Iterable[IgnorePattern] = ()) -> None:
        self._patterns = tuple(patterns)

    @classmethod
    def from_lines(cls, lines: Iterable[str], *, source: str = "<patterns>") -> IgnoreMatcher:
        """Build a matcher from ignore-file lines, skipping invalid globs."""
        return cls(_compile_lines(lines, source=source))

    @classmethod
    def from_text(cls, text: str, *, source: str = "<text>") -> IgnoreMatcher:
        return cls.from_lines(text.splitlines(), source=source)

    @classmethod
    def load(cls, path: Path) -> IgnoreMatcher:
        """Load an ignore file; a missing file yields an empty matcher."""
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No ignore file at %s", path)
            return cls()
        return cls.from_text(text, source=str(path))

    def __len__(self) -> int:
        return len(self._patterns)

    def __bool__(self) -> bool:
        return bool(self._patterns)

    def __iter__(self) -> Iterator[IgnorePattern]:
        return iter(self._patterns)

    @property
    def patterns(self) -> tuple[IgnorePattern, ...]:
        return self._patterns

    @property
    def globs(self) -> tuple[str, ...]:
        return tuple(pattern.glob for pattern in self._patterns)

    def with_patterns(self, *globs: str) -> IgnoreMatcher:
        """Return a matcher with ``globs`` appended; invalid globs are skipped."""
        return IgnoreMatcher((*self._patterns, *_compile_lines(globs, source="<programmatic>")))

    def match(self, path: str) -> IgnorePattern | None:
        for pattern in self._patterns:
            if pattern.matches(path):
                return pattern
        return None

    def is_ignored(self, path: str) -> bool:
        return self.match(path) is not None


def _compile_lines(lines: Iterable[str], *, source: str) -> list[IgnorePattern]:
    compiled: list[IgnorePattern] = []
    for line_number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            compiled.append(compile_glob(line))
        except InvalidGlobPatternError as exc:
            logger.warning("%s:%d: skipping %s", source, line_number, exc)
    return compiled


def _parent_dirs(path: str) -> list[str]:
    segments = path.split("/")[:-1]
    return ["/".join(segments[: index + 1]) for index in range(len(segments))]
