"""Added-line extraction from zero-context unified diffs."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from re import Match, compile

HUNK_HEADER_RE = compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))? "
    r"\+(?P<new_start>\d+)(?:,(?P<new_count>\d+))? @@(?P<section>.*)$"
)

DEV_NULL = "/dev/null"

_EXTENDED_HEADER_PREFIXES = (
    "index ",
    "new file mode ",
    "deleted file mode ",
    "old mode ",
    "new mode ",
    "similarity index ",
    "dissimilarity index ",
    "rename from ",
    "rename to ",
    "copy from ",
    "copy to ",
    "Binary files ",
)

_OCTAL_DIGITS = frozenset("01234567")
_C_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    '"': '"',
}


class MalformedHunkHeaderError(ValueError):
    """Raised when a ``@@`` line cannot be interpreted as a hunk header."""

    def __init__(self, line: str, line_number: int) -> None:
        super().__init__(f"Invalid hunk header at diff line {line_number}: {line}")
        self.line = line
        self.line_number = line_number


@dataclass(frozen=True, slots=True)
class DiffLine:
    """A single line added by the pending change."""

    # Empty when no ``+++`` header preceded the line.
    path: str
    lineno: int
    content: str


@dataclass(slots=True)
class _HunkCursor:
    new_lineno: int
    old_remaining: int
    new_remaining: int

    @property
    def open(self) -> bool:
        return self.old_remaining > 0 or self.new_remaining > 0


def extract_added_lines(diff_text: str) -> list[DiffLine]:
    """Return every added line of ``diff_text`` with its new-file line number."""
    return list(iter_added_lines(diff_text))


def count_added_lines(diff_text: str) -> int:
    """Count added lines without materializing them."""
    return sum(1 for _ in iter_added_lines(diff_text))


def iter_added_lines(diff_text: str) -> Iterator[DiffLine]:
    """Lazily yield added lines in diff order.

    The extractor is written for ``git diff -U0`` output but tolerates context
    lines, which only advance the new-side counter. While a hunk still has
    lines left according to its header counts, ``+++ `` and ``--- `` lines are
    treated as content rather than file headers, and an empty line counts as
    context whose leading space was stripped.

    Lines are split on ``\\n`` only. Form feeds, lone carriage returns and
    Unicode separators inside an added line stay part of its content.
    """
    current_path = ""
    cursor: _HunkCursor | None = None

    for index, raw_line in enumerate(_split_diff_lines(diff_text), start=1):
        if raw_line.startswith("diff --git "):
            current_path = ""
            cursor = None
            continue

        if raw_line.startswith(_EXTENDED_HEADER_PREFIXES):
            cursor = None
            continue

        if cursor is None or not cursor.open:
            if raw_line.startswith("+++ "):
                current_path = _parse_path(raw_line[4:])
                cursor = None
                continue
            if raw_line.startswith("--- "):
                cursor = None
                continue

        if raw_line.startswith("@@ "):
            cursor = _start_hunk(raw_line, index)
            continue

        if cursor is None:
            continue

        if raw_line.startswith("+"):
            yield DiffLine(path=current_path, lineno=cursor.new_lineno, content=raw_line[1:])
            cursor.new_lineno += 1
            cursor.new_remaining -= 1
        elif raw_line.startswith(" ") or (raw_line == "" and cursor.open):
            cursor.new_lineno += 1
            cursor.new_remaining -= 1
            cursor.old_remaining -= 1
        elif raw_line.startswith("-"):
            cursor.old_remaining -= 1


def _split_diff_lines(diff_text: str) -> list[str]:
    lines = diff_text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _start_hunk(header: str, line_number: int) -> _HunkCursor:
    match: Match[str] | None = HUNK_HEADER_RE.match(header)
    if match is None:
        raise MalformedHunkHeaderError(header, line_number)

    old_count = int(match.group("old_count")) if match.group("old_count") else 1
    new_count = int(match.group("new_count")) if match.group("new_count") else 1
    return _HunkCursor(
        new_lineno=int(match.group("new_start")),
        old_remaining=old_count,
        new_remaining=new_count,
    )


def _parse_path(value: str) -> str:
    token = value.rstrip("\r\n")
    if token.startswith('"'):
        token = _unquote_c_style(token)
    else:
        token = token.split("\t", 1)[0].rstrip()
    if token == DEV_NULL:
        return ""
    return normalize_path(_strip_ab_prefix(token))


def normalize_path(path: str) -> str:
    """Return ``path`` with forward slashes and no leading ``./``."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def _strip_ab_prefix(path: str) -> str:
    if path.startswith("a/") or path.startswith("b/"):
        return path[2:]
    return path


def _unquote_c_style(token: str) -> str:
    # git quotes paths with unusual bytes as "b/caf\303\251.txt"
    end = token.rfind('"')
    body = token[1:end] if end > 0 else token[1:]
    raw = bytearray()
    i = 0
    while i < len(body):
        char = body[i]
        if char != "\\" or i + 1 >= len(body):
            raw.extend(char.encode("utf-8"))
            i += 1
            continue
        nxt = body[i + 1]
        if nxt in _OCTAL_DIGITS:
            digits = nxt
            j = i + 2
            while j < len(body) and len(digits) < 3 and body[j] in _OCTAL_DIGITS:
                digits += body[j]
                j += 1
            raw.append(int(digits, 8) & 0xFF)
            i = j
            continue
        raw.extend(_C_ESCAPES.get(nxt, nxt).encode("utf-8"))
        i += 2
    return raw.decode("utf-8", errors="replace")
