"""Unified diff parsing for inline review comments.

Review APIs anchor a comment to a line of the post-change file. This module
walks one file's unified diff and numbers every added and context line with
its new-file line number. Deleted lines have no address in the new file.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

ADDED = "added"
CONTEXT = "context"
DELETED = "deleted"

_HUNK_RE = re.compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))? \+(?P<new_start>\d+)(?:,(?P<new_count>\d+))? @@"
)


class HunkHeaderError(ValueError):
    """A line opened like a hunk header but could not be parsed."""

    def __init__(self, line_index: int, text: str) -> None:
        super().__init__(f"malformed hunk header at diff line {line_index}: {text!r}")
        self.line_index = line_index
        self.text = text


@dataclass(frozen=True)
class DiffLine:
    """One classified line of a hunk."""
    new_line_number: int | None
    kind: str
    content: str


@dataclass(frozen=True)
class FileDiff:
    """Parsed lines of one file's diff plus the headers that were skipped."""
    lines: tuple[DiffLine, ...] = ()
    errors: tuple[HunkHeaderError, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.lines


def _hunk_count(value: str | None) -> int:
    # "@@ -3 +3 @@" omits the count when it is 1
    return 1 if value is None else int(value)


def parse_file_diff(diff_text: str | None) -> FileDiff:
    """Parse one file's unified diff.

    Lines outside a hunk (``diff --git``, ``---``/``+++`` headers, blank
    separators, ``\\ No newline at end of file``) are ignored. Inside a hunk a
    ``+``/``-`` line is always content, even ``+++i;``; a ``---``/``+++`` line
    is only read as a file header once the hunk's counts are used up. A
    malformed ``@@`` line is recorded and suppresses output until the next
    valid header.
    """
    lines: list[DiffLine] = []
    errors: list[HunkHeaderError] = []
    next_new_line: int | None = None
    old_left = new_left = 0

    for index, raw in enumerate((diff_text or "").splitlines(), start=1):
        if raw.startswith("@@"):
            m = _HUNK_RE.match(raw)
            if m is None:
                errors.append(HunkHeaderError(index, raw))
                next_new_line = None
            else:
                next_new_line = int(m.group("new_start"))
                old_left = _hunk_count(m.group("old_count"))
                new_left = _hunk_count(m.group("new_count"))
            continue

        if next_new_line is None or not raw:
            continue

        if old_left <= 0 and new_left <= 0 and raw.startswith(("---", "+++")):
            next_new_line = None
            continue

        prefix = raw[0]
        if prefix == "+":
            lines.append(DiffLine(next_new_line, ADDED, raw[1:]))
            next_new_line += 1
            new_left -= 1
        elif prefix == " ":
            lines.append(DiffLine(next_new_line, CONTEXT, raw[1:]))
            next_new_line += 1
            old_left -= 1
            new_left -= 1
        elif prefix == "-":
            lines.append(DiffLine(None, DELETED, raw[1:]))
            old_left -= 1

    return FileDiff(lines=tuple(lines), errors=tuple(errors))


def parse_diff(diff_text: str | None) -> list[DiffLine]:
    """Return the classified lines of one file's diff."""
    return list(parse_file_diff(diff_text).lines)


def new_file_lines(lines: list[DiffLine] | tuple[DiffLine, ...]) -> list[str]:
    """Added and context content ordered by new-file line number."""
    present = [line for line in lines if line.new_line_number is not None]
    present.sort(key=lambda line: line.new_line_number)
    return [line.content for line in present]
