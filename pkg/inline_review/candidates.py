"""Best-effort parsing of line-anchored suggestions from AI output.

The model is asked for one suggestion per line::

    42:🔐 Security: Unvalidated input in SQL query | Use parameterized queries

Anything that does not start with ``<digits>:`` is prose, a heading or a code
fence. Those lines are kept as ``IgnoredLine`` records, never raised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

NO_ISSUES_SENTINEL = "NO_ISSUES_FOUND"
DEFAULT_CATEGORY = "general"

# Matched by substring so the optional emoji variation selector doesn't matter.
CATEGORY_ICONS: dict[str, str] = {
    "🔐": "security",
    "⚡": "performance",
    "🛡": "reliability",
    "🧹": "quality",
    "📋": "standards",
}

_CANDIDATE_RE = re.compile(r"^(?P<line>[0-9]{1,9}):(?P<rest>.*)$")
_MAX_CATEGORY_CHARS = 40
KNOWN_CATEGORIES = frozenset(CATEGORY_ICONS.values())


@dataclass(frozen=True)
class CommentCandidate:
    """An unvalidated suggestion anchored to a new-file line number."""
    line_number: int
    category: str
    description: str
    solution: str = ""
    raw: str = ""


@dataclass(frozen=True)
class IgnoredLine:
    """An output line that did not look like a suggestion."""
    text: str
    reason: str


@dataclass(frozen=True)
class ParsedSuggestions:
    candidates: tuple[CommentCandidate, ...] = ()
    ignored: tuple[IgnoredLine, ...] = ()
    no_issues: bool = False


def _category_from_head(head: str) -> str | None:
    """Category named by a ``[icon] Category`` head, or None for plain prose."""
    for icon, name in CATEGORY_ICONS.items():
        if icon in head:
            return name
    words = re.sub(r"[^\w\s-]", " ", head).split()
    name = " ".join(words).lower()
    if name in KNOWN_CATEGORIES:
        return name
    stripped = head.strip()
    # an unknown icon still marks the head as a category label
    if name and not stripped[0].isalnum():
        return name
    return None


def split_suggestion(rest: str) -> tuple[str, str, str]:
    """Split ``[icon] Category: issue | solution`` into its three parts."""
    text = rest.strip()
    category = DEFAULT_CATEGORY
    head, sep, tail = text.partition(":")
    labelled = None
    if (
        sep
        and head.strip()
        and "|" not in head
        and len(head) <= _MAX_CATEGORY_CHARS
        and len(head.split()) <= 3
        and not tail.startswith("//")
    ):
        labelled = _category_from_head(head)
    if labelled is not None:
        category = labelled
        text = tail.strip()
    else:
        for icon, name in CATEGORY_ICONS.items():
            if text.startswith(icon):
                category = name
                break

    description, _, solution = text.partition("|")
    return category, description.strip(), solution.strip()


def parse_candidates(text: str | None, *, sentinel: str = NO_ISSUES_SENTINEL) -> ParsedSuggestions:
    """Extract candidates from AI output, in order, duplicates included."""
    body = (text or "").strip()
    if not body or body == sentinel:
        return ParsedSuggestions(no_issues=body == sentinel)

    candidates: list[CommentCandidate] = []
    ignored: list[IgnoredLine] = []
    for raw in body.splitlines():
        line = raw.rstrip("\r")
        m = _CANDIDATE_RE.match(line)
        if m is None:
            if line.strip():
                ignored.append(IgnoredLine(line, "not a <line>:<suggestion> line"))
            continue
        rest = m.group("rest")
        if not rest.strip():
            ignored.append(IgnoredLine(line, "empty suggestion"))
            continue
        category, description, solution = split_suggestion(rest)
        candidates.append(
            CommentCandidate(
                line_number=int(m.group("line")),
                category=category,
                description=description,
                solution=solution,
                raw=line,
            )
        )
    return ParsedSuggestions(candidates=tuple(candidates), ignored=tuple(ignored))
