"""Batch review assembly.

Validated suggestions from every file are merged into one review: a summary
body plus anchored comments. The per-file cap keeps the earliest suggestions
the model produced for a file and drops the rest.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .candidates import CommentCandidate
from .line_index import LineAddressIndex, ValidationRejection, validate_candidates

_CATEGORY_ORDER = ("security", "performance", "reliability", "quality", "standards")

_CATEGORY_ICON = {
    "security": "🔐",
    "performance": "⚡",
    "reliability": "🛡️",
    "quality": "🧹",
    "standards": "📋",
}

_CATEGORY_LABEL = {
    "security": "Security issues",
    "performance": "Performance opportunities",
    "reliability": "Reliability improvements",
    "quality": "Code quality enhancements",
    "standards": "Standards compliance",
}


def category_icon(category: str | None) -> str:
    return _CATEGORY_ICON.get(str(category or "").strip().lower(), "💡")


def review_marker(head_sha: str) -> str:
    short = head_sha[:12] if head_sha else "<head-sha>"
    return f"<!-- git-relax:review sha={short} -->"


def truncate(text: str, *, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 1].rstrip() + "…"


@dataclass(frozen=True)
class ValidatedComment:
    """A comment whose line is known to be anchorable in its file."""
    file_path: str
    line_number: int
    body: str
    category: str = "general"

    def payload(self) -> dict[str, object]:
        return {"path": self.file_path, "line": self.line_number, "body": self.body}


@dataclass(frozen=True)
class ReviewBatch:
    comments: tuple[ValidatedComment, ...]
    summary_body: str
    marker: str | None = None

    def payload(self) -> list[dict[str, object]]:
        return [c.payload() for c in self.comments]

    def __len__(self) -> int:
        return len(self.comments)


@dataclass(frozen=True)
class FileTally:
    """What happened to one file's candidates."""
    file_path: str
    kept: int = 0
    dropped_by_cap: int = 0
    rejected: tuple[ValidationRejection, ...] = field(default_factory=tuple)


def render_comment_body(candidate: CommentCandidate) -> str:
    category = candidate.category or "general"
    description = truncate(candidate.description or "No description provided.", max_len=700)
    lines = [f"{category_icon(category)} **{category.title()}**: {description}"]
    if candidate.solution:
        lines.append("")
        lines.append(f"Suggestion: {truncate(candidate.solution, max_len=700)}")
    return "\n".join(lines).strip() + "\n"


def count_by_category(comments: Iterable[ValidatedComment]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for comment in comments:
        counts[comment.category] = counts.get(comment.category, 0) + 1
    return counts


def render_summary(
    comments: list[ValidatedComment],
    *,
    files_analyzed: int,
    marker: str | None = None,
) -> str:
    counts = count_by_category(comments)
    ordered = [c for c in _CATEGORY_ORDER if c in counts]
    ordered.extend(sorted(c for c in counts if c not in _CATEGORY_ORDER))

    lines: list[str] = []
    if marker:
        lines.append(marker)
    lines.extend(
        [
            "🔍 **AI Code Review**",
            "",
            "## 📊 Analysis Summary",
            f"- **Files analyzed**: {files_analyzed}",
            f"- **Total suggestions**: {len(comments)}",
        ]
    )
    for category in ordered:
        label = _CATEGORY_LABEL.get(category, category.title())
        lines.append(f"- **{label}**: {counts[category]} {category_icon(category)}")
    lines.extend(
        [
            "",
            "Each inline comment names a specific issue and a concrete fix. "
            "Security issues should be addressed before merging.",
            "",
        ]
    )
    return "\n".join(lines)


class ReviewBatchBuilder:
    """Single-writer accumulator for one review command."""

    def __init__(self, changed_files: Iterable[str], *, per_file_cap: int | None = 8) -> None:
        if per_file_cap is not None and per_file_cap < 1:
            raise ValueError("per_file_cap must be >= 1 or None")
        self._changed = list(dict.fromkeys(changed_files))
        self._cap = per_file_cap
        self._by_file: dict[str, list[ValidatedComment]] = {}

    @property
    def per_file_cap(self) -> int | None:
        return self._cap

    def add_file(
        self,
        file_path: str,
        candidates: Iterable[CommentCandidate],
        index: LineAddressIndex,
    ) -> FileTally:
        """Validate a file's candidates against its index and keep the survivors."""
        if file_path not in self._changed:
            raise ValueError(f"{file_path} is not in the changed-file list")

        result = validate_candidates(file_path, candidates, index)
        bucket = self._by_file.setdefault(file_path, [])
        kept = 0
        dropped = 0
        for candidate in result.accepted:
            if self._cap is not None and len(bucket) >= self._cap:
                dropped += 1
                continue
            bucket.append(
                ValidatedComment(
                    file_path=file_path,
                    line_number=candidate.line_number,
                    body=render_comment_body(candidate),
                    category=candidate.category,
                )
            )
            kept += 1
        return FileTally(file_path=file_path, kept=kept, dropped_by_cap=dropped, rejected=result.rejected)

    def comments(self) -> list[ValidatedComment]:
        ordered: list[ValidatedComment] = []
        for path in self._changed:
            ordered.extend(self._by_file.get(path, ()))
        return ordered

    def build(self, *, files_analyzed: int | None = None, marker: str | None = None) -> ReviewBatch:
        comments = self.comments()
        analyzed = files_analyzed if files_analyzed is not None else len(self._by_file)
        return ReviewBatch(
            comments=tuple(comments),
            summary_body=render_summary(comments, files_analyzed=analyzed, marker=marker),
            marker=marker,
        )
