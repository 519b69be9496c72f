"""Per-file review fan-out and single-writer aggregation.

Each changed file goes through diff -> parse -> index -> prompt -> AI ->
candidates independently. A failure in one file is recorded on its
``FileReview`` and the run carries on with the rest. Results are folded into
the batch on the calling thread, in changed-file order.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Protocol

from .batch import FileTally, ReviewBatch, ReviewBatchBuilder
from .candidates import CommentCandidate, IgnoredLine, parse_candidates
from .config import ReviewSettings
from .diff_parser import HunkHeaderError, parse_file_diff
from .line_index import LineAddressIndex
from .review_prompt import render_inline_review_prompt

REVIEWED = "reviewed"
NO_ISSUES = "no_issues"
UNCHANGED = "unchanged"
NO_COMMENTABLE_LINES = "no_commentable_lines"
FAILED = "failed"


class VersionControl(Protocol):
    def changed_files(self, base_ref: str, head_ref: str) -> list[str]:
        ...

    def diff(self, base_ref: str, head_ref: str, path: str) -> str:
        ...


class SuggestionSource(Protocol):
    def generate(self, prompt: str, context: str) -> str:
        ...


@dataclass(frozen=True)
class FileReview:
    """Outcome of reviewing one changed file."""
    file_path: str
    status: str
    index: LineAddressIndex = field(default_factory=LineAddressIndex)
    candidates: tuple[CommentCandidate, ...] = ()
    ignored: tuple[IgnoredLine, ...] = ()
    diff_errors: tuple[HunkHeaderError, ...] = ()
    error: str | None = None
    tally: FileTally | None = None


@dataclass(frozen=True)
class ReviewRun:
    files: tuple[FileReview, ...]
    batch: ReviewBatch

    @property
    def files_analyzed(self) -> int:
        return sum(1 for f in self.files if f.status in (REVIEWED, NO_ISSUES))

    def by_status(self, status: str) -> list[FileReview]:
        return [f for f in self.files if f.status == status]


def review_file(
    file_path: str,
    *,
    vcs: VersionControl,
    ai: SuggestionSource,
    base_ref: str,
    head_ref: str,
    settings: ReviewSettings,
) -> FileReview:
    """Review one file. Raises whatever the collaborators raise."""
    diff_text = vcs.diff(base_ref, head_ref, file_path)
    parsed = parse_file_diff(diff_text)
    if parsed.is_empty:
        return FileReview(file_path=file_path, status=UNCHANGED, diff_errors=parsed.errors)

    index = LineAddressIndex.build(parsed.lines)
    if not len(index):
        return FileReview(
            file_path=file_path,
            status=NO_COMMENTABLE_LINES,
            index=index,
            diff_errors=parsed.errors,
        )

    prompt = render_inline_review_prompt(
        file_path=file_path,
        lines=list(parsed.lines),
        line_limit=settings.prompt_line_limit,
        max_comments=settings.max_comments_per_file,
        sentinel=settings.no_issues_sentinel,
    )
    response = ai.generate(prompt, diff_text)
    suggestions = parse_candidates(response, sentinel=settings.no_issues_sentinel)
    status = REVIEWED if suggestions.candidates else NO_ISSUES
    return FileReview(
        file_path=file_path,
        status=status,
        index=index,
        candidates=suggestions.candidates,
        ignored=suggestions.ignored,
        diff_errors=parsed.errors,
    )


def _review_isolated(file_path: str, **kwargs) -> FileReview:
    try:
        return review_file(file_path, **kwargs)
    except Exception as exc:  # one file must not sink the run
        return FileReview(file_path=file_path, status=FAILED, error=f"{type(exc).__name__}: {exc}")


def review_changes(
    *,
    vcs: VersionControl,
    ai: SuggestionSource,
    base_ref: str,
    head_ref: str = "HEAD",
    settings: ReviewSettings | None = None,
    files: list[str] | None = None,
    marker: str | None = None,
) -> ReviewRun:
    """Review every changed file and merge the survivors into one batch."""
    settings = settings or ReviewSettings()
    changed = list(files) if files is not None else vcs.changed_files(base_ref, head_ref)
    kwargs = dict(vcs=vcs, ai=ai, base_ref=base_ref, head_ref=head_ref, settings=settings)

    if settings.max_workers <= 1 or len(changed) <= 1:
        reviews = [_review_isolated(path, **kwargs) for path in changed]
    else:
        with ThreadPoolExecutor(max_workers=settings.max_workers) as pool:
            futures = [pool.submit(_review_isolated, path, **kwargs) for path in changed]
            reviews = [f.result() for f in futures]

    builder = ReviewBatchBuilder(changed, per_file_cap=settings.max_comments_per_file)
    finished: list[FileReview] = []
    for review in reviews:
        if review.candidates:
            tally = builder.add_file(review.file_path, review.candidates, review.index)
            review = replace(review, tally=tally)
        finished.append(review)

    analyzed = sum(1 for f in finished if f.status in (REVIEWED, NO_ISSUES))
    batch = builder.build(files_analyzed=analyzed, marker=marker)
    return ReviewRun(files=tuple(finished), batch=batch)
