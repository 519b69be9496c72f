"""Terminal preview of a review run before it is posted."""

from __future__ import annotations

from pkg.inline_review.batch import category_icon, count_by_category
from pkg.inline_review.pipeline import (
    FAILED,
    NO_COMMENTABLE_LINES,
    NO_ISSUES,
    REVIEWED,
    UNCHANGED,
    ReviewRun,
)
from pkg.inline_review.submitter import FAILED as SUBMIT_FAILED
from pkg.inline_review.submitter import PARTIALLY_SUCCEEDED, SUCCEEDED, SubmissionResult

_STATUS_TEXT = {
    REVIEWED: "reviewed",
    NO_ISSUES: "no issues found",
    UNCHANGED: "no diff, skipped",
    NO_COMMENTABLE_LINES: "only deletions, skipped",
    FAILED: "failed",
}


def render_file_outcomes(run: ReviewRun) -> list[str]:
    total = len(run.files)
    lines: list[str] = []
    for idx, review in enumerate(run.files, start=1):
        status = _STATUS_TEXT.get(review.status, review.status)
        line = f"[{idx}/{total}] {review.file_path}: {status}"
        if review.status in (REVIEWED, NO_ISSUES):
            line += f" ({len(review.index)} commentable lines)"
        if review.error:
            line += f" - {review.error}"
        lines.append(line)

        for err in review.diff_errors:
            lines.append(f"    ! {err}")
        if review.ignored:
            lines.append(f"    - {len(review.ignored)} non-suggestion line(s) in model output ignored")
        tally = review.tally
        if tally is None:
            continue
        for rejection in tally.rejected:
            lines.append(f"    ✗ rejected line {rejection.line_number}: {rejection.reason}")
        if tally.dropped_by_cap:
            lines.append(f"    - {tally.dropped_by_cap} suggestion(s) over the per-file cap dropped")
    return lines


def render_comment_preview(run: ReviewRun) -> list[str]:
    comments = list(run.batch.comments)
    if not comments:
        return []
    lines: list[str] = []
    for comment in comments:
        lines.append(f"📍 {comment.file_path}:{comment.line_number}")
        for body_line in comment.body.strip().splitlines():
            lines.append(f"   {body_line}")
        lines.append("")

    lines.append("📊 Analysis Summary:")
    for category, count in sorted(count_by_category(comments).items()):
        lines.append(f"  {category_icon(category)} {category}: {count}")
    return lines


def render_submission(result: SubmissionResult) -> list[str]:
    if result.status == SUCCEEDED:
        return [f"Review posted with {len(result.posted)} inline comments."]

    lines = [f"Batch review was rejected: {result.batch_error}"]
    if result.status == PARTIALLY_SUCCEEDED:
        lines.append(
            f"Posted {len(result.posted)}/{len(result.posted) + len(result.failed)} comments individually."
        )
    elif result.status == SUBMIT_FAILED and result.failed:
        lines.append(f"{len(result.failed)} comment(s) not posted.")
    for failure in result.failed:
        c = failure.comment
        lines.append(f"  ✗ {c.file_path}:{c.line_number}: {failure.error}")
    return lines
