"""Review submission with an optional per-comment fallback.

The batch path is atomic on the hosting side: one bad anchor fails the whole
review and nothing is applied. The fallback posts comments one at a time so
partial success is possible and observable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from .batch import ReviewBatch, ValidatedComment

IDLE = "idle"
BUILDING = "building"
SUBMITTING_BATCH = "submitting_batch"
SUBMITTING_FALLBACK = "submitting_fallback"
SUCCEEDED = "succeeded"
PARTIALLY_SUCCEEDED = "partially_succeeded"
FAILED = "failed"

TERMINAL_STATES = frozenset({SUCCEEDED, PARTIALLY_SUCCEEDED, FAILED})

_TRANSITIONS: dict[str, frozenset[str]] = {
    IDLE: frozenset({BUILDING, SUBMITTING_BATCH}),
    BUILDING: frozenset({SUBMITTING_BATCH}),
    SUBMITTING_BATCH: frozenset({SUCCEEDED, FAILED, SUBMITTING_FALLBACK}),
    SUBMITTING_FALLBACK: frozenset({PARTIALLY_SUCCEEDED, FAILED}),
}


class SubmissionFailure(Exception):
    """The hosting service rejected a review or comment. Message is verbatim."""


class ReviewAPI(Protocol):
    def create_batch_review(
        self, pr_id: int, summary: str, comments: list[dict[str, object]]
    ) -> dict:
        ...

    def create_single_comment(self, pr_id: int, path: str, line: int, body: str) -> dict:
        ...


@dataclass(frozen=True)
class CommentFailure:
    comment: ValidatedComment
    error: str


@dataclass(frozen=True)
class SubmissionResult:
    status: str
    batch_error: str | None = None
    posted: tuple[ValidatedComment, ...] = ()
    failed: tuple[CommentFailure, ...] = ()
    response: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == SUCCEEDED


class ReviewSubmitter:
    """Submits one ReviewBatch, at most once."""

    def __init__(self, api: ReviewAPI, pr_id: int, *, fallback: bool = True) -> None:
        self.api = api
        self.pr_id = pr_id
        self.fallback = fallback
        self.state = IDLE
        self.history: list[str] = [IDLE]
        self.result: SubmissionResult | None = None

    def _move(self, new_state: str) -> None:
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if new_state not in allowed:
            raise RuntimeError(f"invalid submitter transition {self.state} -> {new_state}")
        self.state = new_state
        self.history.append(new_state)

    def mark_building(self) -> None:
        self._move(BUILDING)

    def submit(self, batch: ReviewBatch) -> SubmissionResult:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"review already submitted (state={self.state})")
        if not batch.comments:
            raise ValueError("refusing to submit an empty review batch")

        self._move(SUBMITTING_BATCH)
        try:
            response = self.api.create_batch_review(self.pr_id, batch.summary_body, batch.payload())
        except SubmissionFailure as exc:
            batch_error = str(exc)
        except Exception as exc:
            self._finish(SubmissionResult(status=FAILED, batch_error=str(exc)))
            raise
        else:
            return self._finish(
                SubmissionResult(
                    status=SUCCEEDED,
                    posted=batch.comments,
                    response=response if isinstance(response, dict) else {},
                )
            )

        if not self.fallback:
            failed = tuple(CommentFailure(c, batch_error) for c in batch.comments)
            return self._finish(SubmissionResult(status=FAILED, batch_error=batch_error, failed=failed))

        self._move(SUBMITTING_FALLBACK)
        return self._submit_individually(batch, batch_error)

    def _finish(self, result: SubmissionResult) -> SubmissionResult:
        self._move(result.status)
        self.result = result
        return result

    def _submit_individually(self, batch: ReviewBatch, batch_error: str) -> SubmissionResult:
        posted: list[ValidatedComment] = []
        failed: list[CommentFailure] = []

        def outcome() -> SubmissionResult:
            # Even a clean fallback lost the summary and atomicity of the batch.
            return SubmissionResult(
                status=PARTIALLY_SUCCEEDED if posted else FAILED,
                batch_error=batch_error,
                posted=tuple(posted),
                failed=tuple(failed),
            )

        for comment in batch.comments:
            body = comment.body
            if batch.marker:
                # single comments carry the marker since there is no summary
                body = f"{body.rstrip()}\n\n{batch.marker}\n"
            try:
                self.api.create_single_comment(self.pr_id, comment.file_path, comment.line_number, body)
            except SubmissionFailure as exc:
                failed.append(CommentFailure(comment, str(exc)))
                continue
            except Exception as exc:
                failed.append(CommentFailure(comment, str(exc)))
                self._finish(outcome())
                raise
            posted.append(comment)

        return self._finish(outcome())
