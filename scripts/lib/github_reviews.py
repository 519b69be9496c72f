"""GitHub PR review endpoints used by the review command.

Small on purpose: list reviews and review comments, create one batched review
with inline comments, and post a single inline comment for the fallback path.
"""

from __future__ import annotations

import json
import os
import subprocess
import tempfile
from dataclasses import dataclass

from pkg.inline_review.submitter import SubmissionFailure

from lib import github as gh


def list_pr_reviews(repo: str, pr_number: int) -> list[dict]:
    result = gh._run_gh(["api", f"repos/{repo}/pulls/{pr_number}/reviews?per_page=100"])
    data = json.loads(result.stdout)
    return data if isinstance(data, list) else []


def list_pr_review_comments(repo: str, pr_number: int) -> list[dict]:
    result = gh._run_gh(["api", f"repos/{repo}/pulls/{pr_number}/comments?per_page=100"])
    data = json.loads(result.stdout)
    return data if isinstance(data, list) else []


def find_review_id_by_marker(reviews: list[dict], marker: str) -> int | None:
    for review in reviews:
        if not isinstance(review, dict):
            continue
        body = str(review.get("body", "") or "")
        if marker in body:
            rid = review.get("id")
            if isinstance(rid, int):
                return rid
    return None


def _post_json(endpoint: str, payload: dict, *, timeout: float) -> dict:
    with tempfile.NamedTemporaryFile("w", encoding="utf-8", suffix=".json", delete=False) as handle:
        json.dump(payload, handle)
        handle.flush()
        tmp_path = handle.name

    try:
        result = gh._run_gh(
            ["api", "-X", "POST", endpoint, "--input", tmp_path],
            timeout=timeout,
        )
    finally:
        os.unlink(tmp_path)
    data = json.loads(result.stdout or "{}")
    return data if isinstance(data, dict) else {}


def _failure_text(exc: BaseException) -> str:
    if isinstance(exc, subprocess.CalledProcessError):
        return (exc.stderr or exc.stdout or str(exc)).strip()
    return str(exc)


@dataclass
class GhReviewAPI:
    """Review API over ``gh api``, anchored by new-file line (side RIGHT)."""

    repo: str
    commit_id: str
    timeout_seconds: float = gh.DEFAULT_TIMEOUT_SECONDS

    def create_batch_review(self, pr_id: int, summary: str, comments: list[dict[str, object]]) -> dict:
        payload: dict[str, object] = {
            "event": "COMMENT",
            "body": summary,
            "comments": [
                {"path": c["path"], "line": c["line"], "side": "RIGHT", "body": c["body"]}
                for c in comments
            ],
        }
        if self.commit_id:
            payload["commit_id"] = self.commit_id
        try:
            return _post_json(
                f"repos/{self.repo}/pulls/{pr_id}/reviews", payload, timeout=self.timeout_seconds
            )
        except (
            subprocess.CalledProcessError,
            gh.TransientGitHubError,
            gh.GitHubTimeoutError,
            json.JSONDecodeError,
        ) as exc:
            raise SubmissionFailure(_failure_text(exc)) from exc

    def create_single_comment(self, pr_id: int, path: str, line: int, body: str) -> dict:
        payload: dict[str, object] = {
            "path": path,
            "line": line,
            "side": "RIGHT",
            "body": body,
        }
        if self.commit_id:
            payload["commit_id"] = self.commit_id
        try:
            return _post_json(
                f"repos/{self.repo}/pulls/{pr_id}/comments", payload, timeout=self.timeout_seconds
            )
        except (
            subprocess.CalledProcessError,
            gh.TransientGitHubError,
            gh.GitHubTimeoutError,
            json.JSONDecodeError,
        ) as exc:
            raise SubmissionFailure(_failure_text(exc)) from exc
