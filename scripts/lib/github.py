"""gh CLI runner and pull request lookups.

Every GitHub call goes through ``_run_gh`` so retries, permission errors and
timeouts are handled in one place.
"""
from __future__ import annotations

import json
import random
import subprocess
import sys
import time

DEFAULT_TIMEOUT_SECONDS = 60


class CommentPermissionError(Exception):
    """Token lacks pull-requests: write permission."""


class TransientGitHubError(Exception):
    """GitHub API returned a transient error (5xx)."""


class GitHubTimeoutError(Exception):
    """gh did not finish within the allotted time."""


def _is_transient_error(stderr: str) -> bool:
    """Check if error is a transient GitHub API error (5xx)."""
    transient_codes = ("502", "503", "504")
    lower_stderr = stderr.lower()
    # gh prints "(HTTP 503)"; raw API errors read "HTTP 503"
    return any(
        f"(http {code})" in lower_stderr or f"http {code}" in lower_stderr
        for code in transient_codes
    )


def _run_gh(
    args: list[str],
    *,
    check: bool = True,
    max_retries: int = 3,
    base_delay: float = 1.0,
    timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
) -> subprocess.CompletedProcess[str]:
    """Run a gh CLI command with retry logic for transient errors.

    Args:
        args: Arguments to pass to gh CLI
        check: Whether to raise on non-zero exit code
        max_retries: Maximum number of attempts for transient errors
        base_delay: Base delay in seconds between retries (exponential backoff)
        timeout: Seconds before a single attempt is abandoned

    Raises:
        CommentPermissionError: Token lacks pull-requests: write permission
        TransientGitHubError: GitHub API returned 5xx after all retries
        GitHubTimeoutError: An attempt exceeded ``timeout``
        subprocess.CalledProcessError: Other gh CLI failures
    """
    for attempt in range(max_retries):
        try:
            result = subprocess.run(
                ["gh", *args], capture_output=True, text=True, check=False, timeout=timeout
            )
        except subprocess.TimeoutExpired as exc:
            raise GitHubTimeoutError(
                f"gh {' '.join(args[:2])} timed out after {timeout}s"
            ) from exc

        if result.returncode == 0:
            return result

        stderr = (result.stderr or "").lower()

        if any(s in stderr for s in ("403", "resource not accessible", "insufficient")):
            raise CommentPermissionError(
                "Unable to post to the pull request: token lacks pull-requests: write permission.\n"
                "Run `gh auth refresh -s repo` or use a token with pull-requests: write."
            )

        if _is_transient_error(result.stderr or ""):
            if attempt < max_retries - 1:
                # 1s, 2s, 4s plus jitter
                delay = base_delay * (2 ** attempt) + random.uniform(0, 0.5)
                print(
                    f"git-relax: warning: GitHub API error (attempt {attempt + 1}/{max_retries}), "
                    f"retrying in {delay:.1f}s...",
                    file=sys.stderr,
                )
                time.sleep(delay)
                continue
            raise TransientGitHubError(
                f"GitHub API returned transient error after {max_retries} attempts: "
                f"{result.stderr}"
            )

        if check:
            raise subprocess.CalledProcessError(
                result.returncode, result.args, result.stdout, result.stderr
            )
        return result

    raise RuntimeError("_run_gh retry loop exited unexpectedly")


def repo_slug() -> str:
    """owner/name of the repository gh resolves for the current directory."""
    result = _run_gh(["repo", "view", "--json", "nameWithOwner", "--jq", ".nameWithOwner"])
    slug = (result.stdout or "").strip()
    if "/" not in slug:
        raise ValueError(f"unable to resolve repository from gh output: {slug!r}")
    return slug


def current_pr_number() -> int | None:
    """PR number for the checked-out branch, or None when there is none."""
    result = _run_gh(["pr", "view", "--json", "number", "--jq", ".number"], check=False)
    if result.returncode != 0:
        return None
    try:
        return int((result.stdout or "").strip())
    except ValueError:
        return None


def pull_request_info(repo: str, pr_number: int) -> dict:
    """Title, head sha and base branch of a PR."""
    result = _run_gh(["api", f"repos/{repo}/pulls/{pr_number}"])
    data = json.loads(result.stdout or "{}")
    if not isinstance(data, dict):
        return {}
    head = data.get("head") if isinstance(data.get("head"), dict) else {}
    base = data.get("base") if isinstance(data.get("base"), dict) else {}
    return {
        "title": str(data.get("title") or ""),
        "head_sha": str(head.get("sha") or ""),
        "base_ref": str(base.get("ref") or ""),
    }


def create_pull_request(*, title: str, body: str, base: str) -> str:
    """Open a PR for the current branch and return its URL."""
    result = _run_gh(["pr", "create", "--title", title, "--body", body, "--base", base])
    return (result.stdout or "").strip()
