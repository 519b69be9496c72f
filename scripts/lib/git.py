"""Thin git wrapper: diffs, changed files, branch state, commit."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass

DEFAULT_BRANCH_FALLBACK = "main"


class GitError(RuntimeError):
    """git exited non-zero."""


def _run_git(args: list[str], *, check: bool = True, timeout: float | None = 60) -> subprocess.CompletedProcess[str]:
    try:
        result = subprocess.run(
            ["git", *args], capture_output=True, text=True, check=False, timeout=timeout
        )
    except subprocess.TimeoutExpired as exc:
        raise GitError(f"git {' '.join(args[:2])} timed out after {timeout}s") from exc
    if check and result.returncode != 0:
        raise GitError(f"git {' '.join(args)} failed: {(result.stderr or '').strip()}")
    return result


@dataclass(frozen=True)
class GitRepository:
    """Version-control collaborator for the review pipeline."""

    timeout_seconds: float = 60

    def changed_files(self, base_ref: str, head_ref: str) -> list[str]:
        result = _run_git(
            ["diff", "--name-only", "--diff-filter=d", f"{base_ref}...{head_ref}"],
            timeout=self.timeout_seconds,
        )
        files: list[str] = []
        for line in (result.stdout or "").splitlines():
            path = line.strip()
            if path and path not in files:
                files.append(path)
        return files

    def diff(self, base_ref: str, head_ref: str, path: str) -> str:
        result = _run_git(
            ["diff", "--no-color", "--no-ext-diff", f"{base_ref}...{head_ref}", "--", path],
            timeout=self.timeout_seconds,
        )
        return result.stdout or ""

    def range_diff(self, base_ref: str, head_ref: str = "HEAD") -> str:
        result = _run_git(["diff", "--no-color", f"{base_ref}...{head_ref}"], timeout=self.timeout_seconds)
        return result.stdout or ""

    def staged_diff(self) -> str:
        result = _run_git(["diff", "--cached", "--no-color"], timeout=self.timeout_seconds)
        return result.stdout or ""

    def default_branch(self) -> str:
        result = _run_git(["remote", "show", "origin"], check=False, timeout=self.timeout_seconds)
        for line in (result.stdout or "").splitlines():
            text = line.strip()
            if text.startswith("HEAD branch:"):
                name = text.split(":", 1)[1].strip()
                if name and name != "(unknown)":
                    return name
        return DEFAULT_BRANCH_FALLBACK

    def has_upstream(self) -> bool:
        result = _run_git(["rev-parse", "--abbrev-ref", "@{u}"], check=False, timeout=self.timeout_seconds)
        return result.returncode == 0

    def push_upstream(self) -> None:
        _run_git(["push", "-u", "origin", "HEAD"], timeout=None)

    def commit(self, message: str) -> None:
        _run_git(["commit", "-m", message], timeout=None)
