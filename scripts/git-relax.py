#!/usr/bin/env python3
"""git-relax: AI commit messages, pull requests and inline PR reviews.

Usage:
    python3 scripts/git-relax.py cm              # commit staged changes
    python3 scripts/git-relax.py pr [--base B]   # open a PR for this branch
    python3 scripts/git-relax.py rv [PR]         # inline review of a PR

Env:
    OPENROUTER_API_KEY  OpenRouter API key (preferred)
    OPENAI_API_KEY      OpenAI API key
    LLM_MODEL           Model override
    GIT_RELAX_CONFIG    Path to a YAML config file

Exit codes:
    0  Success, or nothing to do.
    1  Missing prerequisite, aborted flow, or failed submission.
    2  Invalid usage or config.
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from dataclasses import replace
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lib import github as gh
from lib.git import GitError, GitRepository
from lib.github_reviews import (
    GhReviewAPI,
    find_review_id_by_marker,
    list_pr_review_comments,
    list_pr_reviews,
)
from lib.llm import LlmClient, SuggestionError
from lib.prerequisites import PrerequisiteMissing, require_prerequisites
from lib.prompts import COMMIT, PR_BODY, PR_TITLE, clean_single_line
from lib.relax_config import ConfigError, RelaxConfig, load_relax_config, resolve_config_path
from lib.render_review import render_comment_preview, render_file_outcomes, render_submission
from pkg.inline_review import ReviewSettings, ReviewSubmitter, review_changes, review_marker
from pkg.inline_review.submitter import SUCCEEDED


class UserAborted(Exception):
    """The user declined a confirmation."""


def warn(message: str) -> None:
    """Warn."""
    print(f"git-relax: warning: {message}", file=sys.stderr)


def notice(message: str) -> None:
    """Notice."""
    print(f"git-relax: {message}", file=sys.stderr)


def emit(lines: list[str]) -> None:
    for line in lines:
        print(line)


def non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {number}")
    return number


def already_reviewed(repo: str, pr_number: int, marker: str) -> bool:
    """The marker sits in a batch review's summary or in fallback comments."""
    if find_review_id_by_marker(list_pr_reviews(repo, pr_number), marker) is not None:
        return True
    return find_review_id_by_marker(list_pr_review_comments(repo, pr_number), marker) is not None


def confirm(question: str, *, assume_yes: bool) -> bool:
    if assume_yes:
        return True
    try:
        answer = input(f"{question} [Y/n] ").strip().lower()
    except EOFError:
        return False
    return answer in ("", "y", "yes")


def load_config(args: argparse.Namespace) -> RelaxConfig:
    path = resolve_config_path(args.config, os.environ, Path.cwd())
    return load_relax_config(path)


def make_llm(config: RelaxConfig) -> LlmClient:
    return LlmClient.from_env(
        os.environ,
        model=config.model,
        timeout_seconds=config.review.ai_timeout_seconds,
    )


def cmd_commit(args: argparse.Namespace, config: RelaxConfig) -> int:
    require_prerequisites(("git",), os.environ)
    repo = GitRepository()
    diff = repo.staged_diff()
    if not diff.strip():
        warn("No staged changes. Use 'git add' first.")
        return 0

    notice("Generating commit message...")
    message = clean_single_line(make_llm(config).chat(COMMIT, diff))
    if not message:
        raise SuggestionError("model returned an empty commit message")
    print(f"Generated: {message}")

    if not args.yes:
        try:
            edited = input("Edit message (enter to keep): ").strip()
        except EOFError:
            edited = ""
        message = edited or message

    if not confirm("Commit?", assume_yes=args.yes):
        raise UserAborted("commit cancelled")
    repo.commit(message)
    notice("Committed!")
    return 0


def cmd_pull(args: argparse.Namespace, config: RelaxConfig) -> int:
    require_prerequisites(("git", "gh"), os.environ)
    repo = GitRepository()
    base = args.base or config.base_branch or repo.default_branch()
    diff = repo.range_diff(base)
    if not diff.strip():
        warn(f"No changes compared to {base}")
        return 0

    notice("Generating PR...")
    llm = make_llm(config)
    title = clean_single_line(llm.chat(PR_TITLE, diff))
    body = llm.chat(PR_BODY, diff).strip()
    print(f"\nTitle: {title}\n")
    print(body)
    print()

    if not confirm("Create PR?", assume_yes=args.yes):
        raise UserAborted("pull request cancelled")
    if not repo.has_upstream():
        notice("Pushing to remote...")
        repo.push_upstream()
    url = gh.create_pull_request(title=title, body=body, base=base)
    notice(f"Created: {url}")
    return 0


def review_settings(args: argparse.Namespace, config: RelaxConfig) -> ReviewSettings:
    settings = config.review
    if args.max_per_file is not None:
        settings = replace(settings, max_comments_per_file=args.max_per_file or None)
    if args.workers is not None:
        settings = replace(settings, max_workers=max(1, args.workers))
    if args.no_fallback:
        settings = replace(settings, fallback_to_single_comments=False)
    return settings


def cmd_review(args: argparse.Namespace, config: RelaxConfig) -> int:
    require_prerequisites(("git", "gh"), os.environ)
    settings = review_settings(args, config)
    llm = make_llm(config)

    repo_name = gh.repo_slug()
    pr_number = args.pr_id or gh.current_pr_number()
    if not pr_number:
        warn("No pull request found for the current branch; pass a PR number.")
        return 1

    info = gh.pull_request_info(repo_name, pr_number)
    head_sha = info.get("head_sha", "")
    marker = review_marker(head_sha)
    if not args.force and not args.dry_run:
        if already_reviewed(repo_name, pr_number, marker):
            notice(f"Review already posted for sha={head_sha[:12]}. Use --force to post again.")
            return 0

    vcs = GitRepository()
    base = args.base or config.base_branch or info.get("base_ref") or vcs.default_branch()
    api = GhReviewAPI(repo=repo_name, commit_id=head_sha, timeout_seconds=settings.submit_timeout_seconds)
    submitter = ReviewSubmitter(api, pr_number, fallback=settings.fallback_to_single_comments)
    submitter.mark_building()

    notice(f"Reviewing PR #{pr_number} ({info.get('title', '')}) against {base}...")
    run = review_changes(vcs=vcs, ai=llm, base_ref=base, head_ref="HEAD", settings=settings, marker=marker)
    if not run.files:
        warn(f"No changed files compared to {base}")
        return 0
    emit(render_file_outcomes(run))

    if not run.batch.comments:
        notice("No issues requiring inline comments were found.")
        return 0

    print()
    emit(render_comment_preview(run))
    if args.dry_run:
        notice(f"Dry run: {len(run.batch)} comments not posted.")
        return 0
    if not confirm(f"Post {len(run.batch)} inline comments to PR #{pr_number}?", assume_yes=args.yes):
        raise UserAborted("review submission cancelled")

    result = submitter.submit(run.batch)
    emit(render_submission(result))
    return 0 if result.status == SUCCEEDED else 1


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=None, help="YAML config file")
    common.add_argument("-y", "--yes", action="store_true", help="Skip confirmations")

    parser = argparse.ArgumentParser(
        prog="git-relax",
        description="AI-powered commit messages, pull requests and inline reviews.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_commit = sub.add_parser("commit", aliases=["cm"], parents=[common], help="Commit staged changes")
    p_commit.set_defaults(handler=cmd_commit)

    p_pull = sub.add_parser("pull", aliases=["pr"], parents=[common], help="Create a pull request")
    p_pull.add_argument("-b", "--base", default=None, help="Base branch (default: origin HEAD branch)")
    p_pull.set_defaults(handler=cmd_pull)

    p_review = sub.add_parser("review", aliases=["rv"], parents=[common], help="Inline AI review of a PR")
    p_review.add_argument("pr_id", nargs="?", type=int, default=None, help="PR number (default: current branch)")
    p_review.add_argument("-b", "--base", default=None, help="Base ref to diff against")
    p_review.add_argument("--max-per-file", type=non_negative_int, default=None, help="Comment cap per file (0 = no cap)")
    p_review.add_argument("--workers", type=non_negative_int, default=None, help="Files reviewed in parallel")
    p_review.add_argument("--no-fallback", action="store_true", help="Don't post comments one by one if the batch fails")
    p_review.add_argument("--dry-run", action="store_true", help="Preview comments without posting")
    p_review.add_argument("--force", action="store_true", help="Post even if this sha was already reviewed")
    p_review.set_defaults(handler=cmd_review)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main."""
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args)
    except ConfigError as exc:
        print(f"git-relax: {exc}", file=sys.stderr)
        return 2

    try:
        return args.handler(args, config)
    except PrerequisiteMissing as exc:
        print(f"git-relax: {exc}", file=sys.stderr)
        return 1
    except (UserAborted, KeyboardInterrupt) as exc:
        notice(f"aborted: {exc}" if str(exc) else "aborted")
        return 1
    except (gh.CommentPermissionError, gh.TransientGitHubError, gh.GitHubTimeoutError) as exc:
        print(f"git-relax: {exc}", file=sys.stderr)
        return 1
    except subprocess.CalledProcessError as exc:
        print(f"git-relax: gh command failed: {(exc.stderr or '').strip()}", file=sys.stderr)
        return 1
    except (GitError, SuggestionError) as exc:
        print(f"git-relax: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
