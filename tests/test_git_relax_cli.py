"""End-to-end tests for the git-relax CLI with collaborators stubbed out."""
from __future__ import annotations

import pytest

import lib.github as gh
from conftest import git_relax
from lib.prerequisites import PrerequisiteMissing
from pkg.inline_review.submitter import SubmissionFailure

HEAD_SHA = "abcdef1234567890"
MARKER = "<!-- git-relax:review sha=abcdef123456 -->"


class FakeVCS:
    diffs = {
        "app.py": "@@ -1,2 +1,3 @@\n import os\n+eval(data)\n print()\n",
        "old.py": "@@ -1 +0,0 @@\n-x\n",
    }

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def changed_files(self, base_ref, head_ref):
        self.calls.append(("changed_files", base_ref, head_ref))
        return list(self.diffs)

    def diff(self, base_ref, head_ref, path):
        return self.diffs[path]

    def default_branch(self):
        return "main"


class FakeLLM:
    def __init__(self, response: str = "2:🔐 Security: eval on input | use ast.literal_eval") -> None:
        self.response = response

    def generate(self, prompt, context):
        return self.response


class FakeAPI:
    def __init__(self, *, batch_error: str | None = None) -> None:
        self.batch_error = batch_error
        self.batches: list[tuple] = []
        self.singles: list[tuple] = []

    def create_batch_review(self, pr_id, summary, comments):
        self.batches.append((pr_id, summary, comments))
        if self.batch_error:
            raise SubmissionFailure(self.batch_error)
        return {"id": 1}

    def create_single_comment(self, pr_id, path, line, body):
        self.singles.append((pr_id, path, line))
        raise SubmissionFailure("line could not be resolved")


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "cfg.yml"
    path.write_text("review:\n  max_workers: 1\n", encoding="utf-8")
    return str(path)


@pytest.fixture
def wired(monkeypatch):
    """Stub every outside collaborator the review command touches."""
    state = {"vcs": FakeVCS(), "api": FakeAPI(), "reviews": [], "comments": []}

    monkeypatch.setattr(git_relax, "require_prerequisites", lambda tools, env: None)
    monkeypatch.setattr(git_relax, "make_llm", lambda config: FakeLLM())
    monkeypatch.setattr(git_relax, "GitRepository", lambda: state["vcs"])
    monkeypatch.setattr(git_relax, "GhReviewAPI", lambda **kw: state["api"])
    monkeypatch.setattr(git_relax, "list_pr_reviews", lambda repo, pr: state["reviews"])
    monkeypatch.setattr(git_relax, "list_pr_review_comments", lambda repo, pr: state["comments"])
    monkeypatch.setattr(gh, "repo_slug", lambda: "octo/repo")
    monkeypatch.setattr(gh, "current_pr_number", lambda: 7)
    monkeypatch.setattr(
        gh,
        "pull_request_info",
        lambda repo, pr: {"title": "feat: x", "head_sha": HEAD_SHA, "base_ref": "main"},
    )
    return state


def test_review_posts_one_batch(wired, config_path, capsys):
    rc = git_relax.main(["rv", "--config", config_path, "-y"])

    assert rc == 0
    [(pr_id, summary, comments)] = wired["api"].batches
    assert pr_id == 7
    assert summary.startswith(MARKER)
    assert comments == [
        {
            "path": "app.py",
            "line": 2,
            "body": "🔐 **Security**: eval on input\n\nSuggestion: use ast.literal_eval\n",
        }
    ]
    assert wired["vcs"].calls == [("changed_files", "main", "HEAD")]
    out = capsys.readouterr().out
    assert "📍 app.py:2" in out
    assert "Review posted with 1 inline comments." in out


def test_review_skips_already_reviewed_sha(wired, config_path, capsys):
    wired["reviews"] = [{"id": 3, "body": f"{MARKER}\nsummary"}]

    rc = git_relax.main(["rv", "7", "--config", config_path, "-y"])

    assert rc == 0
    assert wired["vcs"].calls == []
    assert "already posted" in capsys.readouterr().err


def test_force_reviews_again(wired, config_path):
    wired["reviews"] = [{"id": 3, "body": MARKER}]

    assert git_relax.main(["rv", "--force", "--config", config_path, "-y"]) == 0
    assert len(wired["api"].batches) == 1


def test_dry_run_posts_nothing(wired, config_path, capsys):
    rc = git_relax.main(["rv", "--dry-run", "--config", config_path])

    assert rc == 0
    assert wired["api"].batches == []
    assert "Dry run: 1 comments not posted." in capsys.readouterr().err


def test_declining_confirmation_aborts(wired, config_path, monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt: "n")

    assert git_relax.main(["rv", "--config", config_path]) == 1
    assert wired["api"].batches == []


def test_failed_submission_exits_nonzero(wired, config_path, capsys):
    wired["api"] = FakeAPI(batch_error="HTTP 422: line must be part of the diff")

    rc = git_relax.main(["rv", "--config", config_path, "-y"])

    assert rc == 1
    assert wired["api"].singles == [(7, "app.py", 2)]
    out = capsys.readouterr().out
    assert "Batch review was rejected: HTTP 422: line must be part of the diff" in out


def test_no_fallback_skips_single_comments(wired, config_path):
    wired["api"] = FakeAPI(batch_error="HTTP 422")

    assert git_relax.main(["rv", "--no-fallback", "--config", config_path, "-y"]) == 1
    assert wired["api"].singles == []


def test_no_issues_exits_zero(wired, config_path, monkeypatch, capsys):
    monkeypatch.setattr(git_relax, "make_llm", lambda config: FakeLLM("NO_ISSUES_FOUND"))

    assert git_relax.main(["rv", "--config", config_path, "-y"]) == 0
    assert wired["api"].batches == []
    assert "app.py: no issues found" in capsys.readouterr().out


def test_missing_pull_request(wired, config_path, monkeypatch):
    monkeypatch.setattr(gh, "current_pr_number", lambda: None)

    assert git_relax.main(["rv", "--config", config_path, "-y"]) == 1


def test_missing_prerequisite(config_path, monkeypatch, capsys):
    def missing(tools, env):
        raise PrerequisiteMissing(["gh"])

    monkeypatch.setattr(git_relax, "require_prerequisites", missing)

    assert git_relax.main(["rv", "--config", config_path]) == 1
    assert "https://cli.github.com/" in capsys.readouterr().err


def test_bad_config_exits_two(tmp_path, capsys):
    bad = tmp_path / "bad.yml"
    bad.write_text("review:\n  max_workers: 0\n", encoding="utf-8")

    assert git_relax.main(["rv", "--config", str(bad)]) == 2
    assert "config.review: max_workers" in capsys.readouterr().err


def test_review_settings_flags(config_path):
    args = git_relax.build_parser().parse_args(
        ["rv", "--max-per-file", "0", "--workers", "0", "--no-fallback", "--config", config_path]
    )
    settings = git_relax.review_settings(args, git_relax.load_config(args))

    assert settings.max_comments_per_file is None
    assert settings.max_workers == 1
    assert settings.fallback_to_single_comments is False


def test_commit_without_staged_changes(config_path, monkeypatch):
    class EmptyRepo:
        def staged_diff(self):
            return ""

    monkeypatch.setattr(git_relax, "require_prerequisites", lambda tools, env: None)
    monkeypatch.setattr(git_relax, "GitRepository", EmptyRepo)

    assert git_relax.main(["cm", "--config", config_path]) == 0


def test_commit_uses_cleaned_model_message(config_path, monkeypatch):
    committed = []

    class Repo:
        def staged_diff(self):
            return "diff --git a/x b/x\n+y\n"

        def commit(self, message):
            committed.append(message)

    class ChatLLM:
        def chat(self, system, user):
            return "`Feat(cli): add flag`\n"

    monkeypatch.setattr(git_relax, "require_prerequisites", lambda tools, env: None)
    monkeypatch.setattr(git_relax, "GitRepository", Repo)
    monkeypatch.setattr(git_relax, "make_llm", lambda config: ChatLLM())

    assert git_relax.main(["cm", "--config", config_path, "-y"]) == 0
    assert committed == ["feat(cli): add flag"]


def test_review_skips_sha_marked_by_fallback_comments(wired, config_path):
    wired["comments"] = [{"id": 11, "body": f"🧹 **Quality**: x\n\n{MARKER}\n"}]

    assert git_relax.main(["rv", "--config", config_path, "-y"]) == 0
    assert wired["vcs"].calls == []


def test_fallback_comments_are_marked(wired, config_path):
    bodies = []

    class RecordingAPI(FakeAPI):
        def create_single_comment(self, pr_id, path, line, body):
            bodies.append(body)
            return {"id": 2}

    wired["api"] = RecordingAPI(batch_error="HTTP 422")

    assert git_relax.main(["rv", "--config", config_path, "-y"]) == 1
    assert bodies and bodies[0].rstrip().endswith(MARKER)


@pytest.mark.parametrize("flag", ["--max-per-file", "--workers"])
def test_negative_counts_are_usage_errors(wired, config_path, flag, capsys):
    with pytest.raises(SystemExit) as excinfo:
        git_relax.main(["rv", flag, "-3", "--config", config_path, "-y"])

    assert excinfo.value.code == 2
    assert "must be >= 0" in capsys.readouterr().err
    assert wired["api"].batches == []


class FakePullRepo:
    def __init__(self, diff: str = "diff --git a/x b/x\n+y\n", upstream: bool = False) -> None:
        self._diff = diff
        self._upstream = upstream
        self.range_bases: list[str] = []
        self.pushed = False

    def range_diff(self, base_ref, head_ref="HEAD"):
        self.range_bases.append(base_ref)
        return self._diff

    def default_branch(self):
        return "trunk"

    def has_upstream(self):
        return self._upstream

    def push_upstream(self):
        self.pushed = True


class PullLLM:
    def chat(self, system, user):
        if "PR title" in system:
            return '"Feat(cli): Add pull command"\n'
        return "## Summary\nAdds it.\n\n## Changes\n- cli\n"


@pytest.fixture
def pull_wired(monkeypatch):
    state = {"repo": FakePullRepo(), "created": []}

    def create_pull_request(*, title, body, base):
        state["created"].append({"title": title, "body": body, "base": base})
        return "https://github.com/octo/repo/pull/9"

    monkeypatch.setattr(git_relax, "require_prerequisites", lambda tools, env: None)
    monkeypatch.setattr(git_relax, "GitRepository", lambda: state["repo"])
    monkeypatch.setattr(git_relax, "make_llm", lambda config: PullLLM())
    monkeypatch.setattr(gh, "create_pull_request", create_pull_request)
    return state


def test_pull_creates_pr_against_default_branch(pull_wired, config_path, capsys):
    rc = git_relax.main(["pr", "--config", config_path, "-y"])

    assert rc == 0
    repo = pull_wired["repo"]
    assert repo.range_bases == ["trunk"]
    assert repo.pushed is True
    assert pull_wired["created"] == [
        {
            "title": "feat(cli): add pull command",
            "body": "## Summary\nAdds it.\n\n## Changes\n- cli",
            "base": "trunk",
        }
    ]
    assert "Created: https://github.com/octo/repo/pull/9" in capsys.readouterr().err


def test_pull_with_explicit_base_and_upstream(pull_wired, config_path):
    pull_wired["repo"] = FakePullRepo(upstream=True)

    assert git_relax.main(["pr", "--base", "develop", "--config", config_path, "-y"]) == 0
    assert pull_wired["repo"].range_bases == ["develop"]
    assert pull_wired["repo"].pushed is False
    assert pull_wired["created"][0]["base"] == "develop"


def test_pull_without_changes_exits_zero(pull_wired, config_path, capsys):
    pull_wired["repo"] = FakePullRepo(diff="  \n")

    assert git_relax.main(["pr", "--config", config_path, "-y"]) == 0
    assert pull_wired["created"] == []
    assert "No changes compared to trunk" in capsys.readouterr().err


def test_pull_declined_creates_nothing(pull_wired, config_path, monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt: "no")

    assert git_relax.main(["pr", "--config", config_path]) == 1
    assert pull_wired["created"] == []
    assert pull_wired["repo"].pushed is False
