from __future__ import annotations

from pathlib import Path

import pytest

from lib.relax_config import (
    DEFAULTS_PATH,
    ConfigError,
    RelaxConfig,
    load_relax_config,
    parse_config,
    resolve_config_path,
)
from pkg.inline_review.config import ReviewSettings


def test_settings_defaults() -> None:
    settings = ReviewSettings.from_dict({})

    assert settings.max_comments_per_file == 8
    assert settings.max_workers == 4
    assert settings.fallback_to_single_comments is True
    assert settings.no_issues_sentinel == "NO_ISSUES_FOUND"
    assert settings.prompt_line_limit == 25


def test_settings_null_cap_means_unbounded() -> None:
    assert ReviewSettings.from_dict({"max_comments_per_file": None}).max_comments_per_file is None
    assert ReviewSettings.from_dict({"max_comments_per_file": 20}).max_comments_per_file == 20


@pytest.mark.parametrize(
    "payload, match",
    [
        ({"max_comments_per_file": 0}, "max_comments_per_file"),
        ({"max_workers": True}, "max_workers"),
        ({"ai_timeout_seconds": "30"}, "ai_timeout_seconds"),
        ({"fallback_to_single_comments": "yes"}, "fallback_to_single_comments"),
        ({"no_issues_sentinel": "  "}, "no_issues_sentinel"),
    ],
)
def test_settings_reject_bad_values(payload: dict, match: str) -> None:
    with pytest.raises(ValueError, match=match):
        ReviewSettings.from_dict(payload)


def test_bundled_defaults_load() -> None:
    cfg = load_relax_config(DEFAULTS_PATH)

    assert cfg.review == ReviewSettings()
    assert cfg.model is None


def test_load_overrides(tmp_path: Path) -> None:
    path = tmp_path / "cfg.yml"
    path.write_text(
        "review:\n"
        "  max_comments_per_file: null\n"
        "  max_workers: 2\n"
        "  fallback_to_single_comments: false\n"
        "llm:\n"
        "  model: openai/gpt-4o\n"
        "base_branch: develop\n",
        encoding="utf-8",
    )

    cfg = load_relax_config(path)

    assert cfg.review.max_comments_per_file is None
    assert cfg.review.max_workers == 2
    assert cfg.review.fallback_to_single_comments is False
    assert cfg.model == "openai/gpt-4o"
    assert cfg.base_branch == "develop"


def test_empty_file_is_default_config(tmp_path: Path) -> None:
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")

    assert load_relax_config(path) == RelaxConfig()


def test_unknown_review_key_is_an_error() -> None:
    with pytest.raises(ConfigError, match="unknown keys max_comments"):
        parse_config({"review": {"max_comments": 3}})


def test_bad_review_value_is_a_config_error() -> None:
    with pytest.raises(ConfigError, match="config.review: max_workers"):
        parse_config({"review": {"max_workers": -1}})


def test_non_mapping_config_is_an_error() -> None:
    with pytest.raises(ConfigError, match="expected mapping"):
        parse_config(["review"])


def test_missing_and_invalid_files(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="missing config file"):
        load_relax_config(tmp_path / "nope.yml")

    bad = tmp_path / "bad.yml"
    bad.write_text("review: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid YAML"):
        load_relax_config(bad)


def test_resolve_config_path_order(tmp_path: Path) -> None:
    assert resolve_config_path("x.yml", {"GIT_RELAX_CONFIG": "y.yml"}, tmp_path) == Path("x.yml")
    assert resolve_config_path(None, {"GIT_RELAX_CONFIG": "y.yml"}, tmp_path) == Path("y.yml")
    assert resolve_config_path(None, {}, tmp_path) == DEFAULTS_PATH

    local = tmp_path / ".git-relax.yml"
    local.write_text("review: {}\n", encoding="utf-8")
    assert resolve_config_path(None, {}, tmp_path) == local
