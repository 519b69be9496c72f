"""Typed loader for git-relax YAML config.

Lookup order: explicit path, ``$GIT_RELAX_CONFIG``, ``.git-relax.yml`` in the
working tree, then the bundled ``defaults/config.yml``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from pkg.inline_review.config import ReviewSettings

DEFAULTS_PATH = Path(__file__).resolve().parents[2] / "defaults" / "config.yml"
LOCAL_CONFIG_NAME = ".git-relax.yml"

_REVIEW_KEYS = frozenset(
    {
        "max_comments_per_file",
        "max_workers",
        "ai_timeout_seconds",
        "submit_timeout_seconds",
        "fallback_to_single_comments",
        "no_issues_sentinel",
        "prompt_line_limit",
    }
)


class ConfigError(RuntimeError):
    """Invalid or unreadable config."""


@dataclass(frozen=True)
class RelaxConfig:
    review: ReviewSettings = field(default_factory=ReviewSettings)
    model: str | None = None
    base_branch: str | None = None


def _require_mapping(value: Any, ctx: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(f"{ctx}: expected mapping")
    return value


def _optional_str(value: Any, ctx: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{ctx}: expected string")
    s = value.strip()
    return s or None


def _load_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"missing config file: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e


def resolve_config_path(
    explicit: str | None,
    env: Mapping[str, str],
    cwd: Path,
) -> Path:
    if explicit:
        return Path(explicit)
    if env.get("GIT_RELAX_CONFIG"):
        return Path(env["GIT_RELAX_CONFIG"])
    local = cwd / LOCAL_CONFIG_NAME
    if local.exists():
        return local
    return DEFAULTS_PATH


def parse_config(raw: Any) -> RelaxConfig:
    if raw is None:
        return RelaxConfig()
    cfg = _require_mapping(raw, "config")

    review = ReviewSettings()
    review_raw = cfg.get("review")
    if review_raw is not None:
        review_map = _require_mapping(review_raw, "config.review")
        unknown = sorted(set(review_map) - _REVIEW_KEYS)
        if unknown:
            raise ConfigError(f"config.review: unknown keys {', '.join(unknown)}")
        try:
            review = ReviewSettings.from_dict(review_map)
        except ValueError as exc:
            raise ConfigError(f"config.review: {exc}") from exc

    model = None
    llm_raw = cfg.get("llm")
    if llm_raw is not None:
        llm_map = _require_mapping(llm_raw, "config.llm")
        model = _optional_str(llm_map.get("model"), "config.llm.model")

    base_branch = _optional_str(cfg.get("base_branch"), "config.base_branch")
    return RelaxConfig(review=review, model=model, base_branch=base_branch)


def load_relax_config(path: Path) -> RelaxConfig:
    """Load and validate one config file."""
    return parse_config(_load_yaml(path))
