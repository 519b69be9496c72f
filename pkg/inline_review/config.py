from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .candidates import NO_ISSUES_SENTINEL

DEFAULT_MAX_COMMENTS_PER_FILE = 8
DEFAULT_MAX_WORKERS = 4
DEFAULT_AI_TIMEOUT_SECONDS = 120
DEFAULT_SUBMIT_TIMEOUT_SECONDS = 60
DEFAULT_PROMPT_LINE_LIMIT = 25


def _coerce_positive_int(value: Any, field_name: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer")
    if value <= 0:
        raise ValueError(f"{field_name} must be greater than zero")
    return value


def _coerce_cap(value: Any) -> int | None:
    # null in config means "no cap"
    if value is None:
        return None
    return _coerce_positive_int(value, "max_comments_per_file", DEFAULT_MAX_COMMENTS_PER_FILE)


def _coerce_bool(value: Any, field_name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"{field_name} must be a boolean")
    return value


def _coerce_str(value: Any, field_name: str, default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string")
    return value.strip()


@dataclass(frozen=True)
class ReviewSettings:
    """Knobs for one inline review run."""

    max_comments_per_file: int | None = DEFAULT_MAX_COMMENTS_PER_FILE
    max_workers: int = DEFAULT_MAX_WORKERS
    ai_timeout_seconds: int = DEFAULT_AI_TIMEOUT_SECONDS
    submit_timeout_seconds: int = DEFAULT_SUBMIT_TIMEOUT_SECONDS
    fallback_to_single_comments: bool = True
    no_issues_sentinel: str = NO_ISSUES_SENTINEL
    prompt_line_limit: int = DEFAULT_PROMPT_LINE_LIMIT

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ReviewSettings":
        if not isinstance(payload, dict):
            raise ValueError("review settings must be a mapping")
        cap = (
            _coerce_cap(payload["max_comments_per_file"])
            if "max_comments_per_file" in payload
            else DEFAULT_MAX_COMMENTS_PER_FILE
        )
        return cls(
            max_comments_per_file=cap,
            max_workers=_coerce_positive_int(payload.get("max_workers"), "max_workers", DEFAULT_MAX_WORKERS),
            ai_timeout_seconds=_coerce_positive_int(
                payload.get("ai_timeout_seconds"), "ai_timeout_seconds", DEFAULT_AI_TIMEOUT_SECONDS
            ),
            submit_timeout_seconds=_coerce_positive_int(
                payload.get("submit_timeout_seconds"), "submit_timeout_seconds", DEFAULT_SUBMIT_TIMEOUT_SECONDS
            ),
            fallback_to_single_comments=_coerce_bool(
                payload.get("fallback_to_single_comments"), "fallback_to_single_comments", True
            ),
            no_issues_sentinel=_coerce_str(payload.get("no_issues_sentinel"), "no_issues_sentinel", NO_ISSUES_SENTINEL),
            prompt_line_limit=_coerce_positive_int(
                payload.get("prompt_line_limit"), "prompt_line_limit", DEFAULT_PROMPT_LINE_LIMIT
            ),
        )
