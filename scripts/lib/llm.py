"""OpenAI-compatible chat completions client.

OpenRouter is used when ``OPENROUTER_API_KEY`` is set, OpenAI when
``OPENAI_API_KEY`` is. ``LLM_MODEL`` overrides the provider's default model.
"""
from __future__ import annotations

import json
import socket
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Mapping

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"
OPENROUTER_DEFAULT_MODEL = "google/gemini-2.0-flash-001"
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
REQUEST_TIMEOUT = 120


class SuggestionError(RuntimeError):
    """The model call failed, timed out, or returned nothing usable."""


class MissingApiKeyError(SuggestionError):
    """Neither OPENROUTER_API_KEY nor OPENAI_API_KEY is set."""


def resolve_provider(env: Mapping[str, str], model_override: str | None = None) -> tuple[str, str, str]:
    """Return (api_key, model, url) for the configured provider."""
    openrouter_key = (env.get("OPENROUTER_API_KEY") or "").strip()
    openai_key = (env.get("OPENAI_API_KEY") or "").strip()
    model = (env.get("LLM_MODEL") or "").strip() or (model_override or "").strip()

    if openrouter_key:
        return openrouter_key, model or OPENROUTER_DEFAULT_MODEL, OPENROUTER_URL
    if openai_key:
        return openai_key, model or OPENAI_DEFAULT_MODEL, OPENAI_URL
    raise MissingApiKeyError("Set OPENROUTER_API_KEY or OPENAI_API_KEY")


def extract_message(data: object) -> str:
    if not isinstance(data, dict):
        raise SuggestionError("unexpected response shape from model API")
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise SuggestionError("model API returned no choices")
    first = choices[0] if isinstance(choices[0], dict) else {}
    message = first.get("message") if isinstance(first.get("message"), dict) else {}
    content = message.get("content")
    if not isinstance(content, str):
        raise SuggestionError("model API returned no message content")
    return content


@dataclass(frozen=True)
class LlmClient:
    api_key: str
    model: str
    url: str = OPENROUTER_URL
    timeout_seconds: float = REQUEST_TIMEOUT

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str],
        *,
        model: str | None = None,
        timeout_seconds: float = REQUEST_TIMEOUT,
    ) -> "LlmClient":
        api_key, resolved_model, url = resolve_provider(env, model)
        return cls(api_key=api_key, model=resolved_model, url=url, timeout_seconds=timeout_seconds)

    def chat(self, system: str, user: str) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        req = urllib.request.Request(
            self.url,
            data=json.dumps(payload).encode(),
            method="POST",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                data = json.loads(resp.read())
        except urllib.error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")
            raise SuggestionError(f"HTTP {exc.code} from model API: {body}") from exc
        except urllib.error.URLError as exc:
            raise SuggestionError(f"model API request failed: {exc.reason}") from exc
        except (TimeoutError, socket.timeout) as exc:
            raise SuggestionError(f"model API timed out after {self.timeout_seconds}s") from exc
        except json.JSONDecodeError as exc:
            raise SuggestionError(f"invalid JSON from model API: {exc}") from exc
        return extract_message(data)

    def generate(self, prompt: str, context: str) -> str:
        """Instructions go in the system turn, the diff in the user turn."""
        return self.chat(prompt, context)
