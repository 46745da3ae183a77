"""OpenAI chat-completions client and prompt registry for structured extraction."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Protocol
from urllib import error as urllib_error
from urllib import request as urllib_request

from lifelog.config import get_settings

logger = logging.getLogger(__name__)

_PROMPT_DIR = Path(__file__).resolve().parent / "prompts"
_PROMPT_FILES: dict[str, Path] = {
    name: _PROMPT_DIR / f"{name}.txt"
    for name in (
        "classify",
        "meal",
        "expense",
        "income",
        "event",
        "reminder",
        "activity",
        "work_session",
        "calorie_adjustment",
        "translate",
        "title",
        "portion",
    )
}


class LLMError(RuntimeError):
    """Raised when the model is misconfigured, unreachable, or returns an unusable response."""


class LLMClient(Protocol):
    """Protocol for pluggable chat models that return one JSON object per call."""

    def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        json_schema: dict[str, Any],
    ) -> dict[str, Any]:
        """Return the model's JSON object for the prompt pair."""


@dataclass(slots=True)
class OpenAIChatCompletionsClient:
    """Minimal OpenAI Chat Completions client using stdlib HTTP."""

    api_key: str
    model: str
    base_url: str = "https://api.openai.com/v1"
    timeout_seconds: int = 30

    def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        json_schema: dict[str, Any],
    ) -> dict[str, Any]:
        """Call OpenAI with a strict JSON schema and return the decoded object."""

        payload = {
            "model": self.model,
            "temperature": 0,
            "response_format": {
                "type": "json_schema",
                "json_schema": json_schema,
            },
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        url = f"{self.base_url.rstrip('/')}/chat/completions"
        req = urllib_request.Request(
            url=url,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )

        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
        except urllib_error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise LLMError(f"OpenAI HTTP {exc.code}: {detail}") from exc
        except urllib_error.URLError as exc:
            raise LLMError(f"OpenAI request failed: {exc.reason}") from exc

        try:
            decoded = json.loads(raw)
            message = decoded["choices"][0]["message"]
            refusal = message.get("refusal")
            if isinstance(refusal, str) and refusal.strip():
                raise LLMError(f"OpenAI refused the request: {refusal.strip()}")
            content = message["content"]
            if not isinstance(content, str):
                raise TypeError("OpenAI response content is not a string")
            result = json.loads(content)
            if not isinstance(result, dict):
                raise TypeError("OpenAI response content is not a JSON object")
            return result
        except LLMError:
            raise
        except (KeyError, IndexError, TypeError, json.JSONDecodeError) as exc:
            raise LLMError("OpenAI returned an unexpected or non-JSON response") from exc


@lru_cache(maxsize=16)
def load_prompt(name: str) -> str:
    prompt_file = _PROMPT_FILES.get(name)
    if prompt_file is None:
        raise LLMError(f"Prompt is not registered: {name}")
    try:
        prompt_text = prompt_file.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise LLMError(f"Failed to load prompt file: {prompt_file}") from exc
    if not prompt_text:
        raise LLMError(f"Prompt file is empty: {prompt_file}")
    return prompt_text


def strict_schema(name: str, properties: dict[str, Any]) -> dict[str, Any]:
    """Wrap flat ``properties`` into an OpenAI strict ``json_schema`` block."""

    return {
        "name": name,
        "strict": True,
        "schema": {
            "type": "object",
            "additionalProperties": False,
            "properties": properties,
            "required": list(properties),
        },
    }


def get_default_llm_client() -> LLMClient | None:
    """Return the configured client, or None when no API key is set."""

    settings = get_settings()
    if not settings.openai_api_key:
        logger.info("llm.disabled reason=missing_api_key")
        return None
    return OpenAIChatCompletionsClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        timeout_seconds=settings.openai_timeout_seconds,
    )
