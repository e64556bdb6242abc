from __future__ import annotations

import json
import logging
from typing import Any

from groq import Groq

from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)


class LLMUnavailableError(Exception):
    """Raised when the LLM is disabled, unreachable, or answers with invalid JSON."""


def complete_json(
    prompt: str,
    model: str,
    temperature: float = 0.3,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> dict[str, Any]:
    """
    Send a single-message chat completion in JSON mode and parse the answer.

    Raises ``LLMUnavailableError`` on any failure so callers can switch to
    their rule-based fallback.
    """
    if not config.enabled or not config.api_key:
        raise LLMUnavailableError("LLM is disabled or has no API key")

    try:
        client = Groq(api_key=config.api_key, timeout=config.timeout)
        response = client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=config.max_tokens,
            temperature=temperature,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content or "{}"
        parsed = json.loads(content)
    except Exception as exc:
        raise LLMUnavailableError(f"Groq completion failed: {exc}") from exc

    if not isinstance(parsed, dict):
        raise LLMUnavailableError("Groq completion is not a JSON object")
    return parsed


def is_enabled(config: LLMConfig = DEFAULT_LLM_CONFIG) -> bool:
    return config.enabled and bool(config.api_key)
