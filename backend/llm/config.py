from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class LLMConfig:
    api_key: str = os.getenv("GROQ_API_KEY", "")
    pricing_model: str = "llama-3.3-70b-versatile"
    description_model: str = "llama-3.1-8b-instant"
    timeout: float = 20.0
    max_tokens: int = 1500
    enabled: bool = os.getenv("LLM_ENABLED", "true").lower() == "true"


DEFAULT_LLM_CONFIG = LLMConfig()
