from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_STORE_PATH = os.getenv("STORE_PATH", "")


@dataclass(frozen=True)
class StoreConfig:
    path: Path | None = Path(_STORE_PATH) if _STORE_PATH else None


DEFAULT_STORE_CONFIG = StoreConfig()
