from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class SchedulerConfig:
    enabled: bool = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"
    update_cron: str = "0 */6 * * *"
    cleanup_cron: str = "0 2 * * *"
    listing_delay: float = 5.0  # seconds between scheduled listing updates
    alert_retention_days: int = 30
    max_price_history: int = 100


DEFAULT_SCHEDULER_CONFIG = SchedulerConfig()
