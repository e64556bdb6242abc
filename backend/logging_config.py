"""Logging setup for the ``backend`` logger hierarchy.

Every module logs through ``logging.getLogger(__name__)``, so attaching
handlers to the ``backend`` logger once is enough to route all output.
When ``LOG_DIR`` is set, each launch also writes a timestamped log file
(e.g. ``logs/run_20260214_153045.log``).
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

_DETAILED_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s:%(funcName)s:%(lineno)d | "
    "%(message)s"
)

_CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str | None = None,
    log_dir: str | Path | None = None,
) -> Path | None:
    """Attach console (and optionally file) handlers to the ``backend`` logger.

    Returns the path of the log file created for this run, or ``None`` when
    only console logging is configured.
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_dir = log_dir or os.getenv("LOG_DIR") or None

    root_logger = logging.getLogger("backend")
    root_logger.setLevel(level_name)

    # Prevent duplicate handlers on repeated calls (e.g. app reloads)
    if root_logger.handlers:
        return None

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level_name)
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt=_DATE_FORMAT))
    root_logger.addHandler(console_handler)

    log_file: Path | None = None
    if log_dir:
        logs_path = Path(log_dir)
        logs_path.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = logs_path / f"run_{timestamp}.log"

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_DETAILED_FORMAT, datefmt=_DATE_FORMAT))
        root_logger.addHandler(file_handler)

    root_logger.info("Logging initialised at %s (file: %s)", level_name, log_file)
    return log_file
