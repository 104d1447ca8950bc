"""Logging setup for the launcher scripts.

Library modules only ever call ``logging.getLogger(__name__)``; handlers and
levels are configured once here by whichever entry point runs.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path | str] = None,
    debug_analysis: bool = False,
) -> None:
    """Configure the root logger with a console handler and an optional file.

    Args:
        level: Base log level.
        log_file: Also write logs here (parent directories are created).
        debug_analysis: Let per-frame analyzer diagnostics through at DEBUG.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if debug_analysis:
        logging.getLogger("sitright.analyzer").setLevel(logging.DEBUG)

    # MediaPipe / absl are chatty at INFO
    logging.getLogger("absl").setLevel(logging.WARNING)
