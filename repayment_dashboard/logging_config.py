"""Console logging setup shared by the CLI and the Streamlit app."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int | str = logging.INFO) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    # Reset any existing handlers
    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)

    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, handlers=[handler])

    # Set levels for noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
