"""Logging configuration."""
import logging
from pathlib import Path

from rich.logging import RichHandler

# Third-party loggers that are chatty at INFO on every poll
QUIET_LOGGERS = ("schedule", "urllib3")


def setup_logging(level="INFO", log_file=None):
    """Configure the gwmonitor logger with a rich console handler and an optional file handler."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger("gwmonitor")
    root.setLevel(numeric_level)

    if not root.handlers:
        root.addHandler(RichHandler(level=numeric_level, rich_tracebacks=True, markup=False))

        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
            root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    return root
