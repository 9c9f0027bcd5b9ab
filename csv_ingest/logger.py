import logging
import os
from logging.handlers import RotatingFileHandler

from csv_ingest.config import load_env_file

__all__ = ["get_logger"]

ROOT_LOGGER_NAME = "csv_ingest"


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Return a logger under the package root. Safe to call multiple times (won't duplicate handlers).

    Handlers live on the "csv_ingest" logger only; module loggers such as
    "csv_ingest.ingest_pipeline" propagate to it.

    Configurable via environment variables (or .env, loaded first):
    - LOG_LEVEL: default INFO
    - CSV_INGEST_LOG_FILE: optional path to enable rotating file logging
    """
    _configure_root()
    return logging.getLogger(name)


def _configure_root() -> None:
    root = logging.getLogger(ROOT_LOGGER_NAME)

    # If handlers already configured, assume initialization was done elsewhere.
    if root.handlers:
        return

    load_env_file()
    level_name = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.INFO
    root.setLevel(level)

    fmt = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    root.addHandler(sh)

    log_file = os.getenv("CSV_INGEST_LOG_FILE")
    if log_file:
        try:
            fh = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8")
            fh.setFormatter(fmt)
            root.addHandler(fh)
        except OSError:
            # Keep console logging when the file cannot be opened.
            root.exception("Failed to create file log handler for %s", log_file)
