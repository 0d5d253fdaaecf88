from __future__ import annotations

import logging
import os
from pathlib import Path

from concurrent_log_handler import ConcurrentRotatingFileHandler

PACKAGE_LOGGER_NAME = "totalbuilder"
DEFAULT_LOG_LEVEL_NAME = "INFO"
LOG_LEVEL_NAMES = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
LOG_MAX_FILES_ROTATION = 4
LOG_MAX_BYTES_ROTATION = 25 * 1024 * 1024


def normalize_log_level_name(log_level: str | None) -> str:
    normalized = str(log_level or "").strip().upper()
    if normalized not in LOG_LEVEL_NAMES:
        return DEFAULT_LOG_LEVEL_NAME
    return normalized


def log_file_path(*, home_dir: str | Path, service_name: str) -> Path:
    """Return ``<home_dir>/logs/<service_name>.log``."""
    return (Path(home_dir).expanduser() / "logs" / f"{service_name}.log").resolve()


def attach_file_logging(
    *,
    service_name: str,
    home_dir: str | Path,
    log_level: str | None,
    handler: ConcurrentRotatingFileHandler | None = None,
) -> ConcurrentRotatingFileHandler:
    """Route the ``totalbuilder`` logger tree to a rotating file under ``home_dir``.

    Passing back a previously returned handler only re-applies the level, so
    repeated calls never stack handlers.
    """
    level = getattr(logging, normalize_log_level_name(log_level))
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if handler is None:
        path = log_file_path(home_dir=home_dir, service_name=service_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = ConcurrentRotatingFileHandler(
            os.fspath(path),
            "a",
            maxBytes=LOG_MAX_BYTES_ROTATION,
            backupCount=LOG_MAX_FILES_ROTATION,
            use_gzip=False,
        )
        handler.setFormatter(
            logging.Formatter(
                fmt=f"%(asctime)s {service_name} %(name)s: %(levelname)-8s %(message)s",
                datefmt=LOG_DATE_FORMAT,
            )
        )
        package_logger.addHandler(handler)
    handler.setLevel(level)
    package_logger.setLevel(level)
    return handler
