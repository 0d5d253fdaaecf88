from __future__ import annotations

import logging

from concurrent_log_handler import ConcurrentRotatingFileHandler

from totalbuilder.logging_setup import PACKAGE_LOGGER_NAME


def detach_file_logging(*, cli_module=None) -> None:
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    for handler in list(package_logger.handlers):
        if isinstance(handler, ConcurrentRotatingFileHandler):
            package_logger.removeHandler(handler)
            handler.close()
    package_logger.setLevel(logging.NOTSET)
    if cli_module is not None:
        cli_module._cli_file_log_handler = None
