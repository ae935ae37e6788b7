"""
File + console logger used by LoggingManager.

Each BloomLogger writes to its own file under the log directory and mirrors
to the console with a short "Bloom:" prefix.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

LOG_DIR = os.getenv("BLOOM_LOG_DIR", "logs")
LOG_FORMAT = "Bloom: %(asctime)s | [%(name)s] %(levelname)s - %(message)s"


class BloomLogger:
    """
    Thin wrapper around a stdlib logger bound to one log file
    """

    def __init__(self, log_filename: str, log_dir: str = None, level: int = logging.INFO, console: bool = True):
        self.log_dir = log_dir or LOG_DIR
        self.log_filename = log_filename
        self.name = os.path.splitext(log_filename)[0]

        self._logger = logging.getLogger(f"bloom.file.{self.name}")
        self._logger.setLevel(level)
        self._logger.propagate = False

        # Loggers are process-global; only attach handlers the first time
        if not self._logger.handlers:
            os.makedirs(self.log_dir, exist_ok=True)
            formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

            file_handler = RotatingFileHandler(
                os.path.join(self.log_dir, log_filename),
                maxBytes=5 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            self._logger.addHandler(file_handler)

            if console:
                console_handler = logging.StreamHandler()
                console_handler.setFormatter(formatter)
                self._logger.addHandler(console_handler)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def debug(self, message: str):
        self._logger.debug(message)

    def info(self, message: str):
        self._logger.info(message)

    def warning(self, message: str):
        self._logger.warning(message)

    def error(self, message: str):
        self._logger.error(message)

    def exception(self, message: str):
        self._logger.exception(message)
