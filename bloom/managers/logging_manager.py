import os
import logging
from typing import Dict, List, Optional

from logtail import LogtailHandler

from bloom.lib.utils.logging import BloomLogger


class CombinedLogger:
    """
    Logger that combines file logging and logtail logging
    """
    def __init__(self, file_logger, logtail_logger):
        self.file_logger = file_logger
        self.logtail_logger = logtail_logger

    def info(self, message):
        self.file_logger.info(message)
        if self.logtail_logger:
            self.logtail_logger.info(message)

    def error(self, message):
        self.file_logger.error(message)
        if self.logtail_logger:
            self.logtail_logger.error(message)

    def warning(self, message):
        self.file_logger.warning(message)
        if self.logtail_logger:
            self.logtail_logger.warning(message)

    def debug(self, message):
        self.file_logger.debug(message)
        if self.logtail_logger:
            self.logtail_logger.debug(message)


class LoggingManager:
    """
    Centralized logging management for Bloom.

    Handles creation and management of:
    - Main logger (logs/main.log)
    - Per-instance loggers (logs/<instance>.log)
    - Manager-specific loggers (rotation_manager, startup_manager, ...)
    - Optional logtail remote aggregation
    """

    def __init__(self, bot_name: str = "Bloom", version: str = "1.0.0", log_dir: Optional[str] = None):
        self.bot_name = bot_name
        self.version = version
        self.log_dir = log_dir

        # Logger storage
        self._main_logger: Optional[BloomLogger] = None
        self._instance_loggers: Dict[str, BloomLogger] = {}
        self._manager_loggers: Dict[str, CombinedLogger] = {}
        self._logtail_logger: Optional[logging.Logger] = None
        self._combined_logger: Optional[CombinedLogger] = None

        # Initialize loggers
        self._setup_main_logger()
        self._setup_logtail_logger()
        self._setup_combined_logger()

    def _setup_main_logger(self):
        """Setup the main bot logger"""
        self._main_logger = BloomLogger("main.log", log_dir=self.log_dir)
        self._main_logger.info("🚀 LoggingManager initialized")
        self._main_logger.info(f"📋 Bot: {self.bot_name}")
        self._main_logger.info(f"📋 Version: {self.version}")

    def _setup_logtail_logger(self):
        """Setup logtail logging for remote log aggregation"""
        source_token = os.getenv('LOGTAIL_SOURCE_TOKEN')
        host = os.getenv('LOGTAIL_HOST')

        if not (source_token and host):
            missing = [name for name, value in (("LOGTAIL_SOURCE_TOKEN", source_token), ("LOGTAIL_HOST", host)) if not value]
            self._main_logger.info(f"⚠️ Logtail disabled - missing {', '.join(missing)}")
            self._logtail_logger = None
            return

        logger = logging.getLogger("bloom.logtail")
        logger.handlers = []  # Clear existing handlers
        logger.setLevel(logging.DEBUG)
        logger.addHandler(LogtailHandler(source_token=source_token, host=host))
        logger.propagate = False

        self._main_logger.info("✅ Logtail handler added successfully!")
        self._logtail_logger = logger

    def _setup_combined_logger(self):
        """Setup combined logger that logs to both file and logtail"""
        self._combined_logger = CombinedLogger(self._main_logger, self._logtail_logger)
        self._combined_logger.info("✅ Combined logging (files + logtail) initialized")

    def get_main_logger(self) -> BloomLogger:
        """Get the main bot logger"""
        if not self._main_logger:
            raise RuntimeError("Main logger not initialized")
        return self._main_logger

    def get_combined_logger(self) -> CombinedLogger:
        """Get the combined logger that logs to both file and logtail"""
        if not self._combined_logger:
            raise RuntimeError("Combined logger not initialized")
        return self._combined_logger

    def is_logtail_enabled(self) -> bool:
        """Check if logtail integration is enabled"""
        return self._logtail_logger is not None

    def get_logtail_status(self) -> str:
        """Get a human-readable status of logtail integration"""
        return "✅ Enabled" if self.is_logtail_enabled() else "❌ Disabled (missing env vars)"

    def get_instance_logger(self, instance_id: str) -> BloomLogger:
        """
        Get or create the logger for a bot instance

        Args:
            instance_id: Instance id (e.g., 'bot1')

        Returns:
            BloomLogger writing to logs/<instance_id>.log
        """
        if instance_id not in self._instance_loggers:
            instance_logger = BloomLogger(f"{instance_id}.log", log_dir=self.log_dir, console=False)
            self._instance_loggers[instance_id] = instance_logger
            self._main_logger.info(f"📋 Created logger for {instance_id}: {instance_id}.log")
            instance_logger.info(f"🎯 {instance_id} logger initialized")
        return self._instance_loggers[instance_id]

    def get_manager_logger(self, manager_name: str) -> CombinedLogger:
        """
        Get or create a logger for a specific manager

        Args:
            manager_name: Name of the manager (e.g., 'rotation_manager', 'startup_manager')

        Returns:
            CombinedLogger writing to logs/<manager_name>.log and logtail
        """
        if manager_name not in self._manager_loggers:
            file_logger = BloomLogger(f"{manager_name}.log", log_dir=self.log_dir)
            self._manager_loggers[manager_name] = CombinedLogger(file_logger, self._logtail_logger)
            self._main_logger.info(f"📋 Created manager logger: {manager_name}.log")
        return self._manager_loggers[manager_name]

    def log_connection_event(self, instance_id: str, event_type: str, details: str = ""):
        """
        Log connection events to the main and instance loggers

        Args:
            instance_id: Instance the event belongs to
            event_type: 'connected', 'disconnected', 'logged_out', 'error'
            details: Additional details about the event
        """
        instance_logger = self.get_instance_logger(instance_id)
        if event_type == "connected":
            message = f"🔗 [{instance_id}] Connection established {details}"
            self._combined_logger.info(message)
        elif event_type == "disconnected":
            message = f"🔌 [{instance_id}] Connection lost {details}"
            self._combined_logger.warning(message)
        elif event_type == "logged_out":
            message = f"🚫 [{instance_id}] Logged out {details}"
            self._combined_logger.error(message)
        else:
            message = f"❌ [{instance_id}] Connection error: {details}"
            self._combined_logger.error(message)
        instance_logger.info(message)

    def get_active_instances(self) -> List[str]:
        """Get list of instances with loggers"""
        return list(self._instance_loggers.keys())

    def cleanup(self):
        """Flush logtail before shutdown"""
        if self._logtail_logger:
            for handler in self._logtail_logger.handlers:
                handler.flush()
        self._main_logger.info("🧹 LoggingManager cleanup complete")
