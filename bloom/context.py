"""
Bloom process context

Owns the shared, process-scoped pieces every component needs: settings,
instance registry, scheduler, session store, resource cache and the
per-instance connection state map. Tests build a fresh context per test.
"""

import logging
from typing import Dict, Optional, TYPE_CHECKING

from bloom.lib.config import BloomSettings
from bloom.managers.instance_registry import InstanceRegistry
from bloom.managers.resource_manager import InstanceResourceCache
from bloom.managers.scheduler_manager import Scheduler
from bloom.managers.store_manager import SessionStore

if TYPE_CHECKING:
    from bloom.managers.connection_manager.types import ConnectionState
    from bloom.managers.logging_manager import LoggingManager


class BloomContext:
    """Shared state passed to every manager constructor"""

    def __init__(self,
                 settings: BloomSettings,
                 store: SessionStore,
                 logging_manager: Optional['LoggingManager'] = None,
                 scheduler: Optional[Scheduler] = None):
        self.settings = settings
        self.store = store
        self.logging_manager = logging_manager
        self.logger = logging_manager.get_main_logger() if logging_manager else logging.getLogger("bloom")

        self.registry = InstanceRegistry(settings.instances)
        self.scheduler = scheduler or Scheduler(logger=self.get_logger("scheduler"))
        self.resource_cache = InstanceResourceCache(store, logger=self.get_logger("resources"))
        self.connection_states: Dict[str, 'ConnectionState'] = {}

    def get_logger(self, name: str):
        """Manager logger from the LoggingManager, or a plain bloom.<name> logger"""
        if self.logging_manager:
            return self.logging_manager.get_manager_logger(name)
        return logging.getLogger(f"bloom.{name}")

    @property
    def primary_instance_id(self) -> str:
        """Instance allowed to post the one-time online announcement"""
        return self.settings.rotation.primary_instance_id or self.registry.default().id
