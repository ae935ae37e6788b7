"""
Bloom Managers Package

This package contains all the specialized manager classes that handle
specific concerns for the multi-instance bot, promoting clean separation
of concerns.

Available Managers:
- InstanceRegistry: Priority-ordered instance lookup
- Scheduler: Keyed timers (rotation, reconnects)
- LoggingManager: Centralized logging management and setup
- SqlAlchemySessionStore (store_manager): Credentials, settings and documents
- InstanceResourceCache (resource_manager): Per-instance data accessors
- CredentialsManager: Local/store/remote session bootstrap
- ConnectionSupervisor (connection_manager): Reconnect state machine
- StartupManager: Priority-ordered startup
- RotationManager: Active-instance rotation
- NotificationManager: Logs-chat notices
- MessageRouter (message_manager): Message gating and dispatch
- AdminManager: Owner commands
"""

from .instance_registry import InstanceRegistry
from .scheduler_manager import Scheduler
from .logging_manager import LoggingManager

__all__ = ['InstanceRegistry', 'Scheduler', 'LoggingManager']
