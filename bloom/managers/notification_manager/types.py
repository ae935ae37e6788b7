"""
Notification Manager Type Definitions

Defines types and enums for logs-chat notifications.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, Optional
from datetime import datetime


class NotificationLevel(Enum):
    """Notification severity levels"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class EventType(Enum):
    """Coordination events that can trigger notifications"""
    # Rotation events
    INSTANCE_ROTATED = "instance_rotated"
    INSTANCE_SWITCHED = "instance_switched"

    # Connection events
    INSTANCE_ONLINE = "instance_online"
    CONNECTION_RESTORED = "connection_restored"
    LOGGED_OUT = "logged_out"

    # System events
    STARTUP_COMPLETE = "startup_complete"
    MAINTENANCE_CHANGED = "maintenance_changed"
    ERROR_OCCURRED = "error_occurred"


@dataclass(frozen=True)
class NotificationEvent:
    """Container for notification event data"""
    event_type: EventType
    level: NotificationLevel
    title: str
    bot_name: str
    timestamp: datetime
    instance_id: Optional[str] = None
    details: Dict[str, str] = field(default_factory=dict)
    message: Optional[str] = None
    error_details: Optional[str] = None
