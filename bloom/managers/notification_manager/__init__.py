"""
Notification Manager Package

Sends coordination events (rotation, online, connection trouble) to each
instance's logs chat through that instance's own transport session.

Structure:
- main.py: Core NotificationManager class and functionality
- types.py: Notification-specific type definitions
- utils.py: Helper functions for message formatting
"""

from .main import NotificationManager
from .types import NotificationEvent, NotificationLevel, EventType

__all__ = ['NotificationManager', 'NotificationEvent', 'NotificationLevel', 'EventType']
