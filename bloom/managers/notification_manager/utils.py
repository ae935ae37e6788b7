"""
Notification Manager Utilities

Helper functions for message formatting and notification filtering.
"""

from typing import Dict, List
from .types import NotificationEvent, NotificationLevel, EventType


EVENT_EMOJIS: Dict[EventType, str] = {
    EventType.INSTANCE_ROTATED: "🔄",
    EventType.INSTANCE_SWITCHED: "🔀",
    EventType.INSTANCE_ONLINE: "🌸",
    EventType.CONNECTION_RESTORED: "🔌",
    EventType.LOGGED_OUT: "🚫",
    EventType.STARTUP_COMPLETE: "🚀",
    EventType.MAINTENANCE_CHANGED: "🛠️",
    EventType.ERROR_OCCURRED: "💥",
}

LEVEL_PRIORITY: Dict[NotificationLevel, int] = {
    NotificationLevel.INFO: 1,
    NotificationLevel.WARNING: 2,
    NotificationLevel.ERROR: 3,
    NotificationLevel.CRITICAL: 4,
}


def format_chat_message(event: NotificationEvent) -> str:
    """
    Format a notification event as a box-drawing chat message

        ┌──── 🔄 Instance Rotation ────
        ├ New Active: bot2
        ├ Previous: bot1
        └─ Time: 2024-01-01 08:00:00

    Args:
        event: NotificationEvent to format

    Returns:
        Message text ready to send to a logs chat
    """
    emoji = EVENT_EMOJIS.get(event.event_type, "📢")
    rows: List[str] = []

    if event.instance_id:
        rows.append(f"Instance: {event.instance_id}")
    for key, value in event.details.items():
        rows.append(f"{key}: {value}")
    if event.message:
        rows.append(event.message)
    if event.error_details:
        rows.append(f"Error: {event.error_details}")
    rows.append(f"Time: {event.timestamp.strftime('%Y-%m-%d %H:%M:%S')}")

    lines = [f"┌──── {emoji} {event.title} ────"]
    lines.extend(f"├ {row}" for row in rows[:-1])
    lines.append(f"└─ {rows[-1]}")
    return "\n".join(lines)


def should_send_notification(event: NotificationEvent, min_level: NotificationLevel) -> bool:
    """True if event is at or above min_level"""
    return LEVEL_PRIORITY[event.level] >= LEVEL_PRIORITY[min_level]
