"""
Notification Manager - logs-chat notifications

Sends coordination events to the logs chat configured for each instance.
Messages go out through the instance's own live session, so an instance
that is not connected simply gets nothing.

Responsibilities:
- Format events as box-drawing chat messages
- Deliver to one instance or broadcast to every connected instance
- Filter by level and the NOTIFICATIONS_ENABLED switch
- Never raise: delivery failures are logged and reported as False
"""

from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from bloom.lib.config import InstanceDescriptor
from .types import NotificationEvent, NotificationLevel, EventType
from .utils import format_chat_message, should_send_notification

if TYPE_CHECKING:
    from bloom.context import BloomContext
    from bloom.managers.connection_manager import ConnectionSupervisor


class NotificationManager:
    """
    Manages notification delivery for coordination events

    Responsibilities:
    - Send notices to instance logs chats
    - Provide convenience methods for common events
    """

    def __init__(self,
                 context: 'BloomContext',
                 supervisor: 'ConnectionSupervisor',
                 logger=None,
                 min_level: NotificationLevel = NotificationLevel.INFO):
        """
        Initialize Notification Manager

        Args:
            context: Process context (registry, notification settings)
            supervisor: Connection supervisor used to reach live sessions
            logger: Logger for delivery errors
            min_level: Lowest level that is delivered
        """
        self.context = context
        self.supervisor = supervisor
        self.logger = logger or context.get_logger("notifications")
        self.settings = context.settings.notifications
        self.enabled: bool = self.settings.enabled
        self.bot_name: str = self.settings.bot_name
        self.min_level: NotificationLevel = min_level

        chats = [d.id for d in context.registry if d.logs_chat]
        if self.enabled and not chats:
            self.logger.warning("⚠️ [NOTIFICATIONS] No logs chat configured - notifications disabled")
            self.enabled = False
        elif self.enabled:
            self.logger.info(f"✅ [NOTIFICATIONS] Logs-chat notifications enabled for {', '.join(chats)}")

    def _event(self, event_type: EventType, level: NotificationLevel, title: str, **kwargs) -> NotificationEvent:
        return NotificationEvent(
            event_type=event_type,
            level=level,
            title=title,
            bot_name=self.bot_name,
            timestamp=datetime.now(),
            **kwargs
        )

    async def send_notification(self, event: NotificationEvent, instance_id: str) -> bool:
        """
        Send event to instance_id's logs chat

        Args:
            event: NotificationEvent to send
            instance_id: Instance whose session and logs chat are used

        Returns:
            True if the message was handed to the transport
        """
        if not self.enabled:
            return False

        if not should_send_notification(event, self.min_level):
            self.logger.debug(f"🔇 [NOTIFICATIONS] Skipping notification - below min level {self.min_level.value}")
            return False

        descriptor = self.context.registry.find(instance_id)
        if descriptor is None or not descriptor.logs_chat:
            return False
        if not self.supervisor.is_connected(instance_id):
            self.logger.debug(f"🔇 [NOTIFICATIONS] {instance_id} not connected, skipping {event.event_type.value}")
            return False

        try:
            await self.supervisor.send(instance_id, descriptor.logs_chat, {"text": format_chat_message(event)})
            self.logger.info(f"📤 [NOTIFICATIONS] Sent {event.event_type.value} notification via {instance_id}")
            return True
        except Exception as e:
            self.logger.error(f"❌ [NOTIFICATIONS] Error sending {event.event_type.value} via {instance_id}: {e}")
            return False

    async def broadcast(self, event: NotificationEvent) -> List[str]:
        """Send event through every connected instance; returns the ids that delivered"""
        delivered = []
        for descriptor in self.context.registry:
            if await self.send_notification(event, descriptor.id):
                delivered.append(descriptor.id)
        return delivered

    # Convenience methods for common events
    async def notify_rotation(self, previous_id: str, new_id: str) -> List[str]:
        """Rotation observer: tell every logs chat about the new active instance"""
        descriptor = self.context.registry.find(new_id)
        details = {"New Active": new_id, "Previous": previous_id}
        if descriptor is not None:
            details["Next Rotation"] = f"{descriptor.rotation_hours:g} hours"
        event = self._event(EventType.INSTANCE_ROTATED, NotificationLevel.INFO, "Instance Rotation", details=details)
        return await self.broadcast(event)

    async def notify_instance_switched(self, previous_id: Optional[str], new_id: str) -> List[str]:
        """Manual switch by an owner"""
        event = self._event(
            EventType.INSTANCE_SWITCHED, NotificationLevel.INFO, "Instance Switch",
            details={"New Active": new_id, "Previous": previous_id or "none"}
        )
        return await self.broadcast(event)

    async def notify_online(self, descriptor: InstanceDescriptor) -> bool:
        """One-time online announcement of the primary instance"""
        event = self._event(
            EventType.INSTANCE_ONLINE, NotificationLevel.INFO, f"{self.bot_name} Online",
            instance_id=descriptor.id,
            message=f"{self.settings.emoji} {self.bot_name} is connected and active",
        )
        return await self.send_notification(event, descriptor.id)

    async def notify_startup_complete(self, summary: str) -> List[str]:
        event = self._event(
            EventType.STARTUP_COMPLETE, NotificationLevel.INFO, "Startup Complete", message=summary
        )
        return await self.broadcast(event)

    async def notify_connection_restored(self, instance_id: str) -> bool:
        event = self._event(
            EventType.CONNECTION_RESTORED, NotificationLevel.INFO, "Connection Restored", instance_id=instance_id
        )
        return await self.send_notification(event, instance_id)

    async def notify_logged_out(self, instance_id: str) -> List[str]:
        """An instance lost its session; announce through the others"""
        event = self._event(
            EventType.LOGGED_OUT, NotificationLevel.CRITICAL, "Instance Logged Out",
            instance_id=instance_id, message="Session must be paired again",
        )
        return await self.broadcast(event)

    async def notify_critical_error(self, error_message: str, error_details: Optional[str] = None) -> List[str]:
        event = self._event(
            EventType.ERROR_OCCURRED, NotificationLevel.CRITICAL, "Critical Error",
            message=error_message, error_details=error_details,
        )
        return await self.broadcast(event)

    async def notify_maintenance(self, enabled: bool, reason: str = "") -> List[str]:
        details = {"Mode": "ON" if enabled else "OFF"}
        if reason:
            details["Reason"] = reason
        event = self._event(
            EventType.MAINTENANCE_CHANGED, NotificationLevel.WARNING, "Maintenance Mode", details=details
        )
        return await self.broadcast(event)

    def is_enabled(self) -> bool:
        """Check if notifications are enabled"""
        return self.enabled

    def get_status(self) -> str:
        """Get human-readable notification status"""
        if not self.settings.enabled:
            return "❌ Disabled"
        elif not self.enabled:
            return "❌ No logs chat configured"
        else:
            return "✅ Enabled"
