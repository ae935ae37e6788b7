"""
Admin Manager - owner commands

Manual active-instance switch ('bloom <instance>') and maintenance mode
('maintenance [reason]'). Both write the shared settings document.
"""

from typing import Optional, TYPE_CHECKING

from bloom.errors import StoreError, UnknownInstanceError
from bloom.managers.message_manager import InboundMessage, Reply
from bloom.managers.store_manager import GlobalSettings, utcnow
from .types import DEFAULT_MAINTENANCE_REASON, InstanceSwitchResult

if TYPE_CHECKING:
    from bloom.context import BloomContext
    from bloom.managers.message_manager import MessageRouter
    from bloom.managers.notification_manager import NotificationManager
    from bloom.managers.rotation_manager import RotationManager


class AdminManager:
    """
    Administrative operations on the shared settings document

    Responsibilities:
    - Switch the active instance by hand (validated against the registry)
    - Toggle maintenance mode with an optional reason
    - Expose both as owner-only chat commands
    """

    def __init__(self,
                 context: 'BloomContext',
                 rotation: 'RotationManager',
                 notifications: Optional['NotificationManager'] = None,
                 logger=None):
        self.context = context
        self.rotation = rotation
        self.notifications = notifications
        self.store = context.store
        self.logger = logger or context.get_logger("admin")

    def register_commands(self, router: 'MessageRouter') -> None:
        router.register_command("bloom", self.handle_bloom_command, owner_only=True)
        router.register_command("maintenance", self.handle_maintenance_command, owner_only=True)

    async def set_active_instance(self, target: str) -> InstanceSwitchResult:
        """
        Make target the active instance

        Raises:
            UnknownInstanceError: If target is not a registered instance
            StoreError: If the settings document cannot be written
        """
        descriptor = self.context.registry.get(target.lower())
        previous_id = await self.rotation.get_current_active_instance()
        await self.store.upsert_global_settings({"active_instance_id": descriptor.id})
        self.logger.info(f"🔀 [ADMIN] Active instance switched from {previous_id} to {descriptor.id}")

        # The new instance gets a full rotation period
        if self.rotation.is_running():
            self.rotation.reset_rotation_timer(descriptor.rotation_period)

        result = InstanceSwitchResult(previous_instance_id=previous_id, new_instance_id=descriptor.id)
        if self.notifications and result.changed:
            await self.notifications.notify_instance_switched(previous_id, descriptor.id)
        return result

    async def set_maintenance(self, enabled: bool, reason: str = "") -> GlobalSettings:
        """
        Turn maintenance mode on or off

        Enabling without a reason stores the default reason; disabling clears it.
        """
        if enabled:
            reason = reason.strip() or DEFAULT_MAINTENANCE_REASON
        else:
            reason = ""
        settings = await self.store.upsert_global_settings({
            "maintenance_mode": enabled,
            "maintenance_reason": reason,
            "last_maintenance_update": utcnow(),
        })
        state = f"enabled ({reason})" if enabled else "disabled"
        self.logger.info(f"🛠️ [ADMIN] Maintenance mode {state}")
        if self.notifications:
            await self.notifications.notify_maintenance(enabled, reason)
        return settings

    async def toggle_maintenance(self, reason: str = "") -> GlobalSettings:
        current = await self.store.find_global_settings()
        enabled = not (current.maintenance_mode if current else False)
        return await self.set_maintenance(enabled, reason)

    # =================== CHAT COMMANDS ===================

    def _usage(self) -> str:
        lines = [
            "┌──── ⚙️ Instance Control ────",
            f"├ Usage: {self.context.settings.prefix}bloom <instance>",
            "├ Available instances:",
        ]
        ids = self.context.registry.ids()
        lines.extend(f"├ • {instance_id}" for instance_id in ids[:-1])
        lines.append(f"└─ • {ids[-1]}")
        return "\n".join(lines)

    async def handle_bloom_command(self, message: InboundMessage, reply: Reply) -> None:
        target = message.args[0].lower() if message.args else ""
        if not target or target not in self.context.registry:
            await reply(self._usage())
            return

        try:
            result = await self.set_active_instance(target)
        except (StoreError, UnknownInstanceError) as e:
            self.logger.error(f"❌ [ADMIN] Instance switch to {target} failed: {e}")
            await reply("┌──── ❌ Error ────\n└─ Failed to update instance state")
            return

        await reply(
            f"┌──── ⚙️ Instance Update ────\n"
            f"├ Previous active: {result.previous_instance_id}\n"
            f"└─ Now active: {result.new_instance_id}"
        )

    async def handle_maintenance_command(self, message: InboundMessage, reply: Reply) -> None:
        try:
            settings = await self.toggle_maintenance(" ".join(message.args))
        except StoreError as e:
            self.logger.error(f"❌ [ADMIN] Maintenance toggle failed: {e}")
            await reply("❌ Database Error: Could not update maintenance mode.")
            return

        if settings.maintenance_mode:
            await reply(
                f"🔧 *Maintenance Mode Enabled*\n\n"
                f"*Reason:* {settings.maintenance_reason}\n\n"
                f"_Only bot owners can use commands during maintenance._"
            )
        else:
            await reply("✅ *Maintenance Mode Disabled*\n\n_Bot is now accessible to all users._")
