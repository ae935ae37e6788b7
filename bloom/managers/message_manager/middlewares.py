"""
Message gating middlewares

Each middleware returns True to let the message continue. They run in
order: maintenance first, then the active-instance check.
"""

from typing import TYPE_CHECKING

from .types import InboundMessage

if TYPE_CHECKING:
    from .main import MessageRouter

# Always reaches the command handler so owners can switch the active instance
INSTANCE_SWITCH_COMMAND = "bloom"


def format_maintenance_notice(reason: str) -> str:
    if reason:
        return f"🔧 *Bot is currently under maintenance*\n\n_Reason: {reason}_"
    return "🔧 *Bot is currently under maintenance*\nPlease try again later."


async def maintenance_middleware(router: 'MessageRouter', message: InboundMessage) -> bool:
    """
    Only owners get through while maintenance mode is on

    Fails open: if the settings cannot be read the message is allowed.
    """
    try:
        resources = await router.context.resource_cache.get(message.instance_id)
        settings = await resources.settings.get()
    except Exception as e:
        router.logger.error(f"❌ [MESSAGES] Maintenance check failed on {message.instance_id}: {e}")
        return True

    if settings is None or not settings.maintenance_mode:
        return True
    if router.is_owner(message.sender):
        return True

    if message.is_command:
        await router.reply(message, format_maintenance_notice(settings.maintenance_reason))
    return False


async def instance_check_middleware(router: 'MessageRouter', message: InboundMessage) -> bool:
    """
    Only the active instance processes messages

    A missing or unknown stored pointer is resolved through the router's
    active instance provider, which also persists the correction.
    Fails closed: if the active instance cannot be determined nothing runs.
    """
    if message.command == INSTANCE_SWITCH_COMMAND:
        return True

    try:
        resources = await router.context.resource_cache.get(message.instance_id)
        settings = await resources.settings.get()
        active_id = settings.active_instance_id if settings else None
        if active_id is None or active_id not in router.context.registry:
            if router.active_instance_provider is not None:
                active_id = await router.active_instance_provider()
            else:
                active_id = router.context.registry.default().id
    except Exception as e:
        router.logger.error(f"❌ [MESSAGES] Instance check failed on {message.instance_id}: {e}")
        return False

    return active_id == message.instance_id
