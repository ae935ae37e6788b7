"""
Status service

Builds the read-only status responses. Everything here is cheap: cached
state only, one settings read, never constructs resource bundles.
"""

from typing import TYPE_CHECKING

from bloom.managers.connection_manager import ConnectionStatus
from ..responses import InstanceStatusResponse, InstancesOverviewResponse, UptimeResponse

if TYPE_CHECKING:
    from bloom.bot import Bloom


class StatusService:

    def get_uptime(self, bloom: 'Bloom') -> UptimeResponse:
        total = int(bloom.uptime_seconds())
        days, remainder = divmod(total, 86400)
        hours, remainder = divmod(remainder, 3600)
        minutes, seconds = divmod(remainder, 60)
        return UptimeResponse(days=days, hours=hours, minutes=minutes, seconds=seconds)

    def get_status_text(self, bloom: 'Bloom') -> str:
        return f"✅ {bloom.settings.notifications.bot_name} bot is online"

    async def get_instances(self, bloom: 'Bloom') -> InstancesOverviewResponse:
        active_id = await bloom.rotation.get_current_active_instance()
        cache = bloom.context.resource_cache

        instances = []
        for descriptor in bloom.context.registry:
            state = bloom.supervisor.get_state(descriptor.id)
            instances.append(InstanceStatusResponse(
                id=descriptor.id,
                priority=descriptor.priority,
                rotation_hours=descriptor.rotation_hours,
                status=state.status.value if state else ConnectionStatus.IDLE.value,
                connected=bloom.supervisor.is_connected(descriptor.id),
                attempt_count=state.attempt_count if state else 0,
                last_attempt_at=state.last_attempt_at if state else None,
                last_error=state.last_error if state else None,
                is_active_instance=descriptor.id == active_id,
                resources_cached=cache.peek(descriptor.id) is not None,
            ))

        return InstancesOverviewResponse(
            active_instance_id=active_id,
            rotation_running=bloom.rotation.is_running(),
            hours_until_next_rotation=bloom.rotation.hours_until_next_rotation(),
            instances=instances,
        )


status_service = StatusService()
