from .uptime_response import UptimeResponse
from .instance_status_response import InstanceStatusResponse, InstancesOverviewResponse

__all__ = [
    "UptimeResponse",
    "InstanceStatusResponse",
    "InstancesOverviewResponse",
]
