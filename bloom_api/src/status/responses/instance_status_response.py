from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class InstanceStatusResponse(BaseModel):
    """Supervisor view of one instance"""
    id: str
    priority: int
    rotation_hours: float

    # Connection state
    status: str
    connected: bool
    attempt_count: int
    last_attempt_at: Optional[datetime] = None
    last_error: Optional[str] = None

    # Rotation / resources
    is_active_instance: bool
    resources_cached: bool


class InstancesOverviewResponse(BaseModel):
    """Active instance, rotation countdown and every instance's state"""
    active_instance_id: str
    rotation_running: bool
    hours_until_next_rotation: Optional[int] = None
    instances: List[InstanceStatusResponse]
