"""
Rotation Manager Type Definitions
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Optional

ROTATION_TIMER_KEY = "rotation"

# Observer: (previous_instance_id, new_instance_id)
RotationObserver = Callable[[str, str], Awaitable[None]]


class RotationStatus(Enum):
    """What a rotate_instance() call did"""
    ROTATED = "rotated"
    SKIPPED_IN_FLIGHT = "skipped_in_flight"
    SKIPPED_DISABLED = "skipped_disabled"
    HEALED = "healed"
    FAILED = "failed"


@dataclass(frozen=True)
class RotationResult:
    status: RotationStatus
    previous_instance_id: Optional[str] = None
    new_instance_id: Optional[str] = None
    rotated_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def changed(self) -> bool:
        """True when the active-instance pointer was written"""
        return self.status in (RotationStatus.ROTATED, RotationStatus.HEALED)
