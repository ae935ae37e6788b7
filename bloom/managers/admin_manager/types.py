"""
Admin Manager Type Definitions
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_MAINTENANCE_REASON = "System maintenance"


@dataclass(frozen=True)
class InstanceSwitchResult:
    """Outcome of a manual active-instance switch"""
    previous_instance_id: Optional[str]
    new_instance_id: str

    @property
    def changed(self) -> bool:
        return self.previous_instance_id != self.new_instance_id
