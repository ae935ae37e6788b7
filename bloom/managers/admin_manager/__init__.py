"""
Admin Manager Package

Owner commands that write the shared settings document.

Structure:
- main.py: AdminManager (instance switch, maintenance mode)
- types.py: InstanceSwitchResult and defaults
"""

from .main import AdminManager
from .types import InstanceSwitchResult, DEFAULT_MAINTENANCE_REASON

__all__ = ['AdminManager', 'InstanceSwitchResult', 'DEFAULT_MAINTENANCE_REASON']
