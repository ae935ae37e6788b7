"""
Resource Manager Package

Per-instance data accessors, memoized by instance id.

Structure:
- main.py: InstanceResourceCache
- types.py: InstanceResources bundle and accessor classes
"""

from .main import InstanceResourceCache
from .types import (
    FEATURE_COLLECTIONS, InstanceResources, GlobalSettingsAccessor,
    InstanceCredentialsAccessor, instance_namespace
)

__all__ = [
    'InstanceResourceCache', 'InstanceResources', 'GlobalSettingsAccessor',
    'InstanceCredentialsAccessor', 'FEATURE_COLLECTIONS', 'instance_namespace',
]
