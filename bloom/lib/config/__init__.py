"""
Bloom configuration

Settings models live in settings_models.py; loader.py builds them from the
environment.
"""

from .settings_models import (
    InstanceDescriptor, StartupSettings, RotationSettings, ReconnectSettings,
    NotificationSettings, ServerSettings, BloomSettings, SESSION_TOKEN_MARKER
)
from .loader import get_bloom_settings, get_instance_descriptors

__all__ = [
    'InstanceDescriptor', 'StartupSettings', 'RotationSettings', 'ReconnectSettings',
    'NotificationSettings', 'ServerSettings', 'BloomSettings', 'SESSION_TOKEN_MARKER',
    'get_bloom_settings', 'get_instance_descriptors',
]
