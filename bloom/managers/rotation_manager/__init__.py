"""
Rotation Manager Package

Owns the deployment-wide active-instance pointer and hands it round-robin
from instance to instance on a timer.

Structure:
- main.py: RotationManager
- types.py: RotationStatus, RotationResult and observer type
"""

from .main import RotationManager
from .types import ROTATION_TIMER_KEY, RotationStatus, RotationResult, RotationObserver

__all__ = ['RotationManager', 'ROTATION_TIMER_KEY', 'RotationStatus', 'RotationResult', 'RotationObserver']
