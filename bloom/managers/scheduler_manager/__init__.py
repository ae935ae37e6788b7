"""
Scheduler Manager Package

Keyed timer registry used for the rotation timer and per-instance reconnects.

Structure:
- main.py: Scheduler class
"""

from .main import Scheduler, TimerCallback

__all__ = ['Scheduler', 'TimerCallback']
