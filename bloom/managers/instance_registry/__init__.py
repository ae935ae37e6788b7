"""
Instance Registry Package

Static, priority-ordered lookup table of configured bot instances.

Structure:
- main.py: InstanceRegistry class
"""

from .main import InstanceRegistry

__all__ = ['InstanceRegistry']
