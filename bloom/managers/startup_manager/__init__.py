"""
Startup Manager Package

Brings bot instances online in priority order with per-instance failure
isolation.

Structure:
- main.py: StartupManager
- types.py: StartupResult and QR callback type
"""

from .main import StartupManager
from .types import StartupResult, QrCallback, summarize_results

__all__ = ['StartupManager', 'StartupResult', 'QrCallback', 'summarize_results']
