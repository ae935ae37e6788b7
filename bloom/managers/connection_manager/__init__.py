"""
Connection Manager Package

Supervises one transport connection per bot instance: connect, backoff,
reconnect, logout handling and post-connect work.

Structure:
- main.py: ConnectionSupervisor state machine
- types.py: ConnectionState, ConnectionStatus and the driver protocol
- utils.py: Backoff arithmetic and driver loading
"""

from .main import ConnectionSupervisor
from .types import (
    ConnectionStatus, ConnectionState, ConnectionResult, DisconnectReason, DisconnectEvent,
    DriverCallbacks, DriverSession, ConnectionDriver
)
from .utils import compute_backoff_delay, load_driver

__all__ = [
    'ConnectionSupervisor', 'ConnectionStatus', 'ConnectionState', 'ConnectionResult',
    'DisconnectReason', 'DisconnectEvent', 'DriverCallbacks', 'DriverSession',
    'ConnectionDriver', 'compute_backoff_delay', 'load_driver',
]
