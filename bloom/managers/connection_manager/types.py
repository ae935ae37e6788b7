"""
Connection Manager Type Definitions

Connection state machine types plus the driver protocol the transport
library is adapted to.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from bloom.lib.config import InstanceDescriptor


class ConnectionStatus(Enum):
    """Supervisor state of one instance"""
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    BACKOFF = "backoff"
    TERMINATED = "terminated"


class DisconnectReason(Enum):
    """Why the transport closed; only LOGGED_OUT is terminal"""
    LOGGED_OUT = "logged_out"
    CONNECTION_LOST = "connection_lost"
    CONNECTION_CLOSED = "connection_closed"
    CONNECTION_REPLACED = "connection_replaced"
    TIMED_OUT = "timed_out"
    RESTART_REQUIRED = "restart_required"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        return self is DisconnectReason.LOGGED_OUT


@dataclass(frozen=True)
class DisconnectEvent:
    reason: DisconnectReason
    status_code: Optional[int] = None
    message: str = ""


@dataclass
class ConnectionState:
    """Per-instance connection bookkeeping, mutated only by the supervisor"""
    instance_id: str
    attempt_count: int = 0
    last_attempt_at: Optional[datetime] = None
    active: bool = False
    status: ConnectionStatus = ConnectionStatus.IDLE
    last_error: Optional[str] = None
    announced: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "instance_id": self.instance_id,
            "status": self.status.value,
            "attempt_count": self.attempt_count,
            "last_attempt_at": self.last_attempt_at.isoformat() if self.last_attempt_at else None,
            "active": self.active,
            "last_error": self.last_error,
            "announced": self.announced,
        }


@dataclass(frozen=True)
class ConnectionResult:
    """What a start() waiter resolves to once the driver reports connected"""
    instance_id: str
    connected: bool
    status: ConnectionStatus
    error: Optional[str] = None


@dataclass
class DriverCallbacks:
    """Events a driver reports back to the supervisor (all coroutine functions)"""
    on_qr: Callable[[str], Awaitable[None]]
    on_connected: Callable[[], Awaitable[None]]
    on_disconnected: Callable[[DisconnectEvent], Awaitable[None]]
    on_message: Callable[[Dict[str, Any]], Awaitable[None]]
    on_credentials_update: Callable[[Dict[str, Any]], Awaitable[None]]


class DriverSession(Protocol):
    """A live transport session for one instance"""

    async def send(self, target: str, payload: Dict[str, Any]) -> Any:
        ...

    async def close(self) -> None:
        ...


class ConnectionDriver(Protocol):
    """Adapter around the messaging transport library"""

    async def connect(self,
                      descriptor: InstanceDescriptor,
                      credentials: Optional[Dict[str, Any]],
                      callbacks: DriverCallbacks) -> DriverSession:
        ...


# Post-connect task: called with the instance id once the session is open
PostConnectTask = Callable[[str], Awaitable[Any]]

# Fatal handler: receives the terminal error (LoggedOutError, ReconnectExhaustedError)
FatalHandler = Callable[[Exception], Any]


