"""
Bloom error hierarchy

Every error raised by the coordination layer derives from BloomError so the
runtime can separate its own failures from driver or library exceptions.
"""

from typing import Optional


class BloomError(Exception):
    """Base class for all Bloom errors"""


class ConfigurationError(BloomError):
    """Missing or invalid configuration (instance descriptors, env values, driver path)"""


class UnknownInstanceError(BloomError):
    """An instance id does not resolve in the instance registry"""

    def __init__(self, instance_id: str):
        super().__init__(f"Unknown instance: {instance_id}")
        self.instance_id = instance_id


class CredentialError(BloomError):
    """Credentials could not be read, fetched or validated"""


class StoreError(BloomError):
    """A session store operation failed"""


class StoreUnavailableError(StoreError):
    """The session store did not become reachable in time"""


class ConnectionSupervisorError(BloomError):
    """Base class for connection supervision failures"""

    def __init__(self, instance_id: str, message: str):
        super().__init__(message)
        self.instance_id = instance_id


class ConnectionAlreadyActiveError(ConnectionSupervisorError):
    """A connect attempt or live session is already in flight for the instance"""

    def __init__(self, instance_id: str):
        super().__init__(instance_id, f"Connection for {instance_id} is already active")


class LoggedOutError(ConnectionSupervisorError):
    """The transport reported an explicit logout; operator must re-bootstrap the session"""

    def __init__(self, instance_id: str):
        super().__init__(instance_id, f"{instance_id} has been logged out")


class ReconnectExhaustedError(ConnectionSupervisorError):
    """Automatic reconnects hit the configured retry limit"""

    def __init__(self, instance_id: str, attempts: int):
        super().__init__(instance_id, f"Reconnect attempts exhausted for {instance_id} after {attempts} retries")
        self.attempts = attempts


class StartupTimeoutError(BloomError):
    """An instance did not report connected within the startup timeout"""

    def __init__(self, instance_id: str, timeout: float):
        super().__init__(f"Timeout starting {instance_id} after {timeout:.0f}s")
        self.instance_id = instance_id
        self.timeout = timeout


class ResourceConstructionError(BloomError):
    """The per-instance resource bundle could not be built"""
