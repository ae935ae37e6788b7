"""
Bloom Settings Models

Type-safe configuration for the multi-instance bot. Everything here is built
once at process start and treated as immutable afterwards.
"""

from datetime import timedelta
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator


# Remote session tokens look like "BLOOM~<remoteId>"
SESSION_TOKEN_MARKER = "BLOOM"


class InstanceDescriptor(BaseModel):
    """Static description of one logical bot identity"""
    id: str = Field(..., min_length=1, max_length=50, description="Unique instance id (e.g., bot1)")
    priority: int = Field(..., description="Startup priority, lower starts first")
    rotation_period: timedelta = Field(default=timedelta(hours=8), description="How long this instance stays active")
    credential_source: str = Field(default="", description="Remote session token (BLOOM~<remoteId>) or empty")
    session_dir: str = Field(..., min_length=1, description="Directory holding the local creds.json")
    logs_chat: str = Field(default="", description="Chat that receives rotation and online notices")

    class Config:
        frozen = True

    @field_validator('rotation_period')
    @classmethod
    def _positive_period(cls, value: timedelta) -> timedelta:
        if value.total_seconds() <= 0:
            raise ValueError("rotation_period must be positive")
        return value

    @property
    def rotation_hours(self) -> float:
        return self.rotation_period.total_seconds() / 3600


class StartupSettings(BaseModel):
    """How the startup orchestrator brings instances online"""
    sequential_start: bool = True
    connect_timeout: float = Field(default=120.0, gt=0, description="Seconds to wait for 'connected'")
    inter_instance_delay: float = Field(default=1.0, ge=0, description="Pause between sequential starts")
    session_paste_url: str = "https://pastebin.com/raw"
    fetch_timeout: float = Field(default=30.0, gt=0)


class RotationSettings(BaseModel):
    """Active-instance rotation switches"""
    enabled: bool = True
    primary_instance_id: Optional[str] = None


class ReconnectSettings(BaseModel):
    """Exponential backoff bounds for the connection supervisor"""
    base_delay: float = Field(default=5.0, gt=0)
    max_delay: float = Field(default=300.0, gt=0)
    max_retries: int = Field(default=10, ge=0)

    @model_validator(mode='after')
    def _cap_not_below_base(self) -> 'ReconnectSettings':
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        return self


class NotificationSettings(BaseModel):
    """Logs-chat notification configuration"""
    enabled: bool = True
    bot_name: str = "Bloom"
    emoji: str = "🌸"


class ServerSettings(BaseModel):
    """HTTP status surface"""
    host: str = "0.0.0.0"
    port: int = Field(default=3000, gt=0, lt=65536)
    enabled: bool = True


class BloomSettings(BaseModel):
    """Top-level settings for one Bloom deployment"""
    instances: List[InstanceDescriptor]
    database_url: str = "sqlite+aiosqlite:///bloom.db"
    sessions_root: str = "."
    prefix: str = "!"
    owner_jids: List[str] = Field(default_factory=list)
    driver_path: Optional[str] = None
    startup: StartupSettings = Field(default_factory=StartupSettings)
    rotation: RotationSettings = Field(default_factory=RotationSettings)
    reconnect: ReconnectSettings = Field(default_factory=ReconnectSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    @model_validator(mode='after')
    def _validate_instances(self) -> 'BloomSettings':
        if not self.instances:
            raise ValueError("at least one instance must be configured")
        ids = [instance.id for instance in self.instances]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"duplicate instance ids: {', '.join(duplicates)}")
        primary = self.rotation.primary_instance_id
        if primary is not None and primary not in ids:
            raise ValueError(f"primary instance {primary} is not a configured instance")
        return self
