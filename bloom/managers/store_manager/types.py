"""
Session Store Types

The shared GlobalSettings document plus the protocols every store backend
implements. Feature code only ever sees these types, never the backend.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol
from pydantic import BaseModel, Field

# Well-known id of the single shared settings document
GLOBAL_SETTINGS_ID = "global"

# Fields of GlobalSettings a writer is allowed to patch
GLOBAL_SETTINGS_FIELDS = (
    "active_instance_id",
    "last_rotation_at",
    "rotation_enabled",
    "maintenance_mode",
    "maintenance_reason",
    "last_maintenance_update",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GlobalSettings(BaseModel):
    """The one deployment-wide coordination document"""
    id: str = GLOBAL_SETTINGS_ID
    active_instance_id: Optional[str] = Field(None, description="Id of the instance allowed to act as primary")
    last_rotation_at: Optional[datetime] = None
    rotation_enabled: bool = True
    maintenance_mode: bool = False
    maintenance_reason: str = ""
    last_maintenance_update: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentCollection(Protocol):
    """A namespaced collection of JSON documents keyed by string id"""

    namespace: str
    name: str

    async def find_one(self, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def find(self, **filters: Any) -> List[Dict[str, Any]]:
        ...

    async def upsert(self, doc_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def delete(self, doc_id: str) -> bool:
        ...

    async def count(self) -> int:
        ...


class SessionStore(Protocol):
    """Durable credentials, the shared settings document and per-instance documents"""

    async def find_global_settings(self) -> Optional[GlobalSettings]:
        ...

    async def upsert_global_settings(self, patch: Dict[str, Any]) -> GlobalSettings:
        ...

    async def get_instance_credentials(self, instance_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def credentials_exist(self, instance_id: str) -> bool:
        ...

    async def save_instance_credentials(self, instance_id: str, credentials: Dict[str, Any]) -> None:
        ...

    async def wait_until_ready(self, timeout: float = 30.0) -> None:
        ...

    def collection(self, namespace: str, name: str) -> DocumentCollection:
        ...

    async def close(self) -> None:
        ...
